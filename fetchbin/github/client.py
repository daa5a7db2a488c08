# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""GitHub releases API client for fetchbin.

Read-only access to the two release endpoints the resolver needs:

- GET /repos/{owner}/{repo}/releases/latest
- GET /repos/{owner}/{repo}/releases/tags/{tag}

Lookups return a ReleaseLookup tagged result instead of raising for a
missing release, so the resolver can try tag variants without using
exceptions for control flow.

Rate Limits:

- Unauthenticated: 60 requests/hour per IP
- Authenticated: 5000 requests/hour per token (1000 for GITHUB_TOKEN)

A 403 or 429 that reports quota exhaustion raises RateLimitedError with a
hint to supply a token. A 401 (bad credentials) also raises
RateLimitedError, since the request can only succeed with a valid token.

Example:
    Query a release:
        ```python
        from fetchbin.github import GitHubReleaseClient

        client = GitHubReleaseClient("BurntSushi/ripgrep", token=None)
        lookup = client.get_latest_release()
        if lookup.found:
            print(lookup.release["tag_name"])
        ```

Note:
    "Latest" is whatever GitHub reports as the latest release (most recent
    non-prerelease, non-draft), not the highest semantic version.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import requests

from fetchbin.exceptions import ApiError, ConfigError, RateLimitedError
from fetchbin.logging import Logger, get_global_logger

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"


@dataclass(frozen=True)
class ReleaseLookup:
    """Tagged result of a release query.

    Attributes:
        found: True if the release exists.
        query: The tag queried, or "latest".
        release: Release payload from the API (empty when not found).
    """

    found: bool
    query: str
    release: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def hit(cls, query: str, release: dict[str, Any]) -> ReleaseLookup:
        return cls(found=True, query=query, release=release)

    @classmethod
    def miss(cls, query: str) -> ReleaseLookup:
        return cls(found=False, query=query)


class GitHubReleaseClient:
    """Client for the GitHub releases API.

    Attributes:
        repo: Repository in "owner/name" format.
        base_url: API root (override for GitHub Enterprise).
    """

    def __init__(
        self,
        repo: str,
        token: str | None = None,
        *,
        base_url: str = DEFAULT_API_URL,
        session: requests.Session | None = None,
        timeout: float | None = None,
        logger: Logger | None = None,
    ) -> None:
        if not repo or repo.count("/") != 1 or not all(repo.split("/")):
            raise ConfigError(
                f"Invalid repo format: {repo!r}. Expected 'owner/repository'"
            )
        self.repo = repo
        self.base_url = base_url.rstrip("/")
        self._token = token or None
        self._session = session or requests.Session()
        self._timeout = timeout
        self._logger = logger or get_global_logger()

    @property
    def authenticated(self) -> bool:
        return self._token is not None

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def get_latest_release(self) -> ReleaseLookup:
        """Query the most recent published release.

        Returns:
            Lookup result; not found when the repository has no releases.

        Raises:
            RateLimitedError: On quota exhaustion or a rejected token.
            ApiError: On any other API failure.

        """
        return self._get_release(f"/repos/{self.repo}/releases/latest", "latest")

    def get_release_by_tag(self, tag: str) -> ReleaseLookup:
        """Query the release whose tag exactly equals ``tag``.

        Args:
            tag: Release tag (e.g., "v1.2.3").

        Returns:
            Lookup result; not found when no release carries this tag.

        Raises:
            RateLimitedError: On quota exhaustion or a rejected token.
            ApiError: On any other API failure.

        """
        path = f"/repos/{self.repo}/releases/tags/{quote(tag, safe='')}"
        return self._get_release(path, tag)

    def _get_release(self, path: str, query: str) -> ReleaseLookup:
        url = f"{self.base_url}{path}"
        auth = "authenticated" if self.authenticated else "anonymous"
        self._logger.verbose("API", f"GET {url} ({auth})")

        try:
            response = self._session.get(
                url, headers=self._headers(), timeout=self._timeout
            )
        except requests.exceptions.RequestException as err:
            raise ApiError(
                f"Failed to query GitHub releases for {self.repo}: {err}"
            ) from err

        self._logger.debug(
            "API",
            f"Response: {response.status_code} "
            f"(rate limit remaining: "
            f"{response.headers.get('X-RateLimit-Remaining', 'unknown')})",
        )

        if response.status_code == 404:
            return ReleaseLookup.miss(query)

        if response.status_code == 401:
            raise RateLimitedError(
                f"GitHub API rejected the supplied token for {self.repo} "
                f"(status 401)",
                hint="Supply a valid token; the configured one was rejected.",
            )

        if response.status_code in (403, 429) and _is_rate_limited(response):
            if self.authenticated:
                raise RateLimitedError(
                    "GitHub API rate limit exceeded for the supplied token. "
                    f"Status: {response.status_code}",
                    hint=(
                        "The supplied token may be exhausted or invalid; "
                        "supply a different token or retry after the reset time."
                    ),
                )
            raise RateLimitedError(
                "GitHub API rate limit exceeded for anonymous requests. "
                f"Status: {response.status_code}"
            )

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as err:
            raise ApiError(
                f"GitHub API request failed: {response.status_code} "
                f"{response.reason}"
            ) from err

        try:
            release = response.json()
        except ValueError as err:
            raise ApiError(f"GitHub API returned invalid JSON for {url}") from err

        if not isinstance(release, dict):
            raise ApiError(f"Unexpected GitHub API payload for {url}")

        return ReleaseLookup.hit(query, release)


def _is_rate_limited(response: requests.Response) -> bool:
    """Return True if a 403/429 response reports quota exhaustion."""
    if response.status_code == 429:
        return True
    if response.headers.get("X-RateLimit-Remaining") == "0":
        return True
    if "Retry-After" in response.headers:
        return True
    return "rate limit" in response.text.lower()
