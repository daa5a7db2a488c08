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

"""Exception hierarchy for fetchbin.

Every error carries the pipeline stage it was raised in and an optional
actionable hint, so the CLI can print "Error [resolve]: ..." followed by
"Hint: ...". All exceptions inherit from FetchbinError, allowing callers to
catch every fetchbin error with a single except clause.

Fatal errors (abort the run):

- ConfigError: invalid or missing configuration
- UnsupportedPlatformError: host OS/arch is not one of the six supported pairs
- ReleaseNotFoundError: no release matches the requested version
- AssetNotFoundError: the release has no asset for this platform
- RateLimitedError: the release API refused the request (quota or token)
- ApiError: any other release API failure
- DownloadError: the asset download failed
- ExtractionError: the archive is malformed or lacks the binary

Recoverable:

- CacheError: cache store failure. Never escapes the cache manager; it is
  logged as a warning and treated as a miss or a skipped save.

Example:
    Handling errors by stage:
        ```python
        from fetchbin.core import setup_tool
        from fetchbin.exceptions import FetchbinError

        try:
            result = setup_tool(config)
        except FetchbinError as err:
            print(f"Error [{err.stage}]: {err}")
            if err.hint:
                print(f"Hint: {err.hint}")
        ```
"""

from __future__ import annotations

__all__ = [
    "FetchbinError",
    "ConfigError",
    "UnsupportedPlatformError",
    "ReleaseNotFoundError",
    "AssetNotFoundError",
    "RateLimitedError",
    "ApiError",
    "DownloadError",
    "ExtractionError",
    "CacheError",
]


class FetchbinError(Exception):
    """Base exception for all fetchbin errors.

    Attributes:
        stage: Pipeline stage that failed (e.g., "resolve", "download").
        hint: Optional actionable guidance for the user.
    """

    stage = "run"
    default_hint: str | None = None

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint if hint is not None else self.default_hint


class ConfigError(FetchbinError):
    """Raised for configuration errors.

    This exception is raised when there are problems with:

    - YAML parse errors or a non-mapping top level
    - Missing required fields (tool.name, tool.repo)
    - Invalid values (repo format, boolean inputs, timeouts)
    """

    stage = "config"


class UnsupportedPlatformError(FetchbinError):
    """Raised when the host OS or architecture has no release asset variant."""

    stage = "detect"
    default_hint = (
        "Supported platforms are linux, darwin and windows on amd64 or arm64."
    )


class ReleaseNotFoundError(FetchbinError):
    """Raised when no release matches the requested version."""

    stage = "resolve"
    default_hint = (
        "Check the version format (e.g. 'v1.2.3' or 'latest') and that the "
        "release is published."
    )


class AssetNotFoundError(FetchbinError):
    """Raised when a release exists but has no asset for this platform."""

    stage = "resolve"
    default_hint = (
        "Check tool.asset_template or the os/arch aliases against the "
        "release's asset names."
    )


class RateLimitedError(FetchbinError):
    """Raised when the release API reports quota exhaustion or a bad token.

    The hint always tells the user how to get past the limit, which is why
    the token input exists at all.
    """

    stage = "resolve"
    default_hint = (
        "Supply a token (the 'token' input or GITHUB_TOKEN) to raise the "
        "API rate limit."
    )


class ApiError(FetchbinError):
    """Raised for release API failures other than not-found and rate limits."""

    stage = "resolve"


class DownloadError(FetchbinError):
    """Raised on non-2xx responses or transport failures during download."""

    stage = "download"


class ExtractionError(FetchbinError):
    """Raised when an archive is malformed, unsafe, or missing the binary."""

    stage = "extract"


class CacheError(FetchbinError):
    """Raised by cache stores. Recoverable; the cache manager logs it."""

    stage = "cache"
