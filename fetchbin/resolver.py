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

"""Version resolution and asset selection for fetchbin.

Turns a version request ("latest" or an explicit tag) into a concrete
ResolvedRelease: the immutable release tag plus the download URL of the
asset built for the detected platform.

Version Requests:

- "latest": passed straight through to the release API's notion of latest
  (most recently published). No semantic-version comparison is done, so a
  backport published after a newer major release is what "latest" returns.
- Explicit tag: looked up literally first, then with the leading "v"
  toggled ("1.2.3" -> "v1.2.3", "v1.2.3" -> "1.2.3"). Both spellings of a
  tag therefore resolve to the same release.

Asset Selection:

Without a template, an asset matches when its lower-cased name contains an
OS token and an arch token for the platform (matched between separators,
so "win" never matches inside "darwin") and ends with the platform's
archive suffix: ".zip" on Windows, ".tar.gz" or ".tgz" elsewhere. Darwin
falls back to "universal" assets when no arch-specific one exists.

With tool.asset_template, the asset name must equal the template rendered
with {name}, {version}, {tag}, {os}, {arch} and {ext}, trying every
configured spelling of the os and arch tokens.

Example:
    Resolve the latest release for this host:
        ```python
        from fetchbin.config import ToolSpec
        from fetchbin.github import GitHubReleaseClient
        from fetchbin.platform import detect
        from fetchbin.resolver import resolve

        tool = ToolSpec(name="rg", repo="BurntSushi/ripgrep")
        client = GitHubReleaseClient(tool.repo, token=None)
        release = resolve("latest", detect(), client, tool)
        print(release.tag, release.asset_name)
        ```
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import itertools
import re
from typing import Any, Protocol

from fetchbin.config.loader import ToolSpec
from fetchbin.exceptions import ApiError, AssetNotFoundError, ReleaseNotFoundError
from fetchbin.github.client import ReleaseLookup
from fetchbin.logging import Logger, get_global_logger
from fetchbin.platform import PlatformKey
from fetchbin.results import ResolvedRelease

LATEST = "latest"

OS_TOKENS: dict[str, tuple[str, ...]] = {
    "linux": ("linux",),
    "darwin": ("darwin", "macos", "apple", "osx", "mac"),
    "windows": ("windows", "win64", "win"),
}

ARCH_TOKENS: dict[str, tuple[str, ...]] = {
    "amd64": ("amd64", "x86_64", "x86-64", "x64", "win64"),
    "arm64": ("arm64", "aarch64"),
}

# Darwin-only fallback for fat binaries
UNIVERSAL_TOKENS = ("universal", "universal2", "all")

UNIX_ARCHIVE_EXTS = (".tar.gz", ".tgz")
WINDOWS_ARCHIVE_EXTS = (".zip",)


class ReleaseSource(Protocol):
    """The release collaborator the resolver queries."""

    def get_latest_release(self) -> ReleaseLookup: ...

    def get_release_by_tag(self, tag: str) -> ReleaseLookup: ...


def is_latest(request: str | None) -> bool:
    return request is None or request.strip().lower() in ("", LATEST)


def tag_candidates(request: str) -> list[str]:
    """Return the tags to try for an explicit version request, in order.

    Example:
        ```python
        tag_candidates("1.2.3")   # ['1.2.3', 'v1.2.3']
        tag_candidates("v1.2.3")  # ['v1.2.3', '1.2.3']
        tag_candidates("nightly") # ['nightly', 'vnightly']
        ```
    """
    literal = request.strip()
    if literal[:1] in ("v", "V") and len(literal) > 1:
        variant = literal[1:]
    else:
        variant = f"v{literal}"
    return [literal, variant]


def lookup_release(
    client: ReleaseSource, request: str | None, logger: Logger | None = None
) -> ReleaseLookup:
    """Find the release for a version request.

    "latest" is a single query. An explicit tag is a two-step lookup: the
    literal tag, then the "v"-toggled variant if the literal one is absent.

    Args:
        client: Release collaborator.
        request: "latest" (or empty/None) or an explicit tag.
        logger: Optional logger; defaults to the global logger.

    Returns:
        The first found lookup, or the last miss if nothing matched.

    """
    logger = logger or get_global_logger()

    if is_latest(request):
        logger.verbose("RESOLVE", "Requesting latest release")
        return client.get_latest_release()

    lookup = ReleaseLookup.miss(request)
    for candidate in tag_candidates(request):
        logger.verbose("RESOLVE", f"Looking up tag: {candidate}")
        lookup = client.get_release_by_tag(candidate)
        if lookup.found:
            return lookup
        logger.debug("RESOLVE", f"No release tagged {candidate!r}")
    return lookup


def _token_pattern(tokens: Iterable[str]) -> re.Pattern[str]:
    alternatives = "|".join(
        re.escape(t) for t in sorted(set(tokens), key=len, reverse=True)
    )
    return re.compile(rf"(?<![a-z0-9])(?:{alternatives})(?![a-z0-9])")


def _spellings(
    canonical: str,
    defaults: Mapping[str, tuple[str, ...]],
    aliases: Mapping[str, list[str]],
) -> list[str]:
    spellings = [
        canonical,
        *defaults.get(canonical, ()),
        *aliases.get(canonical, []),
    ]
    return list(dict.fromkeys(s.lower() for s in spellings))


def _archive_exts(platform: PlatformKey) -> tuple[str, ...]:
    return WINDOWS_ARCHIVE_EXTS if platform.is_windows else UNIX_ARCHIVE_EXTS


def match_asset_name(name: str, platform: PlatformKey, tool: ToolSpec) -> bool:
    """Return True if an asset name encodes the platform by token matching."""
    lowered = name.lower()
    if not lowered.endswith(_archive_exts(platform)):
        return False

    os_pattern = _token_pattern(_spellings(platform.os, OS_TOKENS, tool.os_aliases))
    arch_pattern = _token_pattern(
        _spellings(platform.arch, ARCH_TOKENS, tool.arch_aliases)
    )
    return bool(os_pattern.search(lowered) and arch_pattern.search(lowered))


def _template_names(
    release_tag: str, platform: PlatformKey, tool: ToolSpec
) -> list[str]:
    version = release_tag[1:] if release_tag[:1] in ("v", "V") else release_tag
    os_names = _spellings(platform.os, {}, tool.os_aliases)
    arch_names = _spellings(platform.arch, {}, tool.arch_aliases)
    names = []
    for os_name, arch_name, ext in itertools.product(
        os_names, arch_names, _archive_exts(platform)
    ):
        names.append(
            tool.asset_template.format(
                name=tool.name,
                version=version,
                tag=release_tag,
                os=os_name,
                arch=arch_name,
                ext=ext,
            )
        )
    return names


def select_asset(
    release: Mapping[str, Any],
    platform: PlatformKey,
    tool: ToolSpec,
    logger: Logger | None = None,
) -> dict[str, Any]:
    """Pick the asset built for ``platform`` from a release payload.

    Args:
        release: Release payload with "tag_name" and "assets".
        platform: Detected platform key.
        tool: Tool definition (template and aliases).
        logger: Optional logger; defaults to the global logger.

    Returns:
        The matching asset payload (first match in release order).

    Raises:
        AssetNotFoundError: If no asset matches the platform.

    """
    logger = logger or get_global_logger()
    tag = release.get("tag_name", "")
    assets = release.get("assets") or []
    logger.verbose("RESOLVE", f"Release {tag} has {len(assets)} asset(s)")

    if tool.asset_template:
        wanted = _template_names(tag, platform, tool)
        logger.debug("RESOLVE", f"Template candidates: {', '.join(wanted)}")
        for asset in assets:
            if asset.get("name") in wanted:
                return asset
    else:
        for asset in assets:
            if match_asset_name(asset.get("name", ""), platform, tool):
                return asset

        if platform.os == "darwin":
            universal = _token_pattern(UNIVERSAL_TOKENS)
            os_pattern = _token_pattern(
                _spellings(platform.os, OS_TOKENS, tool.os_aliases)
            )
            for asset in assets:
                lowered = asset.get("name", "").lower()
                if (
                    lowered.endswith(UNIX_ARCHIVE_EXTS)
                    and os_pattern.search(lowered)
                    and universal.search(lowered)
                ):
                    logger.verbose("RESOLVE", "Using universal darwin asset")
                    return asset

    available = [a.get("name", "(unnamed)") for a in assets]
    raise AssetNotFoundError(
        f"Release {tag} has no asset for {platform}. "
        f"Available assets: {', '.join(available) or '(none)'}"
    )


def resolve(
    request: str | None,
    platform: PlatformKey,
    client: ReleaseSource,
    tool: ToolSpec,
    logger: Logger | None = None,
) -> ResolvedRelease:
    """Resolve a version request to a concrete release and platform asset.

    The auth token is a property of ``client``: an authenticated client
    gets the higher API quota.

    Args:
        request: "latest" or an explicit tag (with or without a leading "v").
        platform: Detected platform key.
        client: Release collaborator.
        tool: Tool definition.
        logger: Optional logger; defaults to the global logger.

    Returns:
        The resolved release.

    Raises:
        ReleaseNotFoundError: If no release matches the request.
        AssetNotFoundError: If the release has no asset for the platform.
        RateLimitedError: If the API quota is exhausted (raised by client).
        ApiError: On other API failures or a malformed release payload.

    """
    logger = logger or get_global_logger()
    lookup = lookup_release(client, request, logger)

    if not lookup.found:
        if is_latest(request):
            raise ReleaseNotFoundError(
                f"Repository {tool.repo} has no published releases"
            )
        tried = ", ".join(repr(t) for t in tag_candidates(request))
        raise ReleaseNotFoundError(
            f"No release of {tool.repo} matches version {request!r} (tried {tried})"
        )

    release = lookup.release
    tag = release.get("tag_name")
    if not tag:
        raise ApiError("Release has no tag_name field")
    logger.verbose("RESOLVE", f"Release tag: {tag}")

    asset = select_asset(release, platform, tool, logger)
    name = asset.get("name", "")
    url = asset.get("browser_download_url")
    if not url:
        raise ApiError(f"Asset {name} has no download URL")
    logger.verbose("RESOLVE", f"Matched asset: {name}")

    try:
        return ResolvedRelease(tag=tag, asset_url=url, asset_name=name)
    except ValueError as err:
        raise ApiError(f"Release {tag} returned an unusable asset: {err}") from err
