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

"""Core orchestration for fetchbin.

A run is linear, with no back-edges:

    DETECT -> RESOLVE -> CACHE_LOOKUP -> HIT  ------------------------> REPORT
                                      -> MISS -> DOWNLOAD -> EXTRACT
                                              -> PERMISSION_SET -> CACHE_STORE -> REPORT

Any fatal error aborts the run in the stage that raised it. Cache failures
are the only recoverable class and are handled inside the cache manager.

Design Principles:

- Every collaborator (release client, cache store, reporter, platform key,
  HTTP session) can be injected, so the whole run can be exercised with
  fakes and no network.
- Ambient state (environment, token) comes in through the configuration
  and the ``environ`` parameter; nothing below this module reads it.
- Functions return frozen dataclasses from fetchbin.results.

Example:
    Programmatic usage:
        ```python
        from fetchbin.config import load_effective_config
        from fetchbin.core import setup_tool

        cfg = load_effective_config(overrides={
            "tool": {"name": "ripgrep", "repo": "BurntSushi/ripgrep", "binary": "rg"},
        })
        result = setup_tool(cfg)
        print(result.release.tag, result.install.binary_path)
        ```
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
import os
from pathlib import Path
from typing import Any

import requests

from fetchbin.cache import CacheKey, CacheManager, CacheStore, DirectoryCacheStore
from fetchbin.config.loader import ToolSpec, resolve_cache_dir, resolve_install_dir
from fetchbin.exceptions import ConfigError
from fetchbin.github import GitHubReleaseClient
from fetchbin.installer import install, prepare_directory
from fetchbin.logging import Logger, get_global_logger
from fetchbin.platform import PlatformKey, detect
from fetchbin.reporter import GitHubActionsReporter
from fetchbin.resolver import ReleaseSource, resolve
from fetchbin.results import InstallResult, ResolvedRelease, SetupResult

TOTAL_STEPS = 5


def make_client(
    cfg: Mapping[str, Any], tool: ToolSpec, logger: Logger | None = None
) -> GitHubReleaseClient:
    """Build the release client from configuration (token, API URL)."""
    api = cfg.get("api") or {}
    return GitHubReleaseClient(
        tool.repo,
        token=cfg.get("token"),
        base_url=api.get("base_url") or "https://api.github.com",
        timeout=api.get("timeout"),
        logger=logger,
    )


def install_dir_for(
    cfg: Mapping[str, Any],
    tool: ToolSpec,
    tag: str,
    platform: PlatformKey,
    environ: Mapping[str, str],
) -> Path:
    """Install directory for a (tool, tag, platform): <root>/<tool>/<tag>/<os-arch>."""
    return resolve_install_dir(cfg, environ) / tool.name / tag / str(platform)


def pinned_release(cfg: Mapping[str, Any]) -> ResolvedRelease | None:
    """Release already resolved by an earlier step (release.asset_url), if any.

    The composite action resolves once and hands the result to the install
    step, so the install step needs no release query.

    Raises:
        ConfigError: If the pinned release is incomplete or malformed.

    """
    pinned = cfg.get("release") or {}
    asset_url = pinned.get("asset_url")
    if not asset_url:
        return None

    tag = cfg.get("version")
    if not tag or tag == "latest":
        raise ConfigError(
            "release.asset_url requires an explicit version tag",
            hint="Pass the tag reported by 'fetchbin resolve' as the version",
        )
    asset_name = pinned.get("asset_name") or asset_url.rstrip("/").rsplit("/", 1)[-1]
    try:
        return ResolvedRelease(tag=tag, asset_url=asset_url, asset_name=asset_name)
    except ValueError as err:
        raise ConfigError(f"Invalid pre-resolved release: {err}") from err


def resolve_tool(
    cfg: Mapping[str, Any],
    *,
    client: ReleaseSource | None = None,
    platform_key: PlatformKey | None = None,
    logger: Logger | None = None,
) -> tuple[ResolvedRelease, PlatformKey, CacheKey]:
    """Run DETECT and RESOLVE only.

    Used by `fetchbin resolve` and by the composite action, which needs the
    cache key before it can restore the CI cache. A pre-resolved release
    (see pinned_release) skips the release query entirely.

    Returns:
        A tuple (release, platform_key, cache_key).

    Raises:
        UnsupportedPlatformError: Before any network call, if the host is
            not supported.
        ReleaseNotFoundError, AssetNotFoundError, RateLimitedError,
        ApiError: From resolution.

    """
    logger = logger or get_global_logger()
    tool = ToolSpec.from_config(cfg)

    platform_key = platform_key or detect()
    logger.verbose("DETECT", f"Platform: {platform_key}")

    release = pinned_release(cfg)
    if release is not None:
        logger.verbose(
            "RESOLVE", f"Using pre-resolved {release.tag}: {release.asset_name}"
        )
    else:
        if client is None:
            client = make_client(cfg, tool, logger)
        release = resolve(cfg.get("version"), platform_key, client, tool, logger)

    prefix = (cfg.get("cache") or {}).get("prefix") or "fetchbin"
    cache_key = CacheKey.build(tool.name, release.tag, platform_key, prefix=prefix)
    return release, platform_key, cache_key


def setup_tool(
    cfg: Mapping[str, Any],
    *,
    client: ReleaseSource | None = None,
    cache_store: CacheStore | None = None,
    reporter: GitHubActionsReporter | None = None,
    platform_key: PlatformKey | None = None,
    session: requests.Session | None = None,
    environ: MutableMapping[str, str] | None = None,
    logger: Logger | None = None,
) -> SetupResult:
    """Resolve, restore or install, and report a tool binary.

    Args:
        cfg: Effective configuration (see fetchbin.config).
        client: Release collaborator; built from cfg if omitted.
        cache_store: Cache backend; a DirectoryCacheStore under the
            configured cache root if omitted.
        reporter: Output sink; built from GITHUB_OUTPUT/GITHUB_PATH if
            omitted.
        platform_key: Platform override; detected from the host if omitted.
        session: Optional requests session for the asset download.
        environ: Environment mapping for directory defaults and the PATH
            update (defaults to os.environ).
        logger: Optional logger; defaults to the global logger.

    Returns:
        The run's result: resolved release, install result and cache key.

    Raises:
        UnsupportedPlatformError, ReleaseNotFoundError, AssetNotFoundError,
        RateLimitedError, ApiError, DownloadError, ExtractionError: Fatal
            errors, raised from the stage that failed.

    """
    logger = logger or get_global_logger()
    environ = os.environ if environ is None else environ
    tool = ToolSpec.from_config(cfg)
    cache_cfg = cfg.get("cache") or {}

    # 1) DETECT
    logger.step(1, TOTAL_STEPS, "Detecting platform...")
    platform_key = platform_key or detect()

    # 2) RESOLVE
    logger.step(
        2, TOTAL_STEPS, f"Resolving {tool.name} version {cfg.get('version')}..."
    )
    release, platform_key, cache_key = resolve_tool(
        cfg, client=client, platform_key=platform_key, logger=logger
    )

    # 3) CACHE_LOOKUP
    logger.step(3, TOTAL_STEPS, "Checking cache...")
    if cache_store is None:
        cache_store = DirectoryCacheStore(resolve_cache_dir(cfg, environ))
    cache = CacheManager(
        cache_store, enabled=bool(cache_cfg.get("enabled", True)), logger=logger
    )
    install_dir = install_dir_for(cfg, tool, release.tag, platform_key, environ)
    executable = platform_key.executable_name(tool.binary)

    cache_hit = False
    if cache.enabled:
        prepare_directory(install_dir)
        if cache.try_restore(cache_key, install_dir) is not None:
            if (install_dir / executable).is_file():
                cache_hit = True
            else:
                logger.warning(
                    "CACHE",
                    f"Cached entry {cache_key} lacks {executable}; reinstalling",
                )

    # 4) DOWNLOAD -> EXTRACT -> PERMISSION_SET -> CACHE_STORE
    if cache_hit:
        logger.step(4, TOTAL_STEPS, f"Using cached {release.tag}")
    else:
        logger.step(4, TOTAL_STEPS, f"Installing {release.asset_name}...")
        install(
            release,
            tool,
            platform_key,
            install_dir,
            timeout=(cfg.get("download") or {}).get("timeout"),
            session=session,
            logger=logger,
        )
        cache.store(cache_key, install_dir)

    result = InstallResult(
        binary_path=(install_dir / executable).resolve(), cache_hit=cache_hit
    )

    # 5) REPORT
    logger.step(5, TOTAL_STEPS, "Reporting outputs...")
    if reporter is None:
        reporter = GitHubActionsReporter.from_environment(environ, logger=logger)
    reporter.report(release, result)

    return SetupResult(
        tool=tool.name,
        platform=str(platform_key),
        cache_key=str(cache_key),
        release=release,
        install=result,
    )
