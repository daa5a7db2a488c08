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

"""Command-line interface for fetchbin.

Commands:

    install: Resolve, restore or download, and put the binary on PATH
    resolve: Resolve the release and asset without downloading
    platform: Print the detected platform key

Example:
    Install the latest release:
        ```bash
        $ fetchbin install --repo BurntSushi/ripgrep --binary rg
        ```

    Install a pinned version without caching:
        ```bash
        $ fetchbin install --config .fetchbin.yaml --version 14.1.0 --no-cache
        ```

    Compute the cache key for a CI cache step:
        ```bash
        $ fetchbin resolve --config .fetchbin.yaml
        ```

Exit Codes:

- 0: Success
- 1: Error (configuration, platform, resolution, download or extraction)

Note:
    Inside GitHub Actions (GITHUB_ACTIONS=true) warnings are emitted as
    workflow annotations. Verbose mode shows full tracebacks on errors.
"""

from __future__ import annotations

import argparse
from importlib.metadata import PackageNotFoundError, version
import os
from pathlib import Path
import sys
import traceback
from typing import Any

from fetchbin import __version__
from fetchbin.config import load_effective_config
from fetchbin.core import resolve_tool, setup_tool
from fetchbin.exceptions import FetchbinError
from fetchbin.logging import get_logger, set_global_logger
from fetchbin.platform import detect
from fetchbin.reporter import GitHubActionsReporter

FILESYSTEM_HINT = (
    "Check that the install and cache directories exist and are writable"
)


def _package_version() -> str:
    try:
        return version("fetchbin")
    except PackageNotFoundError:
        return __version__


def _configure_logger(args: argparse.Namespace):
    logger = get_logger(
        verbose=getattr(args, "verbose", False),
        debug=getattr(args, "debug", False),
        actions=os.environ.get("GITHUB_ACTIONS") == "true",
    )
    set_global_logger(logger)
    return logger


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Translate CLI flags into a config overlay (None means not given)."""
    return {
        "version": args.version,
        "token": args.token,
        "tool": {
            "name": args.tool,
            "repo": args.repo,
            "binary": args.binary,
        },
        "cache": {
            "enabled": False if args.no_cache else None,
            "dir": args.cache_dir,
        },
        "install": {"dir": getattr(args, "install_dir", None)},
        "release": {
            "asset_url": getattr(args, "asset_url", None),
            "asset_name": getattr(args, "asset_name", None),
        },
    }


def _print_error(
    err: Exception,
    args: argparse.Namespace,
    stage: str | None = None,
    hint: str | None = None,
) -> None:
    stage = stage or getattr(err, "stage", "run")
    hint = hint or getattr(err, "hint", None)
    print(f"Error [{stage}]: {err}")
    if hint:
        print(f"Hint: {hint}")
    if getattr(args, "verbose", False) or getattr(args, "debug", False):
        traceback.print_exc()


def cmd_install(args: argparse.Namespace) -> int:
    """Handler for 'fetchbin install' command.

    Runs the full pipeline: detect the platform, resolve the release,
    restore from cache or download and extract, then report outputs and
    update PATH.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 for failure).

    """
    logger = _configure_logger(args)

    try:
        cfg = load_effective_config(
            args.config, overrides=_overrides(args), logger=logger
        )
        result = setup_tool(cfg, logger=logger)
    except FetchbinError as err:
        _print_error(err, args)
        return 1
    except OSError as err:
        _print_error(err, args, stage="install", hint=FILESYSTEM_HINT)
        return 1

    print("=" * 70)
    print("INSTALL RESULTS")
    print("=" * 70)
    print(f"Tool:            {result.tool}")
    print(f"Platform:        {result.platform}")
    print(f"Version:         {result.release.tag}")
    print(f"Asset:           {result.release.asset_name}")
    print(f"Binary Path:     {result.install.binary_path}")
    print(f"Cache Hit:       {str(result.install.cache_hit).lower()}")
    print(f"Cache Key:       {result.cache_key}")
    print("=" * 70)
    print()
    print(f"[SUCCESS] {result.tool} {result.release.tag} is ready!")

    return 0


def cmd_resolve(args: argparse.Namespace) -> int:
    """Handler for 'fetchbin resolve' command.

    Resolves the release and platform asset without downloading anything,
    and writes version, asset and cache-key outputs when running in
    GitHub Actions.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 for failure).

    """
    logger = _configure_logger(args)

    try:
        cfg = load_effective_config(
            args.config, overrides=_overrides(args), logger=logger
        )
        release, platform_key, cache_key = resolve_tool(cfg, logger=logger)
    except FetchbinError as err:
        _print_error(err, args)
        return 1
    except OSError as err:
        _print_error(err, args, stage="resolve", hint=FILESYSTEM_HINT)
        return 1

    reporter = GitHubActionsReporter.from_environment(logger=logger)
    reporter.set_output("version", release.tag)
    reporter.set_output("asset", release.asset_name)
    reporter.set_output("asset-url", release.asset_url)
    reporter.set_output("cache-key", str(cache_key))

    print("=" * 70)
    print("RESOLVE RESULTS")
    print("=" * 70)
    print(f"Platform:        {platform_key}")
    print(f"Version:         {release.tag}")
    print(f"Asset:           {release.asset_name}")
    print(f"Download URL:    {release.asset_url}")
    print(f"Cache Key:       {cache_key}")
    print("=" * 70)

    return 0


def cmd_platform(args: argparse.Namespace) -> int:
    """Handler for 'fetchbin platform' command."""
    try:
        key = detect()
    except FetchbinError as err:
        _print_error(err, args)
        return 1
    print(key)
    return 0


def _add_selection_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Tool YAML file (default: .fetchbin.yaml if present)",
    )
    parser.add_argument(
        "--version",
        default=None,
        help="Version to install: 'latest' or a tag such as v1.2.3",
    )
    parser.add_argument(
        "--token",
        default=None,
        help="GitHub token for API requests (default: $GITHUB_TOKEN)",
    )
    parser.add_argument("--repo", default=None, help="Release repository owner/name")
    parser.add_argument("--tool", default=None, help="Tool identifier")
    parser.add_argument(
        "--binary", default=None, help="Executable name (default: tool name)"
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Disable cache restore and save",
    )
    parser.add_argument(
        "--cache-dir",
        default=None,
        help="Cache directory (default: $RUNNER_TOOL_CACHE/fetchbin)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fetchbin",
        description="Install prebuilt GitHub release binaries for this platform",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"fetchbin {_package_version()}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'install' command
    parser_install = subparsers.add_parser(
        "install",
        help="Install the tool binary and put it on PATH",
        description="Resolve the release, restore it from cache or download it, "
        "and report version, path and cache-hit outputs.",
    )
    _add_selection_args(parser_install)
    parser_install.add_argument(
        "--install-dir",
        default=None,
        help="Install root (default: $RUNNER_TEMP/fetchbin)",
    )
    parser_install.add_argument(
        "--asset-url",
        default=None,
        help="Download URL from a previous 'fetchbin resolve'; skips the "
        "release query (requires an explicit --version tag)",
    )
    parser_install.add_argument(
        "--asset-name",
        default=None,
        help="Asset file name for --asset-url (default: last URL segment)",
    )
    parser_install.set_defaults(func=cmd_install)

    # 'resolve' command
    parser_resolve = subparsers.add_parser(
        "resolve",
        help="Resolve the release and asset without downloading",
        description="Print the resolved tag, asset and cache key.",
    )
    _add_selection_args(parser_resolve)
    parser_resolve.set_defaults(func=cmd_resolve)

    # 'platform' command
    parser_platform = subparsers.add_parser(
        "platform",
        help="Print the detected platform key",
    )
    parser_platform.set_defaults(func=cmd_platform)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the fetchbin CLI.

    This function is registered as the 'fetchbin' console script in
    pyproject.toml.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
