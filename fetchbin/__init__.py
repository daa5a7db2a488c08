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

"""fetchbin - install prebuilt release binaries in CI

Given a version ("latest" or a tag), fetchbin downloads the prebuilt
binary of a tool for the runner's OS and CPU architecture from its GitHub
releases, caches it, puts it on PATH, and reports the resolved version,
install path and cache status as step outputs.

fetchbin provides:

- Platform detection (linux/darwin/windows x amd64/arm64)
- "latest" and explicit tag resolution with v-prefix normalization
- Asset selection by platform tokens or an exact name template
- Deterministic cache keys and best-effort cache restore/save
- Safe .zip / .tar.gz extraction with binary flattening
- A composite GitHub Action wrapper (action.yml)

Quick Start:
Install the latest ripgrep:

    $ fetchbin install --repo BurntSushi/ripgrep --binary rg

Show what would be installed:

    $ fetchbin resolve --repo BurntSushi/ripgrep --version 14.1.0

For full CLI documentation:

    $ fetchbin --help
"""

__version__ = "0.1.0"
__author__ = "Roger Cibrian"
__license__ = "Apache-2.0"
__description__ = "Install prebuilt GitHub release binaries in CI"

# Re-export commonly used functions for convenience
from fetchbin.config import ToolSpec, load_effective_config
from fetchbin.core import resolve_tool, setup_tool
from fetchbin.exceptions import (
    AssetNotFoundError,
    ConfigError,
    DownloadError,
    ExtractionError,
    FetchbinError,
    RateLimitedError,
    ReleaseNotFoundError,
    UnsupportedPlatformError,
)
from fetchbin.platform import PlatformKey, detect
from fetchbin.results import InstallResult, ResolvedRelease, SetupResult

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "__description__",
    "AssetNotFoundError",
    "ConfigError",
    "DownloadError",
    "ExtractionError",
    "FetchbinError",
    "InstallResult",
    "PlatformKey",
    "RateLimitedError",
    "ReleaseNotFoundError",
    "ResolvedRelease",
    "SetupResult",
    "ToolSpec",
    "UnsupportedPlatformError",
    "detect",
    "load_effective_config",
    "resolve_tool",
    "setup_tool",
]
