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

"""Public API return types for fetchbin.

All dataclasses are frozen (immutable): a ResolvedRelease is created once
per run by the resolver and an InstallResult once by the installer or the
cache, and neither is mutated afterwards.

Note:
    Only public API return types belong in this module. PlatformKey lives
    with the detector and CacheKey with the cache manager.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse


@dataclass(frozen=True)
class ResolvedRelease:
    """A concrete release and the asset selected for this platform.

    Attributes:
        tag: Release tag exactly as published (e.g., "v1.2.3").
        asset_url: HTTPS download URL of the selected asset.
        asset_name: File name of the selected asset.
    """

    tag: str
    asset_url: str
    asset_name: str

    def __post_init__(self) -> None:
        if not self.tag or not self.tag.strip():
            raise ValueError("release tag must be non-empty")
        parsed = urlparse(self.asset_url)
        if parsed.scheme != "https" or not parsed.netloc:
            raise ValueError(f"asset URL must be an https URL: {self.asset_url!r}")
        if not self.asset_name:
            raise ValueError("asset name must be non-empty")

    @property
    def version(self) -> str:
        """Tag without a leading 'v' (e.g., "1.2.3" for "v1.2.3")."""
        if self.tag[:1] in ("v", "V") and self.tag[1:2].isdigit():
            return self.tag[1:]
        return self.tag


@dataclass(frozen=True)
class InstallResult:
    """Where the binary ended up and whether it came from the cache.

    Attributes:
        binary_path: Absolute path to the installed executable.
        cache_hit: True if the directory was restored from the cache.
    """

    binary_path: Path
    cache_hit: bool

    @property
    def install_dir(self) -> Path:
        return self.binary_path.parent


@dataclass(frozen=True)
class SetupResult:
    """Result of a complete run.

    Attributes:
        tool: Tool identifier.
        platform: Platform key string (e.g., "linux-amd64").
        cache_key: Cache key used for the lookup.
        release: The resolved release.
        install: The install result.
    """

    tool: str
    platform: str
    cache_key: str
    release: ResolvedRelease
    install: InstallResult
