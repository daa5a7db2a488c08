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

"""Cache key derivation and best-effort cache operations for fetchbin.

Caching is a performance optimization, never a correctness dependency:

- try_restore() turns every store failure into a logged miss.
- store() turns every store failure into a logged, skipped save.
- With caching disabled both are no-ops: restores always miss and nothing
  is ever written.

Cache Keys:

Keys are derived from (tool, release tag, platform) and are stable across
runs and machines:

    fetchbin-ripgrep-v14.1.0-linux-amd64-3f2a9c1b7e40

The readable part is sanitized to [A-Za-z0-9._] so it is safe as a file
name and as a CI cache key. The trailing digest is the SHA-256 of the raw,
unsanitized tuple, so two inputs that sanitize to the same text still get
different keys.

Example:
    Restore or install:
        ```python
        from pathlib import Path
        from fetchbin.cache import CacheKey, CacheManager, DirectoryCacheStore

        key = CacheKey.build("ripgrep", "v14.1.0", platform_key)
        cache = CacheManager(DirectoryCacheStore(Path("~/.cache/fetchbin")))
        restored = cache.try_restore(key, install_dir)
        if restored is None:
            ...  # install, then
            cache.store(key, install_dir)
        ```
"""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import json
from pathlib import Path
import re

from fetchbin.cache.store import CacheStore
from fetchbin.logging import Logger, get_global_logger
from fetchbin.platform import PlatformKey

DEFAULT_PREFIX = "fetchbin"

_UNSAFE = re.compile(r"[^A-Za-z0-9._]+")


def _sanitize(part: str) -> str:
    return _UNSAFE.sub("_", part).strip("._") or "_"


@dataclass(frozen=True)
class CacheKey:
    """Deterministic cache key for an installed binary directory.

    Attributes:
        value: The full key string.
    """

    value: str

    def __str__(self) -> str:
        return self.value

    @classmethod
    def build(
        cls,
        tool: str,
        tag: str,
        platform: PlatformKey,
        prefix: str = DEFAULT_PREFIX,
    ) -> CacheKey:
        """Derive the key for (tool, tag, platform).

        Identical inputs always produce an identical key; distinct versions
        or platforms never share one.
        """
        raw = json.dumps([prefix, tool, tag, platform.os, platform.arch])
        digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()[:12]
        parts = [prefix, tool, tag, platform.os, platform.arch]
        readable = "-".join(_sanitize(p) for p in parts)
        return cls(f"{readable}-{digest}")


class CacheManager:
    """Best-effort wrapper around a cache store.

    Attributes:
        enabled: False turns both operations into no-ops.
    """

    def __init__(
        self,
        store: CacheStore,
        *,
        enabled: bool = True,
        logger: Logger | None = None,
    ) -> None:
        self._store = store
        self.enabled = enabled
        self._logger = logger or get_global_logger()

    def try_restore(self, key: CacheKey, destination: Path) -> Path | None:
        """Restore the directory stored under key into destination.

        Args:
            key: Cache key.
            destination: Directory to materialize the cached content in.

        Returns:
            destination on a hit, None on a miss, when caching is disabled,
            or when the store failed.

        """
        if not self.enabled:
            self._logger.verbose("CACHE", "Caching disabled; skipping restore")
            return None

        self._logger.verbose("CACHE", f"Looking up key: {key}")
        try:
            hit = self._store.restore(str(key), destination)
        except Exception as err:
            # Caching must never fail the run
            self._logger.warning(
                "CACHE", f"Cache restore failed, treating as a miss: {err}"
            )
            return None

        if not hit:
            self._logger.verbose("CACHE", "Cache miss")
            return None

        self._logger.verbose("CACHE", f"Cache hit: restored to {destination}")
        return destination

    def store(self, key: CacheKey, directory: Path) -> bool:
        """Store directory under key.

        Returns:
            True if the store accepted the entry, False if caching is
            disabled or the store failed.

        """
        if not self.enabled:
            self._logger.verbose("CACHE", "Caching disabled; skipping save")
            return False

        try:
            self._store.save(str(key), directory)
        except Exception as err:
            self._logger.warning("CACHE", f"Cache save failed, continuing: {err}")
            return False

        self._logger.verbose("CACHE", f"Saved {directory} under key: {key}")
        return True
