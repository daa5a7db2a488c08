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

"""Cache store backends for fetchbin.

A cache store is the external key -> directory mapping the cache manager
reads at the start of every run and writes after a fresh install. Stores
are structural (typing.Protocol), so a CI-specific backend only needs
restore() and save().

DirectoryCacheStore keeps one gzip tarball per key under a root directory:

    <root>/<key>.tar.gz

On a GitHub runner the root usually sits under $RUNNER_TOOL_CACHE, or in a
directory that the composite action restores and saves with actions/cache.

Concurrency:
    Saves write <key>.tar.gz.<random>.part and rename it into place, so a
    reader never sees a partial tarball. Two jobs saving the same key race
    harmlessly: the content is identical and the last rename wins.
"""

from __future__ import annotations

import os
from pathlib import Path
import tarfile
import tempfile
from typing import Protocol

from fetchbin.exceptions import CacheError, ExtractionError
from fetchbin.io.archive import extract_archive, pack_directory


class CacheStore(Protocol):
    """Protocol for cache store backends."""

    def restore(self, key: str, destination: Path) -> bool:
        """Materialize the directory stored under key into destination.

        Returns:
            True on a hit, False on a miss.

        Raises:
            CacheError: If the store failed (treated as a miss by callers).
        """
        ...

    def save(self, key: str, source: Path) -> None:
        """Store the contents of source under key.

        Raises:
            CacheError: If the store failed (logged and ignored by callers).
        """
        ...


class DirectoryCacheStore:
    """Cache store keeping one .tar.gz per key in a local directory.

    Attributes:
        root: Directory holding the cached tarballs.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise CacheError(f"Invalid cache key: {key!r}")
        return self.root / f"{key}.tar.gz"

    def restore(self, key: str, destination: Path) -> bool:
        archive = self.path_for(key)
        if not archive.is_file():
            return False
        try:
            extract_archive(archive, destination)
        except ExtractionError as err:
            raise CacheError(f"Cached archive {archive} is unreadable: {err}") from err
        return True

    def save(self, key: str, source: Path) -> None:
        archive = self.path_for(key)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f"{archive.name}.", suffix=".part", dir=self.root
            )
            tmp = Path(tmp_name)
            try:
                # tarfile reopens the file by name
                os.close(fd)
                pack_directory(source, tmp)
                tmp.replace(archive)
            finally:
                tmp.unlink(missing_ok=True)
        except (OSError, tarfile.TarError) as err:
            raise CacheError(f"Failed to save cache entry {key}: {err}") from err
