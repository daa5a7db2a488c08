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

"""Download, extract, and install a release asset for fetchbin.

install() performs the cache-miss half of a run:

    DOWNLOAD -> EXTRACT -> PERMISSION_SET

The archive is downloaded into a scratch directory that is removed
afterwards. Whatever the archive's internal layout (flat, versioned
top-level folder, bin/ subfolder), the executable ends up directly in the
install directory under its canonical name, so the directory can be put on
PATH as-is.

Example:
    Install a resolved release:
        ```python
        from pathlib import Path
        from fetchbin.installer import install

        install_dir = install(
            release, tool, platform_key, Path("/tmp/fetchbin/rg/v14.1.0/linux-amd64")
        )
        ```
"""

from __future__ import annotations

from pathlib import Path
import shutil
import stat
import tempfile

import requests

from fetchbin.config.loader import ToolSpec
from fetchbin.exceptions import ExtractionError
from fetchbin.io.archive import extract_archive
from fetchbin.io.download import download_file
from fetchbin.logging import Logger, get_global_logger
from fetchbin.platform import PlatformKey
from fetchbin.results import ResolvedRelease

EXECUTABLE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def prepare_directory(directory: Path) -> Path:
    """Empty (or create) a directory so it holds only what we put there."""
    if directory.exists():
        shutil.rmtree(directory)
    directory.mkdir(parents=True)
    return directory


def find_executable(root: Path, executable: str, platform: PlatformKey) -> Path:
    """Locate an executable anywhere under root, preferring the shallowest.

    Windows file names are matched case-insensitively.

    Raises:
        ExtractionError: If no file with that name exists under root.
    """
    wanted = executable.lower() if platform.is_windows else executable
    matches = []
    for path in root.rglob("*"):
        name = path.name.lower() if platform.is_windows else path.name
        if name == wanted and path.is_file():
            matches.append(path)

    if not matches:
        found = sorted(
            p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()
        )
        raise ExtractionError(
            f"Expected binary {executable!r} not found in archive. "
            f"Archive contains: {', '.join(found[:20]) or '(nothing)'}"
        )

    return min(matches, key=lambda p: (len(p.relative_to(root).parts), str(p)))


def make_executable(path: Path, platform: PlatformKey) -> None:
    """Add the executable bits on Unix-like platforms; no-op on Windows."""
    if platform.is_windows:
        return
    mode = path.stat().st_mode
    path.chmod(mode | EXECUTABLE_BITS | stat.S_IRUSR)


def install(
    release: ResolvedRelease,
    tool: ToolSpec,
    platform: PlatformKey,
    install_dir: Path,
    *,
    timeout: float | None = None,
    session: requests.Session | None = None,
    logger: Logger | None = None,
) -> Path:
    """Download and unpack a release asset into install_dir.

    Args:
        release: Resolved release (asset URL and name).
        tool: Tool definition; tool.binary names the executable.
        platform: Platform key (executable suffix, permission handling).
        install_dir: Target directory; emptied before installing.
        timeout: Per-request download timeout (None waits indefinitely).
        session: Optional requests session for the download.
        logger: Optional logger; defaults to the global logger.

    Returns:
        install_dir, now containing the executable under its canonical name.

    Raises:
        DownloadError: On non-2xx responses or transport failures.
        ExtractionError: If the archive is malformed or lacks the binary.

    """
    logger = logger or get_global_logger()
    executable = platform.executable_name(tool.binary)

    with tempfile.TemporaryDirectory(prefix="fetchbin-") as scratch_name:
        scratch = Path(scratch_name)

        archive, sha256 = download_file(
            release.asset_url,
            scratch / "download",
            filename=release.asset_name,
            timeout=timeout,
            session=session,
            logger=logger,
        )
        logger.verbose("INSTALL", f"Downloaded {archive.name} (sha256 {sha256})")

        extracted = scratch / "extracted"
        extract_archive(archive, extracted)
        logger.debug("INSTALL", f"Extracted {archive.name} to {extracted}")

        source = find_executable(extracted, executable, platform)
        logger.verbose(
            "INSTALL", f"Found binary: {source.relative_to(extracted).as_posix()}"
        )
        # Archives may ship the canonical name as a link to a versioned file
        real_source = source.resolve()
        if not real_source.is_relative_to(extracted.resolve()):
            raise ExtractionError(
                f"Binary {source.relative_to(extracted).as_posix()!r} links "
                f"outside the archive"
            )

        target = install_dir / executable
        try:
            prepare_directory(install_dir)
            shutil.move(str(real_source), target)
            make_executable(target, platform)
        except OSError as err:
            raise ExtractionError(
                f"Could not install {executable} into {install_dir}: {err}"
            ) from err

    logger.verbose("INSTALL", f"Installed {target}")
    return install_dir
