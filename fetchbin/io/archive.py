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

"""Archive extraction and packing for fetchbin.

Release assets come as .zip (Windows) or gzip-compressed tarballs
(everything else); the format is chosen from the file extension. Members
with absolute paths or ".." components are rejected before anything is
written, and tar links that point outside the destination are refused.

The same tarball helpers back the directory cache store, which keeps each
installed directory as a single .tar.gz.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath
import tarfile
import zipfile

from fetchbin.exceptions import ExtractionError

ZIP_SUFFIXES = (".zip",)
TAR_GZ_SUFFIXES = (".tar.gz", ".tgz")

# Extraction filters exist from Python 3.11.4 on
_TAR_FILTER = {"filter": "data"} if hasattr(tarfile, "data_filter") else {}


def archive_format(name: str) -> str:
    """Return "zip" or "tar.gz" for an archive file name.

    Raises:
        ExtractionError: If the extension is not a supported archive type.
    """
    lowered = name.lower()
    if lowered.endswith(ZIP_SUFFIXES):
        return "zip"
    if lowered.endswith(TAR_GZ_SUFFIXES):
        return "tar.gz"
    raise ExtractionError(f"Unsupported archive type: {name}")


def _check_member(name: str, archive: Path) -> None:
    path = PurePosixPath(name.replace("\\", "/"))
    drive = path.parts[0] if path.parts else ""
    if path.is_absolute() or ".." in path.parts or ":" in drive:
        raise ExtractionError(f"Unsafe path {name!r} in archive {archive.name}")


def _escapes(path: PurePosixPath) -> bool:
    # Collapse "a/../b"; a ".." left at the front means the path leaves the root
    depth = 0
    for part in path.parts:
        if part in ("", "."):
            continue
        depth = depth - 1 if part == ".." else depth + 1
        if depth < 0:
            return True
    return False


def _safe_tar_members(tf: tarfile.TarFile, archive: Path) -> list[tarfile.TarInfo]:
    members = tf.getmembers()
    for member in members:
        _check_member(member.name, archive)
        if member.issym() or member.islnk():
            target = PurePosixPath(member.linkname)
            if member.issym():
                target = PurePosixPath(member.name).parent / target
            if target.is_absolute() or _escapes(target):
                raise ExtractionError(
                    f"Unsafe link {member.name!r} -> {member.linkname!r} "
                    f"in archive {archive.name}"
                )
        elif member.isdev():
            raise ExtractionError(
                f"Device file {member.name!r} in archive {archive.name}"
            )
    return members


def extract_archive(archive: Path, destination: Path) -> None:
    """Extract a .zip or .tar.gz archive into destination.

    Args:
        archive: Archive file; the format is implied by its extension.
        destination: Directory to extract into (created if missing).

    Raises:
        ExtractionError: If the archive type is unsupported, the archive is
            malformed, or it contains unsafe paths.

    """
    fmt = archive_format(archive.name)
    destination.mkdir(parents=True, exist_ok=True)

    try:
        if fmt == "zip":
            with zipfile.ZipFile(archive, "r") as zf:
                for name in zf.namelist():
                    _check_member(name, archive)
                zf.extractall(destination)
        else:
            with tarfile.open(archive, "r:gz") as tf:
                members = _safe_tar_members(tf, archive)
                tf.extractall(destination, members=members, **_TAR_FILTER)
    except (zipfile.BadZipFile, tarfile.TarError, EOFError, OSError) as err:
        raise ExtractionError(f"Failed to extract {archive.name}: {err}") from err


def pack_directory(source: Path, archive: Path) -> None:
    """Write the contents of source into a gzip tarball.

    Paths inside the tarball are relative to source, and file modes
    (including the executable bit) are preserved.
    """
    with tarfile.open(archive, "w:gz") as tf:
        for path in sorted(source.rglob("*")):
            tf.add(path, arcname=path.relative_to(source).as_posix(), recursive=False)
