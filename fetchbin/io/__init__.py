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

"""Input/Output operations for fetchbin.

Modules:

download : module
    Single-attempt HTTP(S) download with atomic writes and hashing.
archive : module
    Safe .zip / .tar.gz extraction and directory packing.

Example:
    from pathlib import Path
    from fetchbin.io import download_file, extract_archive

    archive, sha256 = download_file(url, Path("./scratch"))
    extract_archive(archive, Path("./scratch/extracted"))

"""

from .archive import archive_format, extract_archive, pack_directory
from .download import download_file, make_session

__all__ = [
    "archive_format",
    "download_file",
    "extract_archive",
    "make_session",
    "pack_directory",
]
