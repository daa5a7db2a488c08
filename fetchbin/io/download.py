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

"""HTTP(S) asset download for fetchbin.

Key Features:

- **Single Attempt** - One request per run; retries are left to the
  surrounding workflow. The session is mounted with Retry(total=0) so
  urllib3 never retries behind our back.
- **Atomic Writes** - Downloads to a temporary .part file and renames on
  success, so a half-written archive never reaches the extractor.
- **Streamed Hashing** - SHA-256 is computed while streaming and logged
  for provenance.
- **Filename Detection** - Respects Content-Disposition headers, falls back
  to the final URL path after redirects.

Any non-2xx response or transport failure raises DownloadError.

Example:
    Basic download:
        ```python
        from pathlib import Path
        from fetchbin.io import download_file

        path, sha256 = download_file(
            "https://github.com/o/r/releases/download/v1/tool.tar.gz",
            Path("./scratch"),
        )
        ```

Note:
    Timeouts are per-request, not total download time. The default is no
    timeout at all; the CI job timeout is the backstop.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
import time
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from fetchbin import __version__
from fetchbin.exceptions import DownloadError
from fetchbin.logging import Logger, get_global_logger

# Stream size per chunk (1 MiB). Tune up/down if needed.
DEFAULT_CHUNK = 1024 * 1024


def _filename_from_cd(content_disposition: str) -> str | None:
    """
    Extract a filename from a Content-Disposition header if present.

    Example header:
      'attachment; filename="tool_linux_amd64.tar.gz"'
    """
    if not content_disposition:
        return None
    parts = [s.strip() for s in content_disposition.split(";")]
    for part in parts:
        if part.lower().startswith("filename="):
            value = part.split("=", 1)[1].strip().strip('"')
            # Never let the server pick a directory
            return Path(value).name or None
    return None


def _filename_from_url(url: str) -> str:
    """
    Derive a filename from the URL path. Fallback to a generic name if empty.
    """
    name = Path(urlparse(url).path).name
    return name or "download.bin"


def make_session() -> requests.Session:
    """
    Create a requests.Session for single-attempt asset downloads.

    - No automatic retries (Retry(total=0)); redirects are still followed
      by requests itself.
    - Sets a User-Agent identifying fetchbin.
    """
    s = requests.Session()
    retries = Retry(total=0, raise_on_status=False)
    s.headers.update(
        {
            "User-Agent": f"fetchbin/{__version__}",
            "Accept": "application/octet-stream",
        }
    )
    s.mount("http://", HTTPAdapter(max_retries=retries))
    s.mount("https://", HTTPAdapter(max_retries=retries))
    return s


def download_file(
    url: str,
    destination_folder: Path,
    *,
    filename: str | None = None,
    timeout: float | None = None,
    session: requests.Session | None = None,
    logger: Logger | None = None,
) -> tuple[Path, str]:
    """Download a URL into destination_folder.

    Follows redirects. Writes to <filename>.part then renames to <filename>
    on success.

    Args:
        url: Source URL.
        destination_folder: Folder to save into (created if missing).
        filename: Name to save as. Defaults to Content-Disposition, then the
            final URL path.
        timeout: Per-request timeout in seconds (None waits indefinitely).
        session: Optional session; a fresh single-attempt session is used
            otherwise.
        logger: Optional logger; defaults to the global logger.

    Returns:
        A tuple (file_path, sha256_hex).

    Raises:
        DownloadError: On non-2xx responses or transport failures.

    """
    logger = logger or get_global_logger()
    destination_folder = Path(destination_folder)
    destination_folder.mkdir(parents=True, exist_ok=True)

    logger.verbose("HTTP", f"GET {url}")

    owns_session = session is None
    if session is None:
        session = make_session()

    try:
        try:
            resp = session.get(url, stream=True, allow_redirects=True, timeout=timeout)
        except requests.exceptions.RequestException as err:
            raise DownloadError(f"download failed for {url}: {err}") from err

        for hist in resp.history:
            logger.debug(
                "HTTP",
                f"Redirect {hist.status_code} -> "
                f"{hist.headers.get('Location', 'unknown')}",
            )

        if not 200 <= resp.status_code < 300:
            resp.close()
            raise DownloadError(
                f"download failed for {url}: {resp.status_code} {resp.reason}"
            )

        logger.verbose("HTTP", f"Response: {resp.status_code} {resp.reason}")

        # Content-Disposition beats URL when naming the file.
        if filename is None:
            cd_name = _filename_from_cd(resp.headers.get("Content-Disposition", ""))
            filename = cd_name or _filename_from_url(resp.url)
        target = destination_folder / filename

        content_length = resp.headers.get("Content-Length")
        if content_length:
            size_mb = int(content_length) / (1024 * 1024)
            logger.debug("HTTP", f"Content-Length: {content_length} ({size_mb:.1f} MB)")

        tmp = target.with_suffix(target.suffix + ".part")
        logger.debug("FILE", f"Downloading to: {tmp}")

        sha = hashlib.sha256()
        started_at = time.time()

        try:
            with tmp.open("wb") as f:
                for chunk in resp.iter_content(chunk_size=DEFAULT_CHUNK):
                    if not chunk:
                        continue
                    f.write(chunk)
                    sha.update(chunk)
        except requests.exceptions.RequestException as err:
            tmp.unlink(missing_ok=True)
            raise DownloadError(f"download interrupted for {url}: {err}") from err
        finally:
            resp.close()

        digest = sha.hexdigest()
        tmp.replace(target)

        elapsed = time.time() - started_at
        logger.verbose("FILE", f"Downloaded {target.name} in {elapsed:.1f}s")
        logger.verbose("FILE", f"SHA-256: {digest}")

        return target, digest
    finally:
        if owns_session:
            session.close()
