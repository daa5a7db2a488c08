"""
Tests for fetchbin.io.download module.

Tests download functionality including:
- Basic downloads and hashing
- Redirects
- Content-Disposition and explicit file names
- Atomic writes
- Failure modes (non-2xx, transport errors)
"""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest
import requests
import requests_mock

from fetchbin.exceptions import DownloadError
from fetchbin.io.download import download_file, make_session


def _sha256(data: bytes) -> str:
    """Helper to compute SHA-256 hash."""
    return hashlib.sha256(data).hexdigest()


def test_download_success(tmp_test_dir: Path) -> None:
    """Test basic successful download."""
    url = "https://example.com/widget.tar.gz"
    data = b"hello world"

    with requests_mock.Mocker() as m:
        m.get(url, content=data, headers={"Content-Length": str(len(data))})
        path, digest = download_file(url, tmp_test_dir)

    assert path == tmp_test_dir / "widget.tar.gz"
    assert path.read_bytes() == data
    assert digest == _sha256(data)


def test_follows_redirect_and_uses_final_url_name(tmp_test_dir: Path) -> None:
    """Test that redirects are followed and the final URL name is used."""
    start = "https://github.com/acme/widget/releases/download/v1/widget.zip"
    final = "https://objects.example.com/payload.zip"

    with requests_mock.Mocker() as m:
        m.get(start, status_code=302, headers={"Location": final})
        m.get(final, content=b"abc", headers={"Content-Length": "3"})
        path, _ = download_file(start, tmp_test_dir)

    assert path.name == "payload.zip"
    assert path.read_bytes() == b"abc"


def test_explicit_filename_wins(tmp_test_dir: Path) -> None:
    """Test that the asset name is kept even after a redirect."""
    start = "https://github.com/acme/widget/releases/download/v1/widget.zip"
    final = "https://objects.example.com/6a1b2c?sig=abc"

    with requests_mock.Mocker() as m:
        m.get(start, status_code=302, headers={"Location": final})
        m.get(final, content=b"abc")
        path, _ = download_file(start, tmp_test_dir, filename="widget.zip")

    assert path.name == "widget.zip"


def test_content_disposition_filename(tmp_test_dir: Path) -> None:
    """Test that Content-Disposition header overrides URL filename."""
    url = "https://example.com/dl"

    with requests_mock.Mocker() as m:
        m.get(
            url,
            content=b"abc",
            headers={"Content-Disposition": 'attachment; filename="thing.tar.gz"'},
        )
        path, _ = download_file(url, tmp_test_dir)

    assert path.name == "thing.tar.gz"


def test_content_disposition_cannot_escape(tmp_test_dir: Path) -> None:
    """Test that a server-supplied path is reduced to its file name."""
    url = "https://example.com/dl"

    with requests_mock.Mocker() as m:
        m.get(
            url,
            content=b"abc",
            headers={"Content-Disposition": 'attachment; filename="../../evil.zip"'},
        )
        path, _ = download_file(url, tmp_test_dir)

    assert path == tmp_test_dir / "evil.zip"


def test_non_2xx_raises(tmp_test_dir: Path) -> None:
    """Test that HTTP errors raise DownloadError and leave nothing behind."""
    url = "https://example.com/missing.zip"

    with requests_mock.Mocker() as m:
        m.get(url, status_code=404)

        with pytest.raises(DownloadError, match="404") as exc:
            download_file(url, tmp_test_dir)

    assert exc.value.stage == "download"
    assert list(tmp_test_dir.iterdir()) == []


def test_transport_error_raises(tmp_test_dir: Path) -> None:
    """Test that connection failures raise DownloadError."""
    url = "https://example.com/widget.zip"

    with requests_mock.Mocker() as m:
        m.get(url, exc=requests.exceptions.ConnectionError("reset"))

        with pytest.raises(DownloadError, match="reset"):
            download_file(url, tmp_test_dir)


def test_no_part_file_left_after_success(tmp_test_dir: Path) -> None:
    """Test that the temporary .part file is renamed away."""
    url = "https://example.com/widget.tar.gz"

    with requests_mock.Mocker() as m:
        m.get(url, content=b"x" * 4096)
        download_file(url, tmp_test_dir)

    assert sorted(p.name for p in tmp_test_dir.iterdir()) == ["widget.tar.gz"]


def test_creates_destination(tmp_test_dir: Path) -> None:
    url = "https://example.com/widget.tar.gz"
    dest = tmp_test_dir / "a" / "b"

    with requests_mock.Mocker() as m:
        m.get(url, content=b"x")
        path, _ = download_file(url, dest)

    assert path.parent == dest


def test_uses_given_session(tmp_test_dir: Path) -> None:
    """Test that a caller-provided session is used and left open."""
    url = "https://example.com/widget.tar.gz"
    session = make_session()

    with requests_mock.Mocker(session=session) as m:
        m.get(url, content=b"x")
        download_file(url, tmp_test_dir, session=session)
        assert m.call_count == 1
        assert m.last_request.headers["User-Agent"].startswith("fetchbin/")

    session.close()


def test_session_never_retries() -> None:
    """Test that the download session is single-attempt."""
    session = make_session()

    adapter = session.get_adapter("https://example.com")

    assert adapter.max_retries.total == 0
    session.close()
