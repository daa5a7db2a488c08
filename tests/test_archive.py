"""
Tests for fetchbin.io.archive module.

Tests archive handling including:
- Format detection from the file name
- .tar.gz and .zip extraction
- Path traversal and unsafe link rejection
- Packing a directory for the cache store
"""

from __future__ import annotations

import io
from pathlib import Path
import tarfile

import pytest

from fetchbin.exceptions import ExtractionError
from fetchbin.io.archive import archive_format, extract_archive, pack_directory


class TestArchiveFormat:
    """Tests for archive_format()."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("tool.zip", "zip"),
            ("TOOL.ZIP", "zip"),
            ("tool.tar.gz", "tar.gz"),
            ("tool.tgz", "tar.gz"),
        ],
    )
    def test_supported(self, name, expected):
        assert archive_format(name) == expected

    @pytest.mark.parametrize("name", ["tool.tar.xz", "tool.7z", "tool"])
    def test_unsupported(self, name):
        with pytest.raises(ExtractionError, match="Unsupported archive type"):
            archive_format(name)


class TestExtractArchive:
    """Tests for extract_archive()."""

    def test_tar_gz(self, make_tar_gz, tmp_test_dir):
        """Test extracting a tarball with a nested layout."""
        archive = make_tar_gz(
            "w.tar.gz", {"widget-1.0/widget": b"bin", "widget-1.0/README": b"r"}
        )
        dest = tmp_test_dir / "out"

        extract_archive(archive, dest)

        assert (dest / "widget-1.0" / "widget").read_bytes() == b"bin"
        assert (dest / "widget-1.0" / "README").read_bytes() == b"r"

    def test_zip(self, make_zip, tmp_test_dir):
        """Test extracting a zip archive."""
        archive = make_zip("w.zip", {"widget.exe": b"MZ"})
        dest = tmp_test_dir / "out"

        extract_archive(archive, dest)

        assert (dest / "widget.exe").read_bytes() == b"MZ"

    def test_zip_traversal_rejected(self, make_zip, tmp_test_dir):
        """Test that a '..' member aborts before anything is written."""
        archive = make_zip("evil.zip", {"ok.txt": b"1", "../evil.txt": b"2"})
        dest = tmp_test_dir / "out"

        with pytest.raises(ExtractionError, match="Unsafe path") as exc:
            extract_archive(archive, dest)

        assert exc.value.stage == "extract"
        assert not (tmp_test_dir / "evil.txt").exists()
        assert not (dest / "ok.txt").exists()

    def test_tar_absolute_path_rejected(self, make_tar_gz, tmp_test_dir):
        archive = make_tar_gz("evil.tar.gz", {"/etc/evil": b"x"})

        with pytest.raises(ExtractionError, match="Unsafe path"):
            extract_archive(archive, tmp_test_dir / "out")

    def test_tar_escaping_symlink_rejected(self, tmp_test_dir):
        """Test that a symlink pointing outside the destination is refused."""
        archive = tmp_test_dir / "link.tar.gz"
        with tarfile.open(archive, "w:gz") as tf:
            info = tarfile.TarInfo("bin/widget")
            info.type = tarfile.SYMTYPE
            info.linkname = "../../../usr/bin/widget"
            tf.addfile(info)

        with pytest.raises(ExtractionError, match="Unsafe link"):
            extract_archive(archive, tmp_test_dir / "out")

    def test_tar_internal_symlink_allowed(self, tmp_test_dir):
        """Test that a symlink within the archive is fine."""
        archive = tmp_test_dir / "link.tar.gz"
        with tarfile.open(archive, "w:gz") as tf:
            data = b"bin"
            info = tarfile.TarInfo("pkg/widget-1.0")
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
            link = tarfile.TarInfo("pkg/widget")
            link.type = tarfile.SYMTYPE
            link.linkname = "widget-1.0"
            tf.addfile(link)

        extract_archive(archive, tmp_test_dir / "out")

        assert (tmp_test_dir / "out" / "pkg" / "widget").read_bytes() == b"bin"

    def test_corrupt_archive(self, tmp_test_dir):
        """Test that a truncated download is an extraction error."""
        archive = tmp_test_dir / "broken.tar.gz"
        archive.write_bytes(b"\x1f\x8b\x08not really gzip")

        with pytest.raises(ExtractionError, match="Failed to extract"):
            extract_archive(archive, tmp_test_dir / "out")

    def test_not_a_zip(self, tmp_test_dir):
        archive = tmp_test_dir / "broken.zip"
        archive.write_bytes(b"<html>rate limited</html>")

        with pytest.raises(ExtractionError, match="Failed to extract"):
            extract_archive(archive, tmp_test_dir / "out")


class TestPackDirectory:
    """Tests for pack_directory()."""

    def test_relative_names_and_modes(self, tmp_test_dir):
        """Test that packing keeps relative paths and the executable bit."""
        source = tmp_test_dir / "src"
        (source / "sub").mkdir(parents=True)
        binary = source / "widget"
        binary.write_bytes(b"bin")
        binary.chmod(0o755)
        (source / "sub" / "data.txt").write_text("d")
        archive = tmp_test_dir / "packed.tar.gz"

        pack_directory(source, archive)

        with tarfile.open(archive, "r:gz") as tf:
            names = tf.getnames()
            mode = tf.getmember("widget").mode
        assert sorted(names) == ["sub", "sub/data.txt", "widget"]
        assert mode & 0o111
