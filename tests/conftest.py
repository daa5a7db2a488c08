"""
Pytest configuration and shared fixtures for fetchbin tests.

This module provides reusable fixtures and test utilities used across
the test suite: archive builders, GitHub release payloads, and a fake
release source so resolver and orchestration tests never touch the
network.
"""

from __future__ import annotations

import io
from pathlib import Path
import tarfile
from typing import Any
import zipfile

import pytest
import yaml

from fetchbin.github import ReleaseLookup
from fetchbin.logging import SilentLogger, set_global_logger

DOWNLOAD_BASE = "https://github.com/acme/widget/releases/download"


@pytest.fixture(autouse=True)
def _silent_global_logger():
    """Reset the global logger so CLI tests don't leak verbosity."""
    set_global_logger(SilentLogger())
    yield
    set_global_logger(SilentLogger())


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def create_yaml_file(tmp_test_dir: Path):
    """
    Factory fixture for creating temporary YAML files.

    Usage:
        yaml_path = create_yaml_file("tool.yaml", {"tool": {...}})
    """

    def _create(filename: str, data: dict[str, Any]) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f)
        return path

    return _create


def tar_gz_bytes(files: dict[str, bytes], mode: int = 0o755) -> bytes:
    """Build an in-memory .tar.gz from {member name: content}."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = mode
            tf.addfile(info, io.BytesIO(content))
    return buf.getvalue()


def zip_bytes(files: dict[str, bytes]) -> bytes:
    """Build an in-memory .zip from {member name: content}."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buf.getvalue()


@pytest.fixture
def make_tar_gz(tmp_test_dir: Path):
    """
    Factory fixture writing a .tar.gz archive to disk.

    Usage:
        archive = make_tar_gz("tool.tar.gz", {"bin/tool": b"..."})
    """

    def _make(filename: str, files: dict[str, bytes]) -> Path:
        path = tmp_test_dir / filename
        path.write_bytes(tar_gz_bytes(files))
        return path

    return _make


@pytest.fixture
def make_zip(tmp_test_dir: Path):
    """Factory fixture writing a .zip archive to disk."""

    def _make(filename: str, files: dict[str, bytes]) -> Path:
        path = tmp_test_dir / filename
        path.write_bytes(zip_bytes(files))
        return path

    return _make


def release_payload(tag: str, asset_names: list[str]) -> dict[str, Any]:
    """Shape of a GitHub release API response with the given assets."""
    return {
        "tag_name": tag,
        "assets": [
            {
                "name": name,
                "browser_download_url": f"{DOWNLOAD_BASE}/{tag}/{name}",
            }
            for name in asset_names
        ],
    }


WIDGET_ASSETS = [
    "widget_1.2.3_checksums.txt",
    "widget_1.2.3_linux_amd64.tar.gz",
    "widget_1.2.3_linux_amd64.tar.gz.sha256",
    "widget_1.2.3_linux_arm64.tar.gz",
    "widget_1.2.3_darwin_amd64.tar.gz",
    "widget_1.2.3_darwin_arm64.tar.gz",
    "widget_1.2.3_windows_amd64.zip",
    "widget_1.2.3_windows_arm64.zip",
]


class FakeReleaseSource:
    """In-memory release source recording every query it receives."""

    def __init__(self, releases: dict[str, dict[str, Any]], latest: str | None):
        self.releases = releases
        self.latest = latest
        self.calls: list[str] = []

    def get_latest_release(self) -> ReleaseLookup:
        self.calls.append("latest")
        if self.latest is None:
            return ReleaseLookup.miss("latest")
        return ReleaseLookup.hit("latest", self.releases[self.latest])

    def get_release_by_tag(self, tag: str) -> ReleaseLookup:
        self.calls.append(tag)
        if tag in self.releases:
            return ReleaseLookup.hit(tag, self.releases[tag])
        return ReleaseLookup.miss(tag)


@pytest.fixture
def widget_source() -> FakeReleaseSource:
    """Release source with v1.2.3 (latest) and v1.0.0 of acme/widget."""
    return FakeReleaseSource(
        {
            "v1.2.3": release_payload("v1.2.3", WIDGET_ASSETS),
            "v1.0.0": release_payload(
                "v1.0.0",
                [n.replace("1.2.3", "1.0.0") for n in WIDGET_ASSETS],
            ),
        },
        latest="v1.2.3",
    )


@pytest.fixture
def widget_config(tmp_test_dir: Path) -> dict[str, Any]:
    """Effective-style configuration for acme/widget with local directories."""
    return {
        "tool": {
            "name": "widget",
            "repo": "acme/widget",
            "binary": "widget",
            "asset_template": None,
            "os_aliases": {},
            "arch_aliases": {},
        },
        "version": "latest",
        "token": None,
        "release": {"asset_url": None, "asset_name": None},
        "cache": {
            "enabled": True,
            "dir": str(tmp_test_dir / "cache"),
            "prefix": "fetchbin",
        },
        "install": {"dir": str(tmp_test_dir / "install")},
        "download": {"timeout": None},
        "api": {"base_url": "https://api.github.com", "timeout": None},
    }
