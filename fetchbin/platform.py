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

"""Host platform detection for fetchbin.

Maps the running host's OS and CPU architecture onto the tokens used in
release asset filenames. Six combinations are supported:
linux/darwin/windows x amd64/arm64.

The host values are explicit parameters so the detector can be exercised
for any platform in tests; they default to the standard library's
platform.system() and platform.machine().

Example:
    Detect the current platform:
        ```python
        from fetchbin.platform import detect

        key = detect()
        print(key)              # linux-amd64
        print(key.archive_ext)  # .tar.gz
        ```

    Detect for an explicit host:
        ```python
        key = detect(system="Windows", machine="ARM64")
        print(key.executable_name("tool"))  # tool.exe
        ```
"""

from __future__ import annotations

from dataclasses import dataclass
import platform as _host

from fetchbin.exceptions import UnsupportedPlatformError

SUPPORTED_OS = ("linux", "darwin", "windows")
SUPPORTED_ARCH = ("amd64", "arm64")

_OS_MAP = {
    "linux": "linux",
    "darwin": "darwin",
    "windows": "windows",
}

_ARCH_MAP = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv8": "arm64",
    "armv8l": "arm64",
}


@dataclass(frozen=True)
class PlatformKey:
    """The (OS, architecture) pair a run fetches assets for.

    Attributes:
        os: One of "linux", "darwin", "windows".
        arch: One of "amd64", "arm64".
    """

    os: str
    arch: str

    def __post_init__(self) -> None:
        if self.os not in SUPPORTED_OS or self.arch not in SUPPORTED_ARCH:
            raise UnsupportedPlatformError(
                f"Unsupported platform: {self.os}/{self.arch}"
            )

    def __str__(self) -> str:
        return f"{self.os}-{self.arch}"

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def archive_ext(self) -> str:
        """Archive suffix release assets use for this platform."""
        return ".zip" if self.is_windows else ".tar.gz"

    @property
    def executable_suffix(self) -> str:
        return ".exe" if self.is_windows else ""

    def executable_name(self, binary: str) -> str:
        """Return the on-disk executable name for a canonical binary name."""
        if self.is_windows and not binary.lower().endswith(".exe"):
            return binary + ".exe"
        return binary


def detect(system: str | None = None, machine: str | None = None) -> PlatformKey:
    """Detect the platform key for a host.

    Pure function of its inputs; makes no network calls and has no side
    effects.

    Args:
        system: OS name as reported by platform.system() (e.g., "Linux").
            Defaults to the running host.
        machine: Machine type as reported by platform.machine()
            (e.g., "x86_64"). Defaults to the running host.

    Returns:
        The detected platform key.

    Raises:
        UnsupportedPlatformError: If the OS or architecture is not supported.

    """
    if system is None:
        system = _host.system()
    if machine is None:
        machine = _host.machine()

    os_token = _OS_MAP.get(system.strip().lower())
    if os_token is None:
        raise UnsupportedPlatformError(
            f"Unsupported operating system: {system!r}"
        )

    arch_token = _ARCH_MAP.get(machine.strip().lower())
    if arch_token is None:
        raise UnsupportedPlatformError(
            f"Unsupported CPU architecture: {machine!r}"
        )

    return PlatformKey(os=os_token, arch=arch_token)
