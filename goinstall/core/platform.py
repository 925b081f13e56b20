"""
Host platform detection for goinstall.

Release archives are named after the distribution's own OS and architecture
vocabulary (``linux-amd64``, ``darwin-arm64``, ``windows-386``), so the
detected values are normalized to those names rather than to the host's
``platform.machine()`` spelling.

Usage:
    from goinstall.core.platform import detect_platform

    info = detect_platform()
    print(info.platform_string())  # e.g. 'linux-amd64'
"""

import functools
import platform
from dataclasses import dataclass

from goinstall.core.exceptions import UnsupportedPlatformError

SUPPORTED_OS = ("linux", "darwin", "windows", "freebsd")
SUPPORTED_ARCH = ("amd64", "arm64", "386", "armv6l", "ppc64le", "s390x")


@dataclass(frozen=True)
class PlatformInfo:
    """
    Platform identity in release-archive vocabulary.

    Attributes:
        os: Operating system ('linux', 'darwin', 'windows', 'freebsd')
        arch: CPU architecture ('amd64', 'arm64', '386', 'armv6l', ...)
    """

    os: str
    arch: str

    def platform_string(self) -> str:
        """
        Get canonical platform string used in archive names.

        Example:
            >>> PlatformInfo('linux', 'amd64').platform_string()
            'linux-amd64'
        """
        return f"{self.os}-{self.arch}"

    def __str__(self) -> str:
        return self.platform_string()


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect current platform information.

    This function is cached - it only runs detection once per process.

    Raises:
        UnsupportedPlatformError: If the operating system is not supported
    """
    return PlatformInfo(os=_detect_os(), arch=_detect_architecture())


def _detect_os() -> str:
    system = platform.system().lower()

    if system == "windows":
        return "windows"
    elif system == "linux":
        return "linux"
    elif system == "darwin":
        return "darwin"
    elif system == "freebsd":
        return "freebsd"
    else:
        raise UnsupportedPlatformError(f"Unsupported operating system: {system}")


def _detect_architecture() -> str:
    machine = platform.machine().lower()

    if machine in ("x86_64", "amd64", "x64"):
        return "amd64"
    elif machine in ("aarch64", "arm64"):
        return "arm64"
    elif machine in ("i386", "i686", "x86"):
        return "386"
    elif machine.startswith("arm"):
        return "armv6l"
    else:
        # ppc64le, s390x and friends already match archive naming
        return machine


def is_supported_platform(info: PlatformInfo) -> bool:
    """Check whether archives are published for this platform."""
    return info.os in SUPPORTED_OS and info.arch in SUPPORTED_ARCH


def clear_platform_cache():
    """
    Clear the platform detection cache.

    Useful for testing when platform information is patched.
    """
    detect_platform.cache_clear()


__all__ = [
    "PlatformInfo",
    "detect_platform",
    "is_supported_platform",
    "clear_platform_cache",
]
