"""
Release archive identity.

A ``DownloadTarget`` names one archive on the distribution server, e.g.
``go1.21.0.linux-amd64.tar.gz``, and knows the URLs of the archive and of
its ``.sha256`` sidecar. The archive format follows the target OS, not the
host, so any target can be fetched and unpacked on any machine.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from goinstall.core.platform import PlatformInfo, detect_platform


class ArchiveFormat(Enum):
    """Container formats published by the distribution server."""

    TAR_GZIP = ".tar.gz"
    ZIP = ".zip"

    @property
    def extension(self) -> str:
        return self.value

    @classmethod
    def for_os(cls, os_name: str) -> "ArchiveFormat":
        """Windows releases ship as zip, everything else as gzip'd tar."""
        return cls.ZIP if os_name == "windows" else cls.TAR_GZIP


@dataclass(frozen=True)
class DownloadTarget:
    """
    One release archive for a (version, os, arch) triple.

    Attributes:
        version: Version tag as published (e.g. '1.21.0', '1.22rc1')
        os: Target operating system in archive vocabulary ('linux', 'windows')
        arch: Target architecture in archive vocabulary ('amd64', 'arm64')
        name_prefix: Literal prefix of archive names
    """

    version: str
    os: str
    arch: str
    name_prefix: str = "go"

    def __post_init__(self):
        for attr in ("version", "os", "arch"):
            value = getattr(self, attr)
            if not value or "/" in value or "\\" in value:
                raise ValueError(f"Invalid {attr} for download target: {value!r}")

    @classmethod
    def for_platform(
        cls, version: str, platform: Optional[PlatformInfo] = None
    ) -> "DownloadTarget":
        """
        Build a target for a platform, defaulting to the host.

        Example:
            >>> DownloadTarget.for_platform("1.21.0", PlatformInfo("linux", "amd64")).name
            'go1.21.0.linux-amd64.tar.gz'
        """
        platform = platform or detect_platform()
        return cls(version=version, os=platform.os, arch=platform.arch)

    @property
    def archive_format(self) -> ArchiveFormat:
        return ArchiveFormat.for_os(self.os)

    @property
    def name(self) -> str:
        """Archive file name, e.g. 'go1.21.0.linux-amd64.tar.gz'."""
        return (
            f"{self.name_prefix}{self.version}.{self.os}-{self.arch}"
            f"{self.archive_format.extension}"
        )

    def url(self, prefix: str) -> str:
        return f"{prefix.rstrip('/')}/{self.name}"

    def checksum_url(self, prefix: str) -> str:
        return f"{self.url(prefix)}.sha256"

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ArchiveFile:
    """A downloaded archive whose digest matched the published one."""

    target: DownloadTarget
    path: Path
    sha256: str
    size: int

    @property
    def archive_format(self) -> ArchiveFormat:
        return self.target.archive_format
