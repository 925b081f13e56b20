"""
Core functionality for goinstall.

This package contains the foundational modules the install pipeline depends
on: configuration, error taxonomy, HTTP transfers and stream plumbing.
"""

from .config import InstallerConfig, load_config

from .exceptions import (
    GoInstallError,
    ConfigError,
    OperationCancelled,
    UnsupportedPlatformError,
    NetworkError,
    HTTPStatusError,
    MissingContentLengthError,
    CacheError,
    CacheReadError,
    CacheWriteError,
    ChecksumMismatchError,
    ArchiveFormatError,
    InsecureArchiveError,
    FilesystemError,
)

from .platform import PlatformInfo, detect_platform

from .streams import MultiWriter, StreamingHasher, TransferProgress, format_progress

__all__ = [
    "InstallerConfig",
    "load_config",
    "GoInstallError",
    "ConfigError",
    "OperationCancelled",
    "UnsupportedPlatformError",
    "NetworkError",
    "HTTPStatusError",
    "MissingContentLengthError",
    "CacheError",
    "CacheReadError",
    "CacheWriteError",
    "ChecksumMismatchError",
    "ArchiveFormatError",
    "InsecureArchiveError",
    "FilesystemError",
    "PlatformInfo",
    "detect_platform",
    "MultiWriter",
    "StreamingHasher",
    "TransferProgress",
    "format_progress",
]
