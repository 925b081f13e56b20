"""
Centralized exception hierarchy for goinstall.

Every stage of the install pipeline raises one of these so callers can tell
which stage failed and why without parsing messages.
"""

from pathlib import Path
from typing import Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class GoInstallError(Exception):
    """Base exception for all goinstall errors."""

    pass


class ConfigError(GoInstallError):
    """Configuration parsing or validation error."""

    pass


class OperationCancelled(GoInstallError):
    """Raised when a cancellation signal stops a transfer between chunks."""

    pass


class UnsupportedPlatformError(GoInstallError):
    """Host operating system has no published release archives."""

    pass


# ============================================================================
# Network Exceptions
# ============================================================================


class NetworkError(GoInstallError):
    """Transport-level failure reaching a remote endpoint."""

    def __init__(self, message: str, url: str = ""):
        self.url = url
        super().__init__(message)


class HTTPStatusError(NetworkError):
    """Endpoint was reachable but answered with an error status."""

    def __init__(self, url: str, status_code: int):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {url}", url=url)


class MissingContentLengthError(NetworkError):
    """Archive response carried no usable Content-Length header."""

    def __init__(self, url: str, value: Optional[str]):
        self.value = value
        super().__init__(
            f"Invalid or missing Content-Length ({value!r}) for {url}", url=url
        )


# ============================================================================
# Cache Exceptions
# ============================================================================


class CacheError(GoInstallError):
    """Base exception for version cache failures."""

    def __init__(self, message: str, path: Path):
        self.path = path
        super().__init__(message)


class CacheReadError(CacheError):
    """Cached reference listing could not be read."""

    pass


class CacheWriteError(CacheError):
    """Reference listing could not be written to the cache."""

    pass


# ============================================================================
# Integrity and Extraction Exceptions
# ============================================================================


class ChecksumMismatchError(GoInstallError):
    """Downloaded bytes do not match the server-published digest."""

    def __init__(self, expected: str, actual: str, path: Optional[Path] = None):
        self.expected = expected
        self.actual = actual
        self.path = path
        msg = f"Checksum mismatch: expected {expected}, got {actual}"
        if path is not None:
            msg += f" ({path})"
        super().__init__(msg)


class ArchiveFormatError(GoInstallError):
    """Archive is malformed or has an unexpected structure."""

    pass


class InsecureArchiveError(ArchiveFormatError):
    """Archive contains an entry that would land outside the destination."""

    pass


class FilesystemError(GoInstallError):
    """Failure creating or writing destination entries."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        super().__init__(message)
