"""
Toolchain release handling for goinstall.

This module provides functionality for:
- Listing published releases newest first
- Downloading and verifying release archives
- Extracting archives into an installation directory
"""

from goinstall.toolchain.target import ArchiveFile, ArchiveFormat, DownloadTarget
from goinstall.toolchain.versions import (
    VersionCatalog,
    is_prerelease,
    normalize_version,
    parse_refs,
    sort_versions,
)
from goinstall.toolchain.fetcher import ArchiveFetcher
from goinstall.toolchain.extractor import (
    ArchiveExtractor,
    ExtractionResult,
    strip_root,
)
from goinstall.toolchain.installer import InstallPipeline, InstallResult, ProgressInfo

__all__ = [
    "ArchiveFile",
    "ArchiveFormat",
    "DownloadTarget",
    "VersionCatalog",
    "is_prerelease",
    "normalize_version",
    "parse_refs",
    "sort_versions",
    "ArchiveFetcher",
    "ArchiveExtractor",
    "ExtractionResult",
    "strip_root",
    "InstallPipeline",
    "InstallResult",
    "ProgressInfo",
]
