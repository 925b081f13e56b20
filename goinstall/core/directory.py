"""
Cache directory layout for goinstall.

Directory Structure:
    Cache root (~/.goinstall/ or %USERPROFILE%\\.goinstall\\):
        - downloads/  : Raw release archives, one file per archive name
        - VERSION     : Raw reference listing fetched from the release index
"""

import os
from pathlib import Path

from goinstall.core.exceptions import ConfigError

DOWNLOADS_DIR_NAME = "downloads"
VERSION_FILE_NAME = "VERSION"


def get_global_cache_dir() -> Path:
    """
    Get the platform-specific default cache directory path.

    Returns:
        Path: The cache directory path.
            - Windows: %USERPROFILE%\\.goinstall
            - Linux/macOS: ~/.goinstall/

    Raises:
        ConfigError: If USERPROFILE is unset on Windows
    """
    if os.name == "nt":
        user_profile = os.environ.get("USERPROFILE")
        if not user_profile:
            raise ConfigError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine cache directory."
            )
        return Path(user_profile) / ".goinstall"
    return Path.home() / ".goinstall"


def get_downloads_dir(cache_dir: Path) -> Path:
    """Directory holding downloaded archives."""
    return Path(cache_dir) / DOWNLOADS_DIR_NAME


def get_version_file(cache_dir: Path) -> Path:
    """Path of the cached reference listing."""
    return Path(cache_dir) / VERSION_FILE_NAME
