"""
File system utilities for goinstall.

Provides the few disk operations the pipeline needs:
- Atomic whole-file writes for the reference-listing cache
- Recursive removal of a previous installation
- Containment check for archive entries
"""

import logging
import os
import shutil
import stat
import sys
import tempfile
from pathlib import Path
from typing import Union

from goinstall.core.exceptions import FilesystemError, InsecureArchiveError

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"


def atomic_write(file_path: Union[str, Path], content: bytes) -> None:
    """
    Write file atomically using temp file + rename.

    The file is never observed partially written: either the previous
    content or the complete new content is on disk.

    Args:
        file_path: Path to write to
        content: Bytes to write

    Raises:
        OSError: If the temporary file cannot be created, written or renamed
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory keeps the rename on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        with open(temp_fd, "wb") as f:
            f.write(content)
        temp_path.replace(file_path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def safe_rmtree(path: Union[str, Path]) -> None:
    """
    Remove a directory tree.

    Args:
        path: Directory to remove. Missing paths are ignored.

    Raises:
        FilesystemError: If path is not a directory or deletion fails

    Example:
        >>> safe_rmtree('/usr/local/go')
    """
    path = Path(path).absolute()

    if not path.exists() and not path.is_symlink():
        return

    if path.is_symlink() or not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}", path=path)

    def handle_remove_readonly(func, failed_path, exc):
        """Clear the read-only bit that blocks deletion, then retry once."""
        if IS_WINDOWS and not os.access(failed_path, os.W_OK):
            os.chmod(failed_path, stat.S_IWRITE)
            func(failed_path)
        else:
            raise exc

    try:
        if sys.version_info >= (3, 12):
            shutil.rmtree(path, onexc=handle_remove_readonly)
        else:
            shutil.rmtree(
                path, onerror=lambda f, p, ei: handle_remove_readonly(f, p, ei[1])
            )
    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}", path=path) from e

    logger.debug(f"Removed directory tree: {path}")


def validate_archive_path(name: str, destination: Path) -> Path:
    """
    Resolve an archive member path and make sure it stays inside destination.

    Args:
        name: Member path from the archive (after root stripping)
        destination: Extraction destination

    Returns:
        The joined destination path for the member

    Raises:
        InsecureArchiveError: If the member is absolute or escapes destination
    """
    target = destination / name
    resolved_dest = destination.resolve()
    resolved = target.resolve()

    if not (resolved == resolved_dest or resolved.is_relative_to(resolved_dest)):
        raise InsecureArchiveError(
            f"Archive member '{name}' attempts directory traversal. "
            "Extraction has been blocked."
        )
    return target
