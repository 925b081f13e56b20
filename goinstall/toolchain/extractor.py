"""
Release archive extraction.

Both container formats are reduced to one sequence of ``ArchiveEntry``
values (name, kind, mode, size, opener) and written out by a single loop:

- the fixed common root (``go/``) is stripped from every entry name
- directories are created with the entry's permission bits
- regular files are streamed to disk with their permission bits

The destination is removed before the first entry is written, so the
result reflects only the archive's contents.
"""

import gzip
import logging
import os
import stat
import tarfile
import zipfile
import zlib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, Optional, Union

from goinstall.core.exceptions import (
    ArchiveFormatError,
    FilesystemError,
    GoInstallError,
)
from goinstall.core.filesystem import safe_rmtree, validate_archive_path
from goinstall.core.streams import (
    CancelSignal,
    MultiWriter,
    ProgressCallback,
    ProgressCounter,
    copy_stream,
    iter_chunks,
)
from goinstall.toolchain.target import ArchiveFormat

logger = logging.getLogger(__name__)

DEFAULT_DIR_MODE = 0o755
DEFAULT_FILE_MODE = 0o644

_DECODER_ERRORS = (
    tarfile.TarError,
    zipfile.BadZipFile,
    gzip.BadGzipFile,
    zlib.error,
    EOFError,
)


class EntryKind(Enum):
    DIRECTORY = "directory"
    FILE = "file"
    OTHER = "other"  # links, devices, fifos


@dataclass
class ArchiveEntry:
    """One member of an archive, independent of the container format."""

    name: str
    kind: EntryKind
    mode: int
    size: int = 0
    open: Optional[Callable[[], BinaryIO]] = None


@dataclass
class ExtractionResult:
    """Summary of an extraction run."""

    destination: Path
    directories: int = 0
    files: int = 0
    skipped: int = 0
    bytes_written: int = 0


def strip_root(name: str, root: str) -> str:
    """
    Remove a single leading ``root/`` component from an entry name.

    The root directory itself maps to the empty name. Entries outside the
    root pass through unchanged.

    Example:
        >>> strip_root("go/bin/gofmt", "go")
        'bin/gofmt'
        >>> strip_root("README", "go")
        'README'
    """
    if not root:
        return name
    prefix = f"{root}/"
    if name.startswith(prefix):
        return name[len(prefix):]
    return name


def _iter_tar_gz(archive_path: Path) -> Iterator[ArchiveEntry]:
    with tarfile.open(archive_path, "r:gz") as tar:
        for member in tar:
            if member.isdir():
                # tarfile drops the trailing slash of directory names
                yield ArchiveEntry(member.name + "/", EntryKind.DIRECTORY, member.mode)
            elif member.isreg():
                yield ArchiveEntry(
                    member.name,
                    EntryKind.FILE,
                    member.mode,
                    member.size,
                    lambda m=member: tar.extractfile(m),
                )
            else:
                yield ArchiveEntry(member.name, EntryKind.OTHER, member.mode)


def _iter_zip(archive_path: Path) -> Iterator[ArchiveEntry]:
    with zipfile.ZipFile(archive_path, "r") as zf:
        for info in zf.infolist():
            # Unix mode lives in the high word of external_attr; zero when
            # the archive was written on a system without one
            unix_mode = info.external_attr >> 16
            mode = stat.S_IMODE(unix_mode)

            if info.is_dir():
                yield ArchiveEntry(
                    info.filename, EntryKind.DIRECTORY, mode or DEFAULT_DIR_MODE
                )
            elif stat.S_ISLNK(unix_mode):
                yield ArchiveEntry(info.filename, EntryKind.OTHER, mode)
            else:
                yield ArchiveEntry(
                    info.filename,
                    EntryKind.FILE,
                    mode or DEFAULT_FILE_MODE,
                    info.file_size,
                    lambda i=info: zf.open(i),
                )


_READERS = {
    ArchiveFormat.TAR_GZIP: _iter_tar_gz,
    ArchiveFormat.ZIP: _iter_zip,
}


def _clear_destination(destination: Path) -> None:
    if destination.is_symlink() or (
        destination.exists() and not destination.is_dir()
    ):
        try:
            destination.unlink()
        except OSError as e:
            raise FilesystemError(
                f"Failed to remove '{destination}': {e}", path=destination
            ) from e
        logger.debug(f"Removed non-directory destination: {destination}")
        return
    safe_rmtree(destination)


class ArchiveExtractor:
    """
    Extracts a release archive into a destination directory.

    Example:
        >>> extractor = ArchiveExtractor(progress_callback=print)
        >>> extractor.extract(Path("go1.21.0.linux-amd64.tar.gz"),
        ...                   Path("/usr/local/go"), ArchiveFormat.TAR_GZIP)
    """

    def __init__(
        self,
        root: str = "go",
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[CancelSignal] = None,
        allow_unsafe_paths: bool = False,
    ):
        """
        Args:
            root: Common top-level directory stripped from entry names
            progress_callback: Receives per-entry byte progress
            cancel_event: Checked between chunks of each entry
            allow_unsafe_paths: Skip the containment check for entries. Only
                for archives from a fully trusted source.
        """
        self.root = root
        self.progress_callback = progress_callback
        self.cancel_event = cancel_event
        self.allow_unsafe_paths = allow_unsafe_paths

    def extract(
        self,
        archive_path: Union[str, Path],
        destination: Union[str, Path],
        archive_format: ArchiveFormat,
    ) -> ExtractionResult:
        """
        Replace destination with the contents of archive_path.

        Args:
            archive_path: Archive on disk
            destination: Directory to (re)create. A file or symlink already
                at this path is removed; a symlink's target is left alone.
            archive_format: Container format, chosen by the target platform

        Returns:
            ExtractionResult with entry counts

        Raises:
            ArchiveFormatError: Archive is missing, corrupt or unreadable
            InsecureArchiveError: An entry would be written outside destination
            FilesystemError: A directory or file could not be created or written
            OperationCancelled: cancel_event was set
        """
        archive_path = Path(archive_path)
        destination = Path(destination)

        if not archive_path.is_file():
            raise ArchiveFormatError(f"Archive not found: {archive_path}")

        reader = _READERS.get(archive_format)
        if reader is None:
            raise ArchiveFormatError(f"Unsupported archive format: {archive_format}")

        _clear_destination(destination)
        try:
            destination.mkdir(parents=True)
        except OSError as e:
            raise FilesystemError(
                f"Failed to create destination '{destination}': {e}", path=destination
            ) from e

        logger.info(f"Extracting {archive_path.name} to {destination}")
        result = ExtractionResult(destination=destination)

        try:
            for entry in reader(archive_path):
                self._extract_entry(entry, destination, result)
        except GoInstallError:
            raise
        except _DECODER_ERRORS as e:
            raise ArchiveFormatError(f"Corrupt archive {archive_path}: {e}") from e
        except OSError as e:
            raise ArchiveFormatError(f"Cannot read archive {archive_path}: {e}") from e

        logger.info(
            f"Extracted {result.files} files and {result.directories} directories"
        )
        return result

    def _extract_entry(
        self, entry: ArchiveEntry, destination: Path, result: ExtractionResult
    ) -> None:
        if entry.kind is EntryKind.OTHER:
            logger.debug(f"Skipping non-regular entry: {entry.name}")
            result.skipped += 1
            return

        name = strip_root(entry.name, self.root)

        if self.allow_unsafe_paths:
            path = destination / name
        else:
            path = validate_archive_path(name, destination)

        if entry.kind is EntryKind.DIRECTORY:
            try:
                path.mkdir(mode=stat.S_IMODE(entry.mode), parents=True, exist_ok=True)
            except OSError as e:
                raise FilesystemError(
                    f"Failed to create directory '{path}': {e}", path=path
                ) from e
            result.directories += 1
            return

        result.bytes_written += self._write_file(entry, name, path)
        result.files += 1

    def _write_file(self, entry: ArchiveEntry, name: str, path: Path) -> int:
        counter = ProgressCounter(name, entry.size, self.progress_callback)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(
                path, os.O_CREAT | os.O_TRUNC | os.O_WRONLY, stat.S_IMODE(entry.mode)
            )
        except OSError as e:
            raise FilesystemError(f"Failed to create file '{path}': {e}", path=path) from e

        with os.fdopen(fd, "wb") as out, entry.open() as src:
            try:
                written = copy_stream(
                    iter_chunks(src), MultiWriter(out, counter), self.cancel_event
                )
            except gzip.BadGzipFile:
                raise
            except OSError as e:
                raise FilesystemError(f"Failed to write '{path}': {e}", path=path) from e

        counter.finish()
        logger.debug(f"Extracted {name} ({written} bytes)")
        return written
