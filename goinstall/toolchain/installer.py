"""
Install pipeline: download, verify, extract.

The stages run strictly in sequence on the calling thread. The first
failure is raised unchanged; nothing is retried and nothing is rolled back.
In particular the destination has already been removed when extraction
fails part-way, and a mismatching archive stays in the downloads cache.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

import requests

from goinstall.core.config import InstallerConfig
from goinstall.core.exceptions import GoInstallError
from goinstall.core.streams import CancelSignal, TransferProgress
from goinstall.toolchain.extractor import ArchiveExtractor, ExtractionResult
from goinstall.toolchain.fetcher import ArchiveFetcher
from goinstall.toolchain.target import ArchiveFile, DownloadTarget
from goinstall.toolchain.versions import VersionCatalog

logger = logging.getLogger(__name__)


@dataclass
class ProgressInfo:
    """Progress of one pipeline stage."""

    phase: str
    """Current phase: 'downloading' or 'extracting'"""

    transfer: TransferProgress
    """Byte progress of the archive or of the entry being extracted"""


@dataclass
class InstallResult:
    """Result of a completed install."""

    target: DownloadTarget
    destination: Path
    archive: ArchiveFile
    extraction: ExtractionResult
    download_time: float
    """Time spent downloading and verifying in seconds"""
    extraction_time: float
    """Time spent extracting in seconds"""


class InstallPipeline:
    """
    Installs one release archive into a destination directory.

    A single HTTP session, built from the configuration, is shared by the
    version catalog and the fetcher.

    Example:
        >>> pipeline = InstallPipeline(InstallerConfig())
        >>> target = DownloadTarget.for_platform(pipeline.catalog.latest())
        >>> result = pipeline.install(target, Path("/usr/local/go"))
        >>> print(f"Installed {result.target} at {result.destination}")
    """

    def __init__(
        self,
        config: Optional[InstallerConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or InstallerConfig()
        self.session = session or self.config.create_session()
        self.catalog = VersionCatalog(self.config, self.session)
        self.fetcher = ArchiveFetcher(self.config, self.session)

    def list_versions(self) -> list[str]:
        """Published version tags, newest first."""
        return self.catalog.list_versions()

    def install(
        self,
        target: DownloadTarget,
        destination: Union[str, Path],
        progress_callback: Optional[Callable[[ProgressInfo], None]] = None,
        cancel_event: Optional[CancelSignal] = None,
    ) -> InstallResult:
        """
        Download, verify and extract target into destination.

        Args:
            target: Archive to install
            destination: Directory replaced by the archive contents
            progress_callback: Receives ProgressInfo for both stages
            cancel_event: Checked between chunks in both stages

        Returns:
            InstallResult with timing information

        Raises:
            GoInstallError: Subclass identifying the failing stage
        """
        destination = Path(destination)
        logger.info(f"Installing {target.name} into {destination}")

        def stage_progress(phase: str):
            if progress_callback is None:
                return None
            return lambda transfer: progress_callback(ProgressInfo(phase, transfer))

        try:
            download_start = time.monotonic()
            archive = self.fetcher.download(
                target,
                progress_callback=stage_progress("downloading"),
                cancel_event=cancel_event,
            )
            download_time = time.monotonic() - download_start
            logger.info(f"Download complete in {download_time:.2f}s")

            extraction_start = time.monotonic()
            extractor = ArchiveExtractor(
                root=self.config.archive_root,
                progress_callback=stage_progress("extracting"),
                cancel_event=cancel_event,
            )
            extraction = extractor.extract(
                archive.path, destination, archive.archive_format
            )
            extraction_time = time.monotonic() - extraction_start
            logger.info(f"Extraction complete in {extraction_time:.2f}s")
        except GoInstallError as e:
            logger.error(f"Install of {target.name} failed: {e}")
            raise

        return InstallResult(
            target=target,
            destination=destination,
            archive=archive,
            extraction=extraction,
            download_time=download_time,
            extraction_time=extraction_time,
        )

    def install_version(
        self,
        version: str,
        destination: Union[str, Path],
        progress_callback: Optional[Callable[[ProgressInfo], None]] = None,
        cancel_event: Optional[CancelSignal] = None,
    ) -> InstallResult:
        """Install version for the host platform."""
        target = DownloadTarget.for_platform(version)
        return self.install(target, destination, progress_callback, cancel_event)
