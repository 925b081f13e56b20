"""
Release archive download with sidecar checksum verification.

The archive is streamed into ``<cache>/downloads/<name>`` while its SHA-256
is computed, then compared with the digest the server publishes at
``<url>.sha256``. Only an exact match yields an ``ArchiveFile``.
"""

import logging
import secrets
from typing import Optional

import requests

from goinstall.core.config import InstallerConfig
from goinstall.core.download import download_to_file, fetch_text
from goinstall.core.exceptions import ChecksumMismatchError
from goinstall.core.streams import CancelSignal, ProgressCallback
from goinstall.toolchain.target import ArchiveFile, DownloadTarget

logger = logging.getLogger(__name__)


class ArchiveFetcher:
    """
    Downloads release archives and verifies them against published digests.

    Example:
        >>> config = InstallerConfig()
        >>> fetcher = ArchiveFetcher(config, config.create_session())
        >>> archive = fetcher.download(DownloadTarget("1.21.0", "linux", "amd64"))
        >>> print(archive.path, archive.sha256)
    """

    def __init__(
        self, config: InstallerConfig, session: Optional[requests.Session] = None
    ):
        self.config = config
        self.session = session or config.create_session()

    def download(
        self,
        target: DownloadTarget,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[CancelSignal] = None,
    ) -> ArchiveFile:
        """
        Download target and verify it.

        Args:
            target: Archive to fetch
            progress_callback: Receives byte-count progress for the archive
            cancel_event: Checked between chunks of the archive body

        Returns:
            ArchiveFile for the verified archive on disk

        Raises:
            NetworkError: Transport failure on archive or digest request
            HTTPStatusError: Error status on archive or digest request
            ChecksumMismatchError: Computed digest differs from published one.
                The downloaded file is left in place for inspection.
            OperationCancelled: cancel_event was set mid-transfer
        """
        prefix = self.config.download_url_prefix
        url = target.url(prefix)
        destination = self.config.downloads_dir / target.name
        headers = {"User-Agent": self.config.user_agent.format(target=target.name)}

        actual, size = download_to_file(
            self.session,
            url,
            destination,
            timeout=self.config.timeout,
            headers=headers,
            progress_callback=progress_callback,
            cancel_event=cancel_event,
        )

        expected = self.fetch_published_digest(target)

        if not secrets.compare_digest(actual.encode("utf-8"), expected.encode("utf-8")):
            logger.error(
                f"Checksum mismatch for {target.name}: expected {expected}, got {actual}"
            )
            raise ChecksumMismatchError(expected, actual, path=destination)

        logger.info(f"Checksum verified for {target.name}")
        return ArchiveFile(target=target, path=destination, sha256=actual, size=size)

    def fetch_published_digest(self, target: DownloadTarget) -> str:
        """
        Fetch the sidecar digest for target.

        The document is the bare hex digest; surrounding whitespace is ignored.
        """
        url = target.checksum_url(self.config.download_url_prefix)
        logger.debug(f"Fetching checksum from {url}")
        return fetch_text(self.session, url, self.config.timeout).strip()
