"""
HTTP transfer helpers with streaming digests and progress reporting.

This module provides:
- Small GET helpers that translate transport failures and error statuses
  into the goinstall exception taxonomy
- A streaming file download that fans each chunk out to the file, a
  running digest and a progress counter in one pass

There is no retry or resume logic: every failure is raised to
the caller, who may start the whole operation again.
"""

import logging
from pathlib import Path
from typing import Mapping, Optional

import requests
from requests.exceptions import RequestException
from urllib3.exceptions import HTTPError as TransportError

from goinstall.core.exceptions import (
    HTTPStatusError,
    MissingContentLengthError,
    NetworkError,
)
from goinstall.core.streams import (
    CHUNK_SIZE,
    CancelSignal,
    MultiWriter,
    ProgressCallback,
    ProgressCounter,
    StreamingHasher,
    copy_stream,
)

logger = logging.getLogger(__name__)


def http_get(
    session: requests.Session,
    url: str,
    timeout: float,
    headers: Optional[Mapping[str, str]] = None,
    stream: bool = False,
) -> requests.Response:
    """
    Issue a GET request and reject non-2xx answers.

    Args:
        session: Session carrying proxy and connection settings
        url: URL to fetch
        timeout: Request timeout in seconds
        headers: Extra request headers
        stream: Leave the body unread for streaming

    Returns:
        The response, status 2xx

    Raises:
        NetworkError: If the endpoint cannot be reached
        HTTPStatusError: If the status code is above 299
    """
    try:
        response = session.get(
            url, headers=dict(headers or {}), stream=stream, timeout=timeout
        )
    except RequestException as e:
        raise NetworkError(f"Cannot reach {url}: {e}", url=url) from e

    if response.status_code > 299:
        response.close()
        raise HTTPStatusError(url, response.status_code)

    return response


def fetch_bytes(session: requests.Session, url: str, timeout: float) -> bytes:
    """Fetch a whole (small) document into memory."""
    response = http_get(session, url, timeout)
    try:
        return response.content
    except RequestException as e:
        raise NetworkError(f"Failed reading response from {url}: {e}", url=url) from e
    finally:
        response.close()


def fetch_text(session: requests.Session, url: str, timeout: float) -> str:
    """Fetch a plain-text document, decoded as UTF-8."""
    return fetch_bytes(session, url, timeout).decode("utf-8", errors="replace")


def parse_content_length(value: Optional[str], url: str) -> int:
    """
    Parse a Content-Length header value.

    Raises:
        MissingContentLengthError: If the value is absent, non-numeric or negative
    """
    try:
        size = int(value)
    except (TypeError, ValueError):
        raise MissingContentLengthError(url, value) from None
    if size < 0:
        raise MissingContentLengthError(url, value)
    return size


def download_to_file(
    session: requests.Session,
    url: str,
    destination: Path,
    timeout: float,
    headers: Optional[Mapping[str, str]] = None,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_event: Optional[CancelSignal] = None,
    algorithm: str = "sha256",
) -> tuple[str, int]:
    """
    Stream a URL to a file while hashing it.

    Any existing file at destination is removed first; the body is always
    written from scratch. Bytes are stored and hashed exactly as received:
    a Content-Encoding applied in transit is not undone.

    Args:
        session: Session carrying proxy and connection settings
        url: URL to download
        destination: Local file path
        timeout: Request timeout in seconds
        headers: Extra request headers (e.g. User-Agent)
        progress_callback: Receives ``TransferProgress`` as bytes arrive
        cancel_event: Checked between chunks
        algorithm: Digest algorithm

    Returns:
        (hex digest of the written bytes, number of bytes written)

    Raises:
        NetworkError: Transport failure, or body shorter/longer than announced
        HTTPStatusError: Non-2xx response
        MissingContentLengthError: No usable Content-Length header
        OperationCancelled: cancel_event was set mid-transfer
        OSError: Local file could not be created or written
    """
    logger.info(f"Downloading from {url}")

    response = http_get(session, url, timeout, headers=headers, stream=True)
    try:
        total_size = parse_content_length(response.headers.get("Content-Length"), url)

        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.unlink(missing_ok=True)

        hasher = StreamingHasher(algorithm)
        counter = ProgressCounter(destination.name, total_size, progress_callback)

        with open(destination, "wb") as f:
            writer = MultiWriter(f, hasher, counter)
            # Undecoded body: Content-Length and the published digest describe
            # the bytes on the wire, whatever Content-Encoding was applied
            chunks = response.raw.stream(CHUNK_SIZE, decode_content=False)
            try:
                written = copy_stream(chunks, writer, cancel_event)
            except (RequestException, TransportError) as e:
                raise NetworkError(f"Download interrupted: {url}: {e}", url=url) from e
        counter.finish()
    finally:
        response.close()

    if written != total_size:
        raise NetworkError(
            f"Incomplete download of {url}: got {written} of {total_size} bytes",
            url=url,
        )

    logger.debug(f"Wrote {written} bytes to {destination}")
    return hasher.hexdigest(), written
