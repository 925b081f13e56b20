"""
Streaming primitives shared by the download and extraction stages.

One blocking copy loop reads a chunk and hands it to a ``MultiWriter``,
which forwards it to every sink in order before the next chunk is read:

    file sink -> digest sink -> progress sink

Each byte therefore reaches every sink exactly once and in the same order.
Cancellation is honoured between chunks, never in the middle of one.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import BinaryIO, Callable, Iterable, Iterator, Optional, Protocol

from goinstall.core.exceptions import OperationCancelled

logger = logging.getLogger(__name__)

CHUNK_SIZE = 32 * 1024


class Writer(Protocol):
    def write(self, data: bytes) -> object: ...


class CancelSignal(Protocol):
    """Anything exposing ``is_set()``, typically a ``threading.Event``."""

    def is_set(self) -> bool: ...


@dataclass
class TransferProgress:
    """Progress information for one stream (an archive or an archive entry)."""

    label: str
    bytes_done: int
    total_bytes: int
    speed_bps: float = 0.0  # bytes per second
    eta_seconds: float = 0.0  # estimated time remaining

    @property
    def percentage(self) -> float:
        if self.total_bytes <= 0:
            return 100.0 if self.bytes_done == 0 else 0.0
        return self.bytes_done / self.total_bytes * 100

    def __str__(self) -> str:
        return format_progress(self)


ProgressCallback = Callable[[TransferProgress], None]


def format_progress(progress: TransferProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> p = TransferProgress("go.tar.gz", 52428800, 104857600, 1048576, 50)
        >>> format_progress(p)
        'go.tar.gz: 50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s'
    """
    mb_done = progress.bytes_done / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    return (
        f"{progress.label}: {mb_done:.1f}/{mb_total:.1f} MB "
        f"({progress.percentage:.1f}%) "
        f"at {speed_mbps:.1f} MB/s "
        f"ETA: {progress.eta_seconds:.0f}s"
    )


class StreamingHasher:
    """Compute a hash incrementally while the bytes stream past."""

    def __init__(self, algorithm: str = "sha256"):
        """
        Initialize streaming hasher.

        Args:
            algorithm: Hash algorithm ('sha256' or 'sha512')

        Raises:
            ValueError: If algorithm is not supported
        """
        self.algorithm = algorithm.lower()

        if self.algorithm == "sha256":
            self.hasher = hashlib.sha256()
        elif self.algorithm == "sha512":
            self.hasher = hashlib.sha512()
        else:
            raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    def write(self, data: bytes) -> int:
        self.hasher.update(data)
        return len(data)

    def hexdigest(self) -> str:
        """Lowercase hex digest of everything written so far."""
        return self.hasher.hexdigest()


class ProgressCounter:
    """
    Sink that counts bytes and reports a ``TransferProgress``.

    Reports are throttled to one per ``interval`` seconds, except the one
    that reaches ``total_bytes``, which is always delivered.
    """

    def __init__(
        self,
        label: str,
        total_bytes: int,
        callback: Optional[ProgressCallback] = None,
        interval: float = 0.5,
    ):
        self.label = label
        self.total_bytes = total_bytes
        self.callback = callback
        self.interval = interval
        self.bytes_done = 0
        self._start = time.monotonic()
        self._last_report: Optional[int] = None
        self._last_report_time = 0.0

    def write(self, data: bytes) -> int:
        self.bytes_done += len(data)
        self._report()
        return len(data)

    def finish(self) -> None:
        """Deliver a final report if the last one was throttled away."""
        if self.callback and self._last_report != self.bytes_done:
            self._report(force=True)

    def _report(self, force: bool = False) -> None:
        if not self.callback:
            return

        now = time.monotonic()
        done = self.bytes_done >= self.total_bytes
        if not (
            force
            or done
            or self._last_report is None
            or now - self._last_report_time >= self.interval
        ):
            return

        elapsed = now - self._start
        speed = self.bytes_done / elapsed if elapsed > 0 else 0.0
        remaining = max(self.total_bytes - self.bytes_done, 0)
        eta = remaining / speed if speed > 0 else 0.0

        self.callback(
            TransferProgress(
                label=self.label,
                bytes_done=self.bytes_done,
                total_bytes=self.total_bytes,
                speed_bps=speed,
                eta_seconds=eta,
            )
        )
        self._last_report = self.bytes_done
        self._last_report_time = now


class MultiWriter:
    """
    Composite writer forwarding each chunk to an ordered set of sinks.

    A short write from any sink is an error; the chunk is never split
    across sinks or retried.
    """

    def __init__(self, *sinks: Writer):
        self.sinks = sinks

    def write(self, data: bytes) -> int:
        for sink in self.sinks:
            written = sink.write(data)
            if written is not None and written != len(data):
                raise OSError(
                    f"Short write to {type(sink).__name__}: {written} of {len(data)} bytes"
                )
        return len(data)


def iter_chunks(reader: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield successive chunks from a binary file-like object."""
    while chunk := reader.read(chunk_size):
        yield chunk


def copy_stream(
    chunks: Iterable[bytes],
    writer: Writer,
    cancel_event: Optional[CancelSignal] = None,
) -> int:
    """
    Copy every chunk to writer, checking for cancellation between chunks.

    Args:
        chunks: Source of byte chunks (response body, archive member, ...)
        writer: Destination, usually a ``MultiWriter``
        cancel_event: Optional signal; when set the copy stops before the
            next chunk is written

    Returns:
        Total number of bytes copied

    Raises:
        OperationCancelled: If cancel_event was set
    """
    total = 0
    for chunk in chunks:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelled(f"Cancelled after {total} bytes")
        if not chunk:
            continue
        writer.write(chunk)
        total += len(chunk)
    return total
