"""
Transfer streams handed back to callers.

A stream owns the transport it reads from or writes to and, when it was
returned by a file handle, the LockGuard for the handle's lock. ``close()`` is
the single point where both are released. Streams have no
finalizer: a stream that is never closed keeps its lock.
"""
from __future__ import annotations

import logging
from typing import Optional

from .locking import LockGuard
from .tracker.base import Destination, TrackerFactory
from .transport.base import ReadTransport, WriteTransport

__all__ = ["FileDownloadStream", "FileUploadStream", "close_quietly"]

logger = logging.getLogger(__name__)


def close_quietly(resource) -> None:
    """Close ``resource`` (if any), logging instead of raising I/O errors."""
    if resource is None:
        return
    try:
        resource.close()
    except OSError as e:
        logger.debug(f"Ignoring error while closing {resource!r}: {e}")


class _TransferStream:
    """Shared close/context-manager behaviour."""

    def __init__(self, destination: Destination, guard: Optional[LockGuard]) -> None:
        self.destination = destination
        self._guard = guard
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed stream")

    def _release_lock(self) -> None:
        if self._guard is not None:
            self._guard.release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        raise NotImplementedError


class FileDownloadStream(_TransferStream):
    """Readable stream over one storage node GET."""

    def __init__(self, transport: ReadTransport, destination: Destination,
                 guard: Optional[LockGuard] = None) -> None:
        super().__init__(destination, guard)
        self._transport = transport

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        self._check_open()
        return self._transport.read(size)

    def readinto(self, buffer) -> int:
        data = self.read(len(buffer))
        buffer[:len(data)] = data
        return len(data)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._transport.close()
        finally:
            self._release_lock()

    def __repr__(self) -> str:
        return f"FileDownloadStream({self.destination.url})"


class FileUploadStream(_TransferStream):
    """
    Writable stream over one storage node PUT.

    Closing finishes the upload, then confirms the key with the tracker
    (borrowing a fresh tracker from ``tracker_factory``), then releases the
    lock. A failure at any step propagates to the closer; the lock is
    released regardless.
    """

    def __init__(self, transport: WriteTransport, destination: Destination, *,
                 tracker_factory: TrackerFactory, domain: str, key: str,
                 guard: Optional[LockGuard] = None) -> None:
        super().__init__(destination, guard)
        self._transport = transport
        self._tracker_factory = tracker_factory
        self.domain = domain
        self.key = key
        self._written = 0
        self._failed = False

    @property
    def bytes_written(self) -> int:
        return self._written

    def writable(self) -> bool:
        return True

    def write(self, data: bytes) -> int:
        self._check_open()
        try:
            count = self._transport.write(data)
        except BaseException:
            self._failed = True
            raise
        self._written += count
        return count

    def flush(self) -> None:
        self._check_open()

    def abort(self) -> None:
        """Abandon the upload without confirming it with the tracker; releases the lock."""
        self._failed = True
        self.close()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            self.abort()
        else:
            self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            if self._failed:
                self._transport.abort()
                return
            try:
                self._transport.finish()
            except BaseException:
                self._transport.abort()
                raise
            tracker = self._tracker_factory.get_tracker()
            try:
                tracker.finalize(self.domain, self.key, self.destination, self._written)
            finally:
                tracker.close()
            logger.info(f"Uploaded {self._written} bytes for domain={self.domain},key={self.key} "
                        f"to {self.destination.url}")
        finally:
            self._release_lock()

    def __repr__(self) -> str:
        return f"FileUploadStream(domain={self.domain}, key={self.key}, {self.destination.url})"
