"""
Storage node transport interfaces for mogfs.

A connection factory opens one HTTP transfer to one destination. Transports
are byte-stream-like and must be closed (read side) or finished/aborted
(write side) by their owner.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from ..tracker.base import Destination

__all__ = ["ReadTransport", "WriteTransport", "ConnectionFactory"]


@runtime_checkable
class ReadTransport(Protocol):
    """Download body of one GET request."""

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes (all remaining bytes when negative); b"" at EOF."""
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class WriteTransport(Protocol):
    """Upload body of one PUT request."""

    def write(self, data: bytes) -> int:
        ...

    def finish(self) -> None:
        """
        Complete the upload and check the node accepted it.

        Raises:
            TransportError: If the node rejected the upload or the connection failed
        """
        ...

    def abort(self) -> None:
        """Give up on the upload and release the connection. Never raises."""
        ...


@runtime_checkable
class ConnectionFactory(Protocol):
    """Protocol for opening transfers to storage nodes."""

    def open_read(self, destination: Destination) -> ReadTransport:
        ...

    def open_write(self, destination: Destination, expected_length: Optional[int] = None) -> WriteTransport:
        """
        Open an upload and wait for the node to accept it.

        Raises:
            TransportError: If the node cannot be reached or refuses the request
        """
        ...

    def content_length(self, destination: Destination) -> int:
        ...
