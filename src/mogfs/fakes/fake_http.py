"""
Fake storage node transport for testing.

Objects are kept in memory by URL. Hosts listed in ``failing_hosts`` refuse
every connection, which is how tests make individual destinations fail.
"""
from __future__ import annotations

import io
import threading
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

from ..errors import TransportError
from ..tracker.base import Destination
from ..transport.base import ConnectionFactory

__all__ = ["FakeConnectionFactory", "FakeReadTransport", "FakeWriteTransport"]


class FakeReadTransport:
    def __init__(self, factory: FakeConnectionFactory, url: str, data: bytes) -> None:
        self.url = url
        self._factory = factory
        self._body = io.BytesIO(data)
        self.closed = False

    def read(self, size: int = -1) -> bytes:
        if self.closed:
            raise TransportError(f"Read from closed transport {self.url}", url=self.url)
        return self._body.read(size)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._factory._record("close_read", self.url)


class FakeWriteTransport:
    def __init__(self, factory: FakeConnectionFactory, url: str, expected_length: Optional[int]) -> None:
        self.url = url
        self.expected_length = expected_length
        self._factory = factory
        self._buffer = bytearray()
        self.finished = False
        self.aborted = False

    def write(self, data: bytes) -> int:
        if self.finished or self.aborted:
            raise TransportError(f"Write to closed transport {self.url}", url=self.url)
        if self._factory._host(self.url) in self._factory.failing_writes:
            raise TransportError(f"Connection reset by {self.url}", url=self.url)
        self._buffer.extend(data)
        return len(data)

    def finish(self) -> None:
        if self.finished or self.aborted:
            return
        self.finished = True
        self._factory._record("finish_write", self.url)
        if self.expected_length is not None and self.expected_length != len(self._buffer):
            raise TransportError(
                f"Upload to {self.url} sent {len(self._buffer)} bytes, expected {self.expected_length}",
                url=self.url,
            )
        self._factory.objects[self.url] = bytes(self._buffer)

    def abort(self) -> None:
        if self.finished or self.aborted:
            return
        self.aborted = True
        self._factory._record("abort_write", self.url)


class FakeConnectionFactory(ConnectionFactory):
    """
    In-memory storage nodes.

    This is a test double; not for production use.

    Attributes:
        objects: Stored content by URL
        failing_hosts: Hosts whose connections are refused (reads and writes)
        failing_writes: Hosts that accept uploads but fail on the first write
        events: ``(event, url)`` log of opens, finishes, aborts and closes
    """

    def __init__(self, failing_hosts: Iterable[str] = ()) -> None:
        self.objects: Dict[str, bytes] = {}
        self.failing_hosts = set(failing_hosts)
        self.failing_writes: set = set()
        self.events: List[Tuple[str, str]] = []
        self._mutex = threading.Lock()

    def open_read(self, destination: Destination) -> FakeReadTransport:
        url = destination.url
        self._refuse_if_failing(url)
        if url not in self.objects:
            raise TransportError(f"GET {url} returned HTTP 404", url=url, status_code=404)
        self._record("open_read", url)
        return FakeReadTransport(self, url, self.objects[url])

    def open_write(self, destination: Destination, expected_length: Optional[int] = None) -> FakeWriteTransport:
        url = destination.url
        self._refuse_if_failing(url)
        self._record("open_write", url)
        return FakeWriteTransport(self, url, expected_length)

    def content_length(self, destination: Destination) -> int:
        url = destination.url
        self._refuse_if_failing(url)
        if url not in self.objects:
            raise TransportError(f"HEAD {url} returned HTTP 404", url=url, status_code=404)
        return len(self.objects[url])

    def events_for(self, event: str) -> List[str]:
        """URLs recorded for one event type (test utility)."""
        return [url for name, url in self.events if name == event]

    def _refuse_if_failing(self, url: str) -> None:
        if self._host(url) in self.failing_hosts:
            self._record("refused", url)
            raise TransportError(f"Connection refused by {self._host(url)}", url=url)

    def _record(self, event: str, url: str) -> None:
        with self._mutex:
            self.events.append((event, url))

    @staticmethod
    def _host(url: str) -> str:
        return urlparse(url).hostname or ""
