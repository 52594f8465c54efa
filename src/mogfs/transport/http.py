"""
HTTP transport to storage nodes.

Provides GET/HEAD/PUT transfers against storage node URLs with a shared
httpx connection pool. Uploads are streamed: a worker thread runs the PUT
request and pulls the body from a bounded queue fed by ``write()``.
"""
from __future__ import annotations

import logging
import queue
import threading
from typing import Iterator, Optional

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..errors import TransportError
from ..settings import Settings
from ..tracker.base import Destination

__all__ = ["HttpConnectionFactory", "HttpReadTransport", "HttpWriteTransport", "CHUNK_SIZE"]

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

# upper bound on waiting for an aborted upload worker to stop
ABORT_JOIN_TIMEOUT_S = 1.0

_END = object()


class HttpReadTransport:
    """Body of a streamed GET response, readable in arbitrary sizes."""

    def __init__(self, response: httpx.Response, chunk_size: int = CHUNK_SIZE) -> None:
        self._response = response
        self._chunks: Iterator[bytes] = response.iter_bytes(chunk_size)
        self._buffer = bytearray()
        self._eof = False
        self.url = str(response.request.url)

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            while self._fill():
                pass
            data = bytes(self._buffer)
            self._buffer.clear()
            return data

        while len(self._buffer) < size and self._fill():
            pass
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    def close(self) -> None:
        self._response.close()

    def _fill(self) -> bool:
        """Append the next chunk to the buffer; False at EOF."""
        if self._eof:
            return False
        try:
            chunk = next(self._chunks)
        except StopIteration:
            self._eof = True
            return False
        except httpx.HTTPError as e:
            raise TransportError(f"Read from {self.url} failed: {e}", url=self.url) from e
        self._buffer.extend(chunk)
        return True


class HttpWriteTransport:
    """
    Streaming PUT of one upload.

    ``accept()`` starts the request and returns once the node has accepted
    the connection and request headers, i.e. once the request body is being
    pulled. ``write()`` queues bytes for the worker; ``finish()`` ends the body
    and waits for the node's response.
    """

    def __init__(self, client: httpx.Client, url: str, expected_length: Optional[int] = None,
                 timeout_s: float = 30.0, buffer_chunks: int = 16) -> None:
        self.url = url
        self.expected_length = expected_length
        self._client = client
        self._timeout_s = timeout_s
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=buffer_chunks)
        self._ready = threading.Event()
        self._done = threading.Event()
        self._aborted = threading.Event()
        self._response: Optional[httpx.Response] = None
        self._error: Optional[BaseException] = None
        self._finished = False
        self._thread = threading.Thread(target=self._run, name=f"mogfs-upload {url}", daemon=True)

    def accept(self) -> None:
        """
        Start the upload and wait for the node to accept it.

        Raises:
            TransportError: If the node failed or did not accept within the timeout
        """
        self._thread.start()
        if not self._ready.wait(self._timeout_s):
            self.abort()
            raise TransportError(f"Timed out waiting for {self.url} to accept upload", url=self.url)
        if self._done.is_set():
            self._raise_failure()

    def write(self, data: bytes) -> int:
        if self._finished:
            raise TransportError(f"Upload to {self.url} already finished", url=self.url)
        if not self._put(bytes(data)):
            self._raise_failure()
        return len(data)

    def finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        self._put(_END)
        self._thread.join()
        self._raise_failure()

    def abort(self) -> None:
        self._finished = True
        self._aborted.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(ABORT_JOIN_TIMEOUT_S)

    def _run(self) -> None:
        headers = {}
        if self.expected_length is not None:
            headers["Content-Length"] = str(self.expected_length)
        try:
            self._response = self._client.request("PUT", self.url, content=self._body(), headers=headers)
        except Exception as e:
            self._error = e
        finally:
            self._done.set()
            self._ready.set()

    def _body(self) -> Iterator[bytes]:
        self._ready.set()
        while True:
            if self._aborted.is_set():
                raise TransportError(f"Upload to {self.url} aborted", url=self.url)
            try:
                item = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            if item is _END:
                return
            yield item

    def _put(self, item: object) -> bool:
        """Queue ``item`` for the worker; False if the worker has already stopped."""
        while not self._done.is_set():
            try:
                self._queue.put(item, timeout=0.1)
                return True
            except queue.Full:
                continue
        return False

    def _raise_failure(self) -> None:
        if self._error is not None:
            raise TransportError(f"Upload to {self.url} failed: {self._error}", url=self.url) from self._error
        response = self._response
        if response is None:
            if self._done.is_set():
                raise TransportError(f"Upload to {self.url} ended without a response", url=self.url)
            return
        if not response.is_success:
            raise TransportError(
                f"Upload to {self.url} rejected with HTTP {response.status_code}",
                url=self.url,
                status_code=response.status_code,
            )
        if not self._finished:
            # the node answered before the body was complete
            raise TransportError(f"Upload to {self.url} ended early", url=self.url)


class HttpConnectionFactory:
    """
    Connection factory for storage nodes over HTTP.

    One httpx.Client (and its connection pool) is shared by all transfers;
    httpx clients are safe to use from several threads.
    """

    def __init__(self, *, settings: Settings, client: Optional[httpx.Client] = None) -> None:
        self._settings = settings
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(settings.http_timeout_s),
            follow_redirects=True,
            headers={"User-Agent": "mogfs/0.1.0"},
        )
        logger.debug(f"HTTP transport timeout: {settings.http_timeout_s}s, retry: {settings.http_retry}")

    def open_read(self, destination: Destination) -> HttpReadTransport:
        url = destination.url
        logger.debug(f"GET {url}")
        response = self._send("GET", url, stream=True)
        return HttpReadTransport(response)

    def open_write(self, destination: Destination, expected_length: Optional[int] = None) -> HttpWriteTransport:
        logger.debug(f"PUT {destination.url} (expected length {expected_length})")
        transport = HttpWriteTransport(
            self.client,
            destination.url,
            expected_length=expected_length,
            timeout_s=self._settings.http_timeout_s,
            buffer_chunks=self._settings.upload_buffer_chunks,
        )
        transport.accept()
        return transport

    def content_length(self, destination: Destination) -> int:
        url = destination.url
        response = self._send("HEAD", url)
        length = response.headers.get("Content-Length")
        if length is None or not length.isdigit():
            raise TransportError(f"No Content-Length returned by {url}", url=url)
        return int(length)

    def _send(self, method: str, url: str, stream: bool = False) -> httpx.Response:
        """Send a request, retrying timeouts ``http_retry`` extra times."""
        retrying = Retrying(
            stop=stop_after_attempt(self._settings.http_retry + 1),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(httpx.TimeoutException),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    request = self.client.build_request(method, url)
                    response = self.client.send(request, stream=stream)
        except httpx.RequestError as e:
            raise TransportError(f"{method} {url} failed: {e}", url=url) from e

        if not response.is_success:
            response.close()
            raise TransportError(
                f"{method} {url} returned HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        return response

    def close(self) -> None:
        """Close the HTTP connection pool."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
