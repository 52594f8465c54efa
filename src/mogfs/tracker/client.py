"""
Socket tracker client.

Speaks the tracker line protocol over TCP. Connections are kept in a small
idle pool by SocketTrackerFactory and handed out for one command at a time.
"""
from __future__ import annotations

import logging
import socket
import threading
from typing import Callable, Dict, List, NoReturn, Optional, Sequence, Tuple

from ..errors import (
    KeyExistsAlreadyError,
    NoDestinationsError,
    TrackerCommunicationError,
    UnknownKeyError,
)
from .base import Destination, FileAttributes, KeyListing
from .protocol import TrackerResponseError, encode_request, numbered_values, parse_response

__all__ = ["SocketTracker", "SocketTrackerFactory"]

logger = logging.getLogger(__name__)

_NO_DESTINATION_CODES = {"no_devices", "no_domain_devices", "none_match"}


class SocketTracker:
    """
    Tracker bound to one open TCP connection.

    Not thread-safe: a tracker serves a single command at a time and is
    returned to its factory by ``close()``.
    """

    def __init__(self, sock: socket.socket, address: str,
                 on_close: Optional[Callable[["SocketTracker"], None]] = None) -> None:
        self._sock = sock
        self._file = sock.makefile("rwb")
        self._on_close = on_close
        self.address = address
        self.broken = False

    def exists(self, domain: str, key: str) -> bool:
        try:
            return bool(self.get_paths(domain, key))
        except UnknownKeyError:
            return False

    def resolve_read_destinations(self, domain: str, key: str) -> List[Destination]:
        return [Destination(url=path) for path in self.get_paths(domain, key)]

    def resolve_write_destinations(self, domain: str, key: str, storage_class: Optional[str],
                                   expected_length: Optional[int] = None) -> List[Destination]:
        try:
            args = self._request("create_open", domain=domain, key=key, **{"class": storage_class},
                                 multi_dest=1, size=expected_length)
        except TrackerResponseError as e:
            if e.code in _NO_DESTINATION_CODES:
                raise NoDestinationsError(
                    f"Failed to obtain destinations for domain={domain},key={key},storageClass={storage_class}",
                    code=e.code,
                ) from e
            raise

        fid = int(args["fid"]) if args.get("fid") else None
        destinations = []
        for index in range(1, int(args.get("dev_count") or 0) + 1):
            path = args.get(f"path_{index}")
            devid = args.get(f"devid_{index}")
            if path:
                destinations.append(Destination(url=path, devid=int(devid) if devid else None, fid=fid))

        if not destinations:
            raise NoDestinationsError(
                f"Failed to obtain destinations for domain={domain},key={key},storageClass={storage_class}"
            )
        return destinations

    def finalize(self, domain: str, key: str, destination: Destination, length: int) -> None:
        self._request("create_close", domain=domain, key=key, fid=destination.fid,
                      devid=destination.devid, path=destination.url, size=length)

    def delete(self, domain: str, key: str) -> None:
        try:
            self._request("delete", domain=domain, key=key)
        except TrackerResponseError as e:
            _raise_translated(e, domain, key)

    def rename(self, domain: str, from_key: str, to_key: str) -> None:
        try:
            self._request("rename", domain=domain, from_key=from_key, to_key=to_key)
        except TrackerResponseError as e:
            if e.code == "key_exists":
                raise KeyExistsAlreadyError(domain, to_key) from e
            _raise_translated(e, domain, from_key)

    def update_storage_class(self, domain: str, key: str, storage_class: str) -> None:
        try:
            self._request("updateclass", domain=domain, key=key, **{"class": storage_class})
        except TrackerResponseError as e:
            _raise_translated(e, domain, key)

    def get_attributes(self, domain: str, key: str) -> FileAttributes:
        try:
            args = self._request("file_info", domain=domain, key=key)
        except TrackerResponseError as e:
            _raise_translated(e, domain, key)
        return FileAttributes.model_validate(args)

    def get_paths(self, domain: str, key: str) -> List[str]:
        try:
            args = self._request("get_paths", domain=domain, key=key, noverify=1)
        except TrackerResponseError as e:
            _raise_translated(e, domain, key)
        return numbered_values(args, "path", "paths")

    def list_keys(self, domain: str, prefix: str, after: Optional[str] = None,
                  limit: Optional[int] = None) -> KeyListing:
        try:
            args = self._request("list_keys", domain=domain, prefix=prefix, after=after, limit=limit)
        except TrackerResponseError as e:
            if e.code == "none_match":
                return KeyListing(keys=[])
            raise
        keys = numbered_values(args, "key_", "key_count")
        return KeyListing(keys=keys, next_after=args.get("next_after") or None)

    def close(self) -> None:
        if self._on_close is not None:
            self._on_close(self)
        else:
            self.disconnect()

    def disconnect(self) -> None:
        """Close the underlying connection."""
        try:
            self._file.close()
        finally:
            self._sock.close()

    def _request(self, command: str, **args) -> Dict[str, str]:
        request = encode_request(command, args)
        logger.debug(f"tracker {self.address} <- {request!r}")
        try:
            self._file.write(request)
            self._file.flush()
            line = self._file.readline()
        except OSError as e:
            self.broken = True
            raise TrackerCommunicationError(f"Tracker {self.address} failed during {command}: {e}") from e

        if not line:
            self.broken = True
            raise TrackerCommunicationError(f"Tracker {self.address} closed the connection during {command}")

        response = line.decode("utf-8")
        logger.debug(f"tracker {self.address} -> {response.rstrip()!r}")
        return parse_response(response)

    def __repr__(self) -> str:
        return f"SocketTracker({self.address})"


def _raise_translated(error: TrackerResponseError, domain: str, key: str) -> NoReturn:
    if error.code == "unknown_key":
        raise UnknownKeyError(domain, key) from error
    if error.code == "key_exists":
        raise KeyExistsAlreadyError(domain, key) from error
    raise error


class SocketTrackerFactory:
    """
    Hands out SocketTrackers, reusing idle connections.

    New connections try the configured hosts in order, starting from the last
    host that answered; a host that refuses is skipped until the others fail.
    """

    def __init__(self, addresses: Sequence[Tuple[str, int]], timeout_s: float = 5.0,
                 max_idle: int = 4) -> None:
        if not addresses:
            raise ValueError("At least one tracker address is required")
        self._addresses = list(addresses)
        self._timeout_s = timeout_s
        self._max_idle = max_idle
        self._idle: List[SocketTracker] = []
        self._next = 0
        self._mutex = threading.Lock()

    def get_tracker(self) -> SocketTracker:
        with self._mutex:
            if self._idle:
                return self._idle.pop()
            start = self._next

        errors = []
        for offset in range(len(self._addresses)):
            index = (start + offset) % len(self._addresses)
            host, port = self._addresses[index]
            try:
                sock = socket.create_connection((host, port), timeout=self._timeout_s)
            except OSError as e:
                logger.warning(f"Tracker {host}:{port} unreachable: {e}")
                errors.append(f"{host}:{port} ({e})")
                continue
            with self._mutex:
                self._next = index
            return SocketTracker(sock, f"{host}:{port}", on_close=self._release)

        raise TrackerCommunicationError(f"No tracker reachable: {', '.join(errors)}")

    def _release(self, tracker: SocketTracker) -> None:
        with self._mutex:
            if not tracker.broken and len(self._idle) < self._max_idle:
                self._idle.append(tracker)
                return
        tracker.disconnect()

    def close(self) -> None:
        """Disconnect every idle tracker."""
        with self._mutex:
            idle, self._idle = self._idle, []
        for tracker in idle:
            tracker.disconnect()
