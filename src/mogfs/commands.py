"""
Commands executed against a tracker.

Each command performs one logical operation: it receives a borrowed tracker,
talks to it (and, for transfer commands, opens a stream afterwards) and
returns its result. Failures are raised, never returned. Only PutCommand
retries, by moving down the destination list.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Sequence, TypeVar

from .errors import NoDestinationsError
from .locking import LockGuard
from .streams import FileDownloadStream, FileUploadStream, close_quietly
from .tracker.base import Destination, FileAttributes, Tracker, TrackerFactory
from .transport.base import ConnectionFactory

__all__ = [
    "Command",
    "Executor",
    "ExistsCommand",
    "FileLengthCommand",
    "DeleteCommand",
    "RenameCommand",
    "UpdateStorageClassCommand",
    "GetAttributesCommand",
    "GetPathsCommand",
    "GetInputStreamCommand",
    "GetOutputStreamCommand",
    "PutCommand",
    "ListKeysCommand",
    "write_to_first_available",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class Command(Protocol[T_co]):
    """One operation against a tracker."""

    def execute(self, tracker: Tracker) -> T_co:
        ...


class Executor:
    """
    Runs commands with a tracker borrowed from a factory.

    The tracker is always closed after the command. Command failures are
    propagated unchanged; an I/O error while closing the tracker is only logged,
    so a result such as an open stream is never lost.
    """

    def __init__(self, tracker_factory: TrackerFactory) -> None:
        self._tracker_factory = tracker_factory

    def execute(self, command: Command[T]) -> T:
        logger.debug(f"Executing {command}")
        tracker = self._tracker_factory.get_tracker()
        try:
            return command.execute(tracker)
        finally:
            close_quietly(tracker)


@dataclass(frozen=True)
class ExistsCommand:
    domain: str
    key: str

    def execute(self, tracker: Tracker) -> bool:
        return tracker.exists(self.domain, self.key)


@dataclass(frozen=True)
class FileLengthCommand:
    """Content length as reported by the first read destination."""
    domain: str
    key: str
    http_factory: ConnectionFactory = field(repr=False)

    def execute(self, tracker: Tracker) -> int:
        destination = _first_read_destination(tracker, self.domain, self.key)
        return self.http_factory.content_length(destination)


@dataclass(frozen=True)
class DeleteCommand:
    domain: str
    key: str

    def execute(self, tracker: Tracker) -> None:
        tracker.delete(self.domain, self.key)


@dataclass(frozen=True)
class RenameCommand:
    domain: str
    key: str
    new_key: str

    def execute(self, tracker: Tracker) -> None:
        tracker.rename(self.domain, self.key, self.new_key)


@dataclass(frozen=True)
class UpdateStorageClassCommand:
    domain: str
    key: str
    storage_class: str

    def execute(self, tracker: Tracker) -> None:
        tracker.update_storage_class(self.domain, self.key, self.storage_class)


@dataclass(frozen=True)
class GetAttributesCommand:
    domain: str
    key: str

    def execute(self, tracker: Tracker) -> FileAttributes:
        return tracker.get_attributes(self.domain, self.key)


@dataclass(frozen=True)
class GetPathsCommand:
    domain: str
    key: str

    def execute(self, tracker: Tracker) -> List[str]:
        return list(tracker.get_paths(self.domain, self.key))


@dataclass(frozen=True)
class GetInputStreamCommand:
    """
    Open a download from the first read destination.

    The stream takes ownership of ``guard``; if the stream cannot be built the
    opened transport is closed here and the guard is left to the caller.
    """
    domain: str
    key: str
    http_factory: ConnectionFactory = field(repr=False)
    guard: Optional[LockGuard] = field(default=None, repr=False)

    def execute(self, tracker: Tracker) -> FileDownloadStream:
        destination = _first_read_destination(tracker, self.domain, self.key)
        transport = self.http_factory.open_read(destination)
        try:
            return FileDownloadStream(transport, destination, guard=self.guard)
        except BaseException:
            close_quietly(transport)
            raise


@dataclass(frozen=True)
class GetOutputStreamCommand:
    """
    Open an upload to the first write destination.

    There is no fallback to later destinations.
    """
    domain: str
    key: str
    storage_class: Optional[str]
    tracker_factory: TrackerFactory = field(repr=False)
    http_factory: ConnectionFactory = field(repr=False)
    guard: Optional[LockGuard] = field(default=None, repr=False)

    def execute(self, tracker: Tracker) -> FileUploadStream:
        destinations = _write_destinations(tracker, self.domain, self.key, self.storage_class)
        destination = destinations[0]
        logger.debug(f"Creating output stream to: {destination}")
        transport = self.http_factory.open_write(destination)
        try:
            return FileUploadStream(
                transport,
                destination,
                tracker_factory=self.tracker_factory,
                domain=self.domain,
                key=self.key,
                guard=self.guard,
            )
        except BaseException:
            transport.abort()
            raise


@dataclass(frozen=True)
class PutCommand:
    """Whole-buffer write, falling back through the destination list."""
    domain: str
    key: str
    storage_class: Optional[str]
    data: bytes = field(repr=False)
    tracker_factory: TrackerFactory = field(repr=False)
    http_factory: ConnectionFactory = field(repr=False)

    def execute(self, tracker: Tracker) -> Destination:
        destinations = _write_destinations(tracker, self.domain, self.key, self.storage_class,
                                           expected_length=len(self.data))

        def upload(destination: Destination) -> None:
            stream = None
            try:
                transport = self.http_factory.open_write(destination, len(self.data))
                stream = FileUploadStream(
                    transport,
                    destination,
                    tracker_factory=self.tracker_factory,
                    domain=self.domain,
                    key=self.key,
                )
                stream.write(self.data)
                stream.close()
            finally:
                close_quietly(stream)

        return write_to_first_available(destinations, upload)


@dataclass(frozen=True)
class ListKeysCommand:
    """Keys in a domain starting with ``prefix``, following list_keys pages."""
    domain: str
    prefix: str
    limit: Optional[int] = None
    page_size: int = 1000

    def execute(self, tracker: Tracker) -> List[str]:
        keys: List[str] = []
        after: Optional[str] = None
        while self.limit is None or len(keys) < self.limit:
            want = self.page_size if self.limit is None else min(self.page_size, self.limit - len(keys))
            listing = tracker.list_keys(self.domain, self.prefix, after=after, limit=want)
            keys.extend(listing.keys)
            if not listing.keys or not listing.next_after or len(listing.keys) < want:
                break
            after = listing.next_after
        return keys if self.limit is None else keys[:self.limit]


def write_to_first_available(destinations: Sequence[Destination],
                             upload: Callable[[Destination], None]) -> Destination:
    """
    Try ``upload`` against each destination in order until one succeeds.

    ``upload`` must leave no transport open when it returns or raises. An
    OSError moves on to the next destination; when every destination has
    failed, the last destination's error is raised (earlier errors are only
    logged).

    Returns:
        The destination that accepted the upload

    Raises:
        NoDestinationsError: If ``destinations`` is empty
        OSError: The last destination's error when all failed
    """
    if not destinations:
        raise NoDestinationsError("No destinations to write to")

    last_error: Optional[OSError] = None
    for destination in destinations:
        logger.debug(f"Creating output stream to: {destination}")
        try:
            upload(destination)
            return destination
        except OSError as e:
            logger.debug(f"Failed to write to {destination}: {e}")
            last_error = e
    raise last_error


def _first_read_destination(tracker: Tracker, domain: str, key: str) -> Destination:
    destinations = tracker.resolve_read_destinations(domain, key)
    if not destinations:
        raise NoDestinationsError(f"No read destinations for domain={domain},key={key}")
    return destinations[0]


def _write_destinations(tracker: Tracker, domain: str, key: str, storage_class: Optional[str],
                        expected_length: Optional[int] = None) -> List[Destination]:
    destinations = tracker.resolve_write_destinations(domain, key, storage_class, expected_length)
    if not destinations:
        raise NoDestinationsError(
            f"Failed to obtain destinations for domain={domain},key={key},storageClass={storage_class}"
        )
    return destinations
