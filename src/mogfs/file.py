"""
File handle for one (domain, key).

MogileFile is the facade the rest of the client consumes. Every operation
takes the handle's read or write lock and runs a command. Operations that
return a stream hand the lock over to that stream: the lock is then released
only when the caller closes the stream.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, TypeVar, Union

from .commands import (
    Command,
    DeleteCommand,
    ExistsCommand,
    Executor,
    FileLengthCommand,
    GetAttributesCommand,
    GetInputStreamCommand,
    GetOutputStreamCommand,
    GetPathsCommand,
    PutCommand,
    RenameCommand,
    UpdateStorageClassCommand,
)
from .errors import MogfsError
from .locking import LockGuard, ReadWriteLock
from .streams import FileDownloadStream, FileUploadStream
from .tracker.base import FileAttributes, TrackerFactory
from .transport.base import ConnectionFactory

__all__ = ["MogileFile"]

logger = logging.getLogger(__name__)

T = TypeVar("T")

COPY_BUFFER_SIZE = 1024 * 1024  # 1 MiB


class MogileFile:
    """
    Handle on one logical file.

    ``key`` and ``storage_class`` change in place through ``rename`` and
    ``modify_storage_class``, always while the write lock is held.

    Streams returned by ``get_input_stream`` and ``get_output_stream`` hold the
    read or write lock until they are closed. A stream that is never closed
    blocks writers (and, for an output stream, readers) on this handle forever.
    """

    def __init__(self, key: str, domain: str, storage_class: Optional[str],
                 tracker_factory: TrackerFactory, http_factory: ConnectionFactory,
                 executor: Optional[Executor] = None) -> None:
        self._key = key
        self._domain = domain
        self._storage_class = storage_class
        self._tracker_factory = tracker_factory
        self._http_factory = http_factory
        self._executor = executor or Executor(tracker_factory)
        self._lock = ReadWriteLock()

    @property
    def key(self) -> str:
        return self._key

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def storage_class(self) -> Optional[str]:
        return self._storage_class

    @property
    def lock(self) -> ReadWriteLock:
        return self._lock

    def exists(self) -> bool:
        logger.debug(f"exists() : {self}")
        with self._lock.read_lock:
            exists = self._run(ExistsCommand(self._domain, self._key))
        logger.debug(f"exists() -> {exists}")
        return exists

    def length(self) -> int:
        logger.debug(f"length() : {self}")
        with self._lock.read_lock:
            length = self._run(FileLengthCommand(self._domain, self._key, self._http_factory))
        logger.debug(f"length() -> {length}")
        return length

    def delete(self) -> None:
        """Remove the key from the tracker. The handle must not be reused afterwards."""
        logger.debug(f"delete() : {self}")
        with self._lock.write_lock:
            self._run(DeleteCommand(self._domain, self._key))

    def rename(self, new_key: str) -> None:
        """
        Reassign the file to ``new_key``.

        Raises:
            KeyExistsAlreadyError: If ``new_key`` is taken; ``key`` is left unchanged
        """
        logger.debug(f"rename({new_key}) : {self}")
        with self._lock.write_lock:
            self._run(RenameCommand(self._domain, self._key, new_key))
            self._key = new_key

    def modify_storage_class(self, new_storage_class: str) -> None:
        """
        Raises:
            ValueError: Immediately, if this handle has no storage class
        """
        logger.debug(f"modify_storage_class({new_storage_class}) : {self}")
        if not self._storage_class:
            raise ValueError("storage_class is not set on this file")
        with self._lock.write_lock:
            self._run(UpdateStorageClassCommand(self._domain, self._key, new_storage_class))
            self._storage_class = new_storage_class

    def get_attributes(self) -> FileAttributes:
        logger.debug(f"get_attributes() : {self}")
        with self._lock.read_lock:
            attributes = self._run(GetAttributesCommand(self._domain, self._key))
        logger.debug(f"get_attributes() -> {attributes}")
        return attributes

    def get_paths(self) -> List[str]:
        logger.debug(f"get_paths() : {self}")
        with self._lock.read_lock:
            paths = self._run(GetPathsCommand(self._domain, self._key))
        logger.debug(f"get_paths() -> {paths}")
        return paths

    def get_input_stream(self) -> FileDownloadStream:
        """
        Open the file for reading.

        The returned stream holds the read lock; closing it releases the lock.
        """
        logger.debug(f"get_input_stream() : {self}")
        guard = LockGuard.acquire(self._lock.read_lock)
        try:
            stream = self._run(GetInputStreamCommand(self._domain, self._key, self._http_factory, guard))
        except BaseException:
            guard.release()
            raise
        logger.debug(f"get_input_stream() -> {stream}")
        return stream

    def get_output_stream(self) -> FileUploadStream:
        """
        Open the file for writing, replacing its content when the stream is closed.

        The returned stream holds the write lock; closing it releases the lock.
        """
        logger.debug(f"get_output_stream() : {self}")
        guard = LockGuard.acquire(self._lock.write_lock)
        try:
            stream = self._run(GetOutputStreamCommand(
                self._domain, self._key, self._storage_class,
                self._tracker_factory, self._http_factory, guard,
            ))
        except BaseException:
            guard.release()
            raise
        logger.debug(f"get_output_stream() -> {stream}")
        return stream

    def put(self, data: bytes) -> None:
        """Write ``data`` as the whole content, trying each destination in turn."""
        logger.debug(f"put({len(data)} bytes) : {self}")
        with self._lock.write_lock:
            destination = self._run(PutCommand(
                self._domain, self._key, self._storage_class, bytes(data),
                self._tracker_factory, self._http_factory,
            ))
        logger.debug(f"put() complete: {self} -> {destination.url}")

    def copy_to_file(self, destination: Union[str, Path]) -> None:
        """
        Download the whole file to ``destination``.

        The local file is written through a temporary file in the same
        directory and renamed into place, so a failed download leaves no
        partial file behind.
        """
        target = Path(destination)
        target.parent.mkdir(parents=True, exist_ok=True)

        stream = self.get_input_stream()
        try:
            fd, temp_name = tempfile.mkstemp(prefix=".mogfs.tmp.", dir=target.parent)
            temp_path = Path(temp_name)
            try:
                with os.fdopen(fd, "wb") as out:
                    shutil.copyfileobj(stream, out, COPY_BUFFER_SIZE)
                os.replace(temp_path, target)
            except BaseException:
                temp_path.unlink(missing_ok=True)
                raise
        finally:
            stream.close()

    def _run(self, command: Command[T]) -> T:
        """Execute ``command``, presenting every failure as an OSError."""
        try:
            return self._executor.execute(command)
        except OSError:
            raise
        except Exception as e:
            raise MogfsError(f"{command} failed: {e}") from e

    def __repr__(self) -> str:
        return f"MogileFile(domain={self._domain}, key={self._key})"
