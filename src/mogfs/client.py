"""
Client entry point.

MogileClient builds file handles bound to a tracker factory and a storage
node connection factory, and offers the operations that are not tied to one
existing file (listing, uploading a local file).
"""
from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import List, Optional, Union

from .commands import Executor, ListKeysCommand
from .file import COPY_BUFFER_SIZE, MogileFile
from .settings import Settings, create_settings_from_env
from .tracker.base import TrackerFactory
from .transport.base import ConnectionFactory

__all__ = ["MogileClient"]

logger = logging.getLogger(__name__)


class MogileClient:
    """
    Factory for MogileFile handles in one default domain.

    Each ``get_file`` call returns a new handle with its own lock: two handles
    on the same key do not coordinate with each other.
    """

    def __init__(self, tracker_factory: TrackerFactory, http_factory: ConnectionFactory,
                 domain: str, storage_class: Optional[str] = None) -> None:
        if not domain:
            raise ValueError("domain is required")
        self.tracker_factory = tracker_factory
        self.http_factory = http_factory
        self.domain = domain
        self.storage_class = storage_class
        self._executor = Executor(tracker_factory)

    @classmethod
    def from_settings(cls, settings: Settings) -> MogileClient:
        """Create a client talking to real trackers and storage nodes."""
        from .tracker.client import SocketTrackerFactory
        from .transport.http import HttpConnectionFactory

        tracker_factory = SocketTrackerFactory(settings.tracker_addresses, timeout_s=settings.tracker_timeout_s)
        http_factory = HttpConnectionFactory(settings=settings)
        logger.debug(f"Client for domain {settings.domain} using trackers {', '.join(settings.trackers)}")
        return cls(tracker_factory, http_factory, settings.domain, settings.storage_class)

    @classmethod
    def from_env(cls) -> MogileClient:
        return cls.from_settings(create_settings_from_env())

    def get_file(self, key: str, domain: Optional[str] = None,
                 storage_class: Optional[str] = None) -> MogileFile:
        if not key:
            raise ValueError("key is required")
        return MogileFile(
            key,
            domain or self.domain,
            storage_class or self.storage_class,
            self.tracker_factory,
            self.http_factory,
            executor=self._executor,
        )

    def list_files(self, prefix: str, limit: Optional[int] = None) -> List[MogileFile]:
        """Handles for the keys in the default domain starting with ``prefix``."""
        if limit is not None and limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        keys = self._executor.execute(ListKeysCommand(self.domain, prefix, limit))
        logger.debug(f"list_files({prefix!r}) -> {len(keys)} keys")
        return [self.get_file(key) for key in keys]

    def copy_from_file(self, source: Union[str, Path], file: MogileFile) -> None:
        """Upload a local file as the content of ``file``."""
        with open(source, "rb") as src:
            stream = file.get_output_stream()
            try:
                shutil.copyfileobj(src, stream, COPY_BUFFER_SIZE)
            except BaseException:
                stream.abort()
                raise
            stream.close()

    def close(self) -> None:
        for factory in (self.http_factory, self.tracker_factory):
            close = getattr(factory, "close", None)
            if close is not None:
                close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
