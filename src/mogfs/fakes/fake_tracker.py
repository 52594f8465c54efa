"""
Fake tracker implementation for testing.

This implementation explicitly subclasses Tracker to ensure interface changes
break CI immediately, preventing silent drift.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..errors import KeyExistsAlreadyError, NoDestinationsError, TrackerCommunicationError, UnknownKeyError
from ..tracker.base import Destination, FileAttributes, KeyListing, Tracker, TrackerFactory

__all__ = ["FakeTracker", "FakeTrackerFactory"]


@dataclass
class _FileRecord:
    fid: int
    storage_class: str
    length: int
    paths: List[str] = field(default_factory=list)


class FakeTracker(Tracker):
    """
    In-memory tracker for testing.

    This is a test double; not for production use.
    Write destinations are generated for every configured device id, in
    order, as ``http://node<devid>.test:7500/dev<devid>/<fid>.fid``.
    Every protocol call is appended to ``calls``.
    """

    def __init__(self, devices: Sequence[int] = (1, 2, 3)) -> None:
        self.devices = list(devices)
        self.calls: List[str] = []
        self.close_count = 0
        self._files: Dict[str, Dict[str, _FileRecord]] = {}
        self._pending_classes: Dict[int, Optional[str]] = {}
        self._next_fid = 1
        self._mutex = threading.Lock()

    def exists(self, domain: str, key: str) -> bool:
        self.calls.append("exists")
        return key in self._files.get(domain, {})

    def resolve_read_destinations(self, domain: str, key: str) -> List[Destination]:
        self.calls.append("resolve_read_destinations")
        return [Destination(url=path) for path in self._record(domain, key).paths]

    def resolve_write_destinations(self, domain: str, key: str, storage_class: Optional[str],
                                   expected_length: Optional[int] = None) -> List[Destination]:
        self.calls.append("resolve_write_destinations")
        if not self.devices:
            raise NoDestinationsError(
                f"Failed to obtain destinations for domain={domain},key={key},storageClass={storage_class}",
                code="no_devices",
            )
        with self._mutex:
            fid = self._next_fid
            self._next_fid += 1
            self._pending_classes[fid] = storage_class
        return [
            Destination(url=f"http://node{devid}.test:7500/dev{devid}/{fid:010d}.fid", devid=devid, fid=fid)
            for devid in self.devices
        ]

    def finalize(self, domain: str, key: str, destination: Destination, length: int) -> None:
        self.calls.append("finalize")
        with self._mutex:
            storage_class = self._pending_classes.pop(destination.fid, None) or "default"
            self._files.setdefault(domain, {})[key] = _FileRecord(
                fid=destination.fid or 0,
                storage_class=storage_class,
                length=length,
                paths=[destination.url],
            )

    def delete(self, domain: str, key: str) -> None:
        self.calls.append("delete")
        self._record(domain, key)
        with self._mutex:
            del self._files[domain][key]

    def rename(self, domain: str, from_key: str, to_key: str) -> None:
        self.calls.append("rename")
        self._record(domain, from_key)
        with self._mutex:
            files = self._files[domain]
            if to_key in files:
                raise KeyExistsAlreadyError(domain, to_key)
            files[to_key] = files.pop(from_key)

    def update_storage_class(self, domain: str, key: str, storage_class: str) -> None:
        self.calls.append("update_storage_class")
        self._record(domain, key).storage_class = storage_class

    def get_attributes(self, domain: str, key: str) -> FileAttributes:
        self.calls.append("get_attributes")
        record = self._record(domain, key)
        return FileAttributes(
            domain=domain,
            key=key,
            storage_class=record.storage_class,
            fid=record.fid,
            length=record.length,
            device_count=len(record.paths),
        )

    def get_paths(self, domain: str, key: str) -> List[str]:
        self.calls.append("get_paths")
        return list(self._record(domain, key).paths)

    def list_keys(self, domain: str, prefix: str, after: Optional[str] = None,
                  limit: Optional[int] = None) -> KeyListing:
        self.calls.append("list_keys")
        keys = sorted(k for k in self._files.get(domain, {}) if k.startswith(prefix))
        if after is not None:
            keys = [k for k in keys if k > after]
        keys = keys[:limit or 1000]
        return KeyListing(keys=keys, next_after=keys[-1] if keys else None)

    def close(self) -> None:
        self.close_count += 1

    def seed(self, domain: str, key: str, url: str, length: int, storage_class: str = "default") -> None:
        """Register an existing file stored at ``url`` (test utility)."""
        with self._mutex:
            fid = self._next_fid
            self._next_fid += 1
            self._files.setdefault(domain, {})[key] = _FileRecord(fid, storage_class, length, [url])

    def clear(self) -> None:
        """Clear all stored data (test utility)."""
        self._files.clear()
        self._pending_classes.clear()
        self.calls.clear()

    def _record(self, domain: str, key: str) -> _FileRecord:
        try:
            return self._files[domain][key]
        except KeyError:
            raise UnknownKeyError(domain, key) from None


class FakeTrackerFactory(TrackerFactory):
    """Lends out a single FakeTracker; set ``unreachable`` to simulate an outage."""

    def __init__(self, tracker: Optional[FakeTracker] = None) -> None:
        self.tracker = tracker or FakeTracker()
        self.unreachable = False
        self.borrow_count = 0

    def get_tracker(self) -> FakeTracker:
        if self.unreachable:
            raise TrackerCommunicationError("No tracker reachable: fake outage")
        self.borrow_count += 1
        return self.tracker
