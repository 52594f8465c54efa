"""
Tracker interfaces for mogfs.

These protocols define the boundary between file handles and the tracker
service, enabling clean dependency injection and testing with fakes.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["Destination", "FileAttributes", "KeyListing", "Tracker", "TrackerFactory"]


@dataclass(frozen=True)
class Destination:
    """
    One storage node location for a key.

    Invariants:
    - url: absolute http(s) URL of the file on the storage node
    - devid/fid: set for write destinations (needed to confirm the upload),
      None for read destinations
    """
    url: str
    devid: Optional[int] = None
    fid: Optional[int] = None


class FileAttributes(BaseModel):
    """File metadata as reported by the tracker's file_info command."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    domain: str = Field(..., description="Domain the key lives in")
    key: str = Field(..., description="File key")
    storage_class: str = Field(..., alias="class", description="Storage class applied to the key")
    fid: int = Field(..., description="Tracker file id")
    length: int = Field(..., ge=0, description="Content length in bytes")
    device_count: int = Field(..., alias="devcount", ge=0, description="Number of replicas")


@dataclass(frozen=True)
class KeyListing:
    """One page of keys returned by list_keys."""
    keys: List[str]
    next_after: Optional[str] = None


@runtime_checkable
class Tracker(Protocol):
    """
    Protocol for tracker operations.

    A tracker is borrowed from a TrackerFactory for a single command and
    closed afterwards.
    """

    def exists(self, domain: str, key: str) -> bool:
        ...

    def resolve_read_destinations(self, domain: str, key: str) -> List[Destination]:
        """
        Destinations holding the key, in priority order.

        Raises:
            UnknownKeyError: If the key is not known in the domain
        """
        ...

    def resolve_write_destinations(
        self,
        domain: str,
        key: str,
        storage_class: Optional[str],
        expected_length: Optional[int] = None,
    ) -> List[Destination]:
        """
        Candidate destinations for a new upload, in priority order.

        Raises:
            NoDestinationsError: If the tracker returned no destination
        """
        ...

    def finalize(self, domain: str, key: str, destination: Destination, length: int) -> None:
        """Confirm that ``key`` now maps to the bytes uploaded to ``destination``."""
        ...

    def delete(self, domain: str, key: str) -> None:
        ...

    def rename(self, domain: str, from_key: str, to_key: str) -> None:
        """
        Raises:
            KeyExistsAlreadyError: If ``to_key`` already exists (carries ``to_key``)
        """
        ...

    def update_storage_class(self, domain: str, key: str, storage_class: str) -> None:
        ...

    def get_attributes(self, domain: str, key: str) -> FileAttributes:
        ...

    def get_paths(self, domain: str, key: str) -> List[str]:
        ...

    def list_keys(self, domain: str, prefix: str, after: Optional[str] = None,
                  limit: Optional[int] = None) -> KeyListing:
        ...

    def close(self) -> None:
        """Return the tracker's connection; the tracker must not be used afterwards."""
        ...


@runtime_checkable
class TrackerFactory(Protocol):
    """Protocol for obtaining a tracker for one command."""

    def get_tracker(self) -> Tracker:
        """
        Raises:
            TrackerCommunicationError: If no tracker host can be reached
        """
        ...
