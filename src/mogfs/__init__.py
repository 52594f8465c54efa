"""
mogfs: client for a replicated key/value file store.

Files are addressed by (domain, key). A tracker service maps keys to storage
node URLs; content moves to and from the storage nodes over HTTP.

    >>> client = MogileClient.from_env()
    >>> f = client.get_file("reports/2024.csv")
    >>> f.put(b"...")
    >>> with f.get_input_stream() as stream:
    ...     data = stream.read()
"""
from .client import MogileClient
from .errors import (
    KeyExistsAlreadyError,
    MogfsError,
    NoDestinationsError,
    TrackerCommunicationError,
    TrackerError,
    TransportError,
    UnknownKeyError,
)
from .file import MogileFile
from .settings import Settings, create_settings_from_env
from .tracker.base import Destination, FileAttributes

__version__ = "0.1.0"

__all__ = [
    "MogileClient",
    "MogileFile",
    "Settings",
    "create_settings_from_env",
    "Destination",
    "FileAttributes",
    "MogfsError",
    "TransportError",
    "TrackerError",
    "KeyExistsAlreadyError",
    "UnknownKeyError",
    "NoDestinationsError",
    "TrackerCommunicationError",
]
