"""Tracker capability: interfaces, line protocol and socket client."""
from .base import Destination, FileAttributes, KeyListing, Tracker, TrackerFactory
from .client import SocketTracker, SocketTrackerFactory

__all__ = [
    "Destination",
    "FileAttributes",
    "KeyListing",
    "Tracker",
    "TrackerFactory",
    "SocketTracker",
    "SocketTrackerFactory",
]
