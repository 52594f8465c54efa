"""
Error classes for mogfs.

Every failure raised by a file operation derives from MogfsError, which is an
OSError, so callers can handle the whole client with a single except clause.
Tracker errors are mapped from the tracker's ERR codes; transport errors are
mapped from HTTP status codes and httpx exceptions.
"""
from __future__ import annotations

from typing import Optional


class MogfsError(OSError):
    """Base class for all mogfs I/O errors."""
    pass


class TransportError(MogfsError):
    """
    Storage node transfer failed.

    Raised when:
    - connecting to a storage node fails or times out
    - the node answers a GET/PUT/HEAD with a non-2xx status
    - the upload worker dies before the request completes

    These errors are per destination: the whole-buffer write moves on to the
    next destination when one is raised.
    """

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class TrackerError(MogfsError):
    """
    Tracker answered with an error or could not be used.

    The tracker's error code (e.g. "unknown_key") is kept in ``code`` when the
    error came from an ERR response.
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class KeyExistsAlreadyError(TrackerError):
    """An attempt was made to assign a key that already exists in the domain."""

    def __init__(self, domain: str, key: str):
        super().__init__(f"domain={domain},key={key}", code="key_exists")
        self.domain = domain
        self.key = key


class UnknownKeyError(TrackerError):
    """The tracker does not know the key in the domain."""

    def __init__(self, domain: str, key: str):
        super().__init__(f"domain={domain},key={key}", code="unknown_key")
        self.domain = domain
        self.key = key


class NoDestinationsError(TrackerError):
    """The tracker returned no destination for a read or write."""
    pass


class TrackerCommunicationError(TrackerError):
    """No tracker host could be reached, or the connection broke mid-request."""
    pass


__all__ = [
    "MogfsError",
    "TransportError",
    "TrackerError",
    "KeyExistsAlreadyError",
    "UnknownKeyError",
    "NoDestinationsError",
    "TrackerCommunicationError",
]
