"""
Settings and configuration for mogfs.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables at client construction time.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional, Tuple

__all__ = ["Settings", "create_settings_from_env", "parse_tracker_address"]

_TRACKER_PATTERN = re.compile(r"^[a-zA-Z0-9.-]+:[0-9]+$")


def parse_tracker_address(address: str) -> Tuple[str, int]:
    """
    Split a ``host:port`` tracker address.

    Raises:
        ValueError: If the address is not ``host:port`` with a numeric port
    """
    if not _TRACKER_PATTERN.match(address):
        raise ValueError(f"Invalid tracker address: {address!r}. Expected host:port")
    host, port = address.rsplit(":", 1)
    return host, int(port)


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for the mogfs client.

    Tracker Settings:
        trackers: Tracker addresses as ``host:port``, tried in order (required)
        domain: Default domain for files (required)
        storage_class: Default storage class for new handles
        tracker_timeout_s: Socket timeout for tracker requests in seconds

    Storage Node (HTTP) Settings:
        http_timeout_s: HTTP request timeout in seconds
        http_retry: Extra attempts for HEAD requests that time out (0=no retry)
        upload_buffer_chunks: Chunks buffered between a writer and its upload worker
    """
    trackers: Tuple[str, ...]
    domain: str
    storage_class: Optional[str] = None
    tracker_timeout_s: float = 5.0
    http_timeout_s: float = 30.0
    http_retry: int = 0
    upload_buffer_chunks: int = 16

    def __post_init__(self):
        """Validate settings on construction."""
        if not self.trackers:
            raise ValueError("At least one tracker address is required")

        for address in self.trackers:
            parse_tracker_address(address)

        if not self.domain:
            raise ValueError("domain is required")

        if self.tracker_timeout_s <= 0:
            raise ValueError(f"tracker_timeout_s must be positive, got {self.tracker_timeout_s}")

        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        if self.http_retry < 0:
            raise ValueError(f"http_retry must be non-negative, got {self.http_retry}")

        if self.upload_buffer_chunks <= 0:
            raise ValueError(f"upload_buffer_chunks must be positive, got {self.upload_buffer_chunks}")

    @property
    def tracker_addresses(self) -> Tuple[Tuple[str, int], ...]:
        """Trackers as (host, port) pairs."""
        return tuple(parse_tracker_address(address) for address in self.trackers)


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        - MOGFS_TRACKERS (required, comma separated host:port list)
        - MOGFS_DOMAIN (required)
        - MOGFS_STORAGE_CLASS (optional)
        - MOGFS_TRACKER_TIMEOUT (default: 5.0)
        - MOGFS_HTTP_TIMEOUT (default: 30.0)
        - MOGFS_HTTP_RETRY (default: 0)
        - MOGFS_UPLOAD_BUFFER_CHUNKS (default: 16)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid or required values missing

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        return int(value) if value else default

    trackers_env = os.getenv("MOGFS_TRACKERS")
    domain = os.getenv("MOGFS_DOMAIN")

    if not trackers_env:
        raise ValueError("MOGFS_TRACKERS environment variable is required")
    if not domain:
        raise ValueError("MOGFS_DOMAIN environment variable is required")

    trackers = tuple(part.strip() for part in trackers_env.split(",") if part.strip())

    return Settings(
        trackers=trackers,
        domain=domain,
        storage_class=os.getenv("MOGFS_STORAGE_CLASS") or None,
        tracker_timeout_s=get_float("MOGFS_TRACKER_TIMEOUT", 5.0),
        http_timeout_s=get_float("MOGFS_HTTP_TIMEOUT", 30.0),
        http_retry=get_int("MOGFS_HTTP_RETRY", 0),
        upload_buffer_chunks=get_int("MOGFS_UPLOAD_BUFFER_CHUNKS", 16),
    )
