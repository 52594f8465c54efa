"""Storage node transport: interfaces and the httpx implementation."""
from .base import ConnectionFactory, ReadTransport, WriteTransport
from .http import HttpConnectionFactory

__all__ = ["ConnectionFactory", "ReadTransport", "WriteTransport", "HttpConnectionFactory"]
