"""
CLI Context for managing application dependencies.

Provides a clean way to manage CLI-level dependencies like the client
instance, avoiding global state and enabling proper dependency injection.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .client import MogileClient
from .operations import Operations, OpsConfig


@dataclass
class CLIContext:
    """
    Shared context for CLI commands.

    The client is created on first access and reused for the rest of the
    command. ``backend="fake"`` selects the in-memory fakes (seeded with one
    file) instead of the trackers configured in the environment.
    """
    verbose: bool = False
    backend: Optional[str] = None
    _client: Optional[MogileClient] = None

    @property
    def client(self) -> MogileClient:
        if self._client is None:
            if self.backend == "fake":
                from .fakes import create_fake_client
                self._client = create_fake_client()
            elif self.backend is None:
                self._client = MogileClient.from_env()
            else:
                raise ValueError(f"Unknown backend: {self.backend}")
        return self._client

    def operations(self) -> Operations:
        return Operations(config=OpsConfig(verbose=self.verbose), client=self.client)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
