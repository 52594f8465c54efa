"""
Operations Facade - Application service layer.

Provides a clean interface between CLI and client APIs, centralizing
command orchestration and policy decisions (e.g. when to buffer an upload
in memory) while keeping CLI commands thin and testable.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..client import MogileClient
from ..tracker.base import FileAttributes


@dataclass(frozen=True)
class OpsConfig:
    """
    Configuration for Operations facade.

    Centralizes policy decisions to avoid scattered configuration.
    """
    verbose: bool = False               # Show detailed output
    put_buffer_limit: int = 16 * 1024 * 1024  # Larger uploads are streamed


@dataclass(frozen=True)
class FileStat:
    """Length and tracker attributes of one file."""
    key: str
    length: int
    attributes: FileAttributes


class Operations:
    """
    Application service facade for CLI operations.

    One method per CLI verb. Exceptions bubble up for central mapping in
    ``run_and_exit``.
    """

    def __init__(self, config: OpsConfig, client: MogileClient):
        self.cfg = config
        self.client = client

    def exists(self, key: str) -> bool:
        return self.client.get_file(key).exists()

    def stat(self, key: str) -> FileStat:
        file = self.client.get_file(key)
        return FileStat(key=key, length=file.length(), attributes=file.get_attributes())

    def paths(self, key: str) -> List[str]:
        return self.client.get_file(key).get_paths()

    def get(self, key: str, dest: str) -> Path:
        """
        Download a file to ``dest``.

        If ``dest`` is an existing directory the file is written inside it,
        named after the last component of the key.
        """
        target = Path(dest)
        if target.is_dir():
            target = target / key.rsplit("/", 1)[-1]
        self.client.get_file(key).copy_to_file(target)
        return target

    def put(self, src: str, key: str, *, storage_class: Optional[str] = None) -> int:
        """
        Upload a local file.

        Files up to ``put_buffer_limit`` bytes are sent whole, falling back
        through every destination the tracker offers; larger files are
        streamed to the first destination only.

        Returns:
            Number of bytes uploaded
        """
        source = Path(src)
        size = source.stat().st_size
        file = self.client.get_file(key, storage_class=storage_class)
        if size <= self.cfg.put_buffer_limit:
            file.put(source.read_bytes())
        else:
            self.client.copy_from_file(source, file)
        return size

    def remove(self, key: str) -> None:
        self.client.get_file(key).delete()

    def move(self, key: str, new_key: str) -> None:
        self.client.get_file(key).rename(new_key)

    def set_class(self, key: str, storage_class: str) -> None:
        file = self.client.get_file(key)
        file.modify_storage_class(storage_class)

    def list(self, prefix: str, limit: Optional[int] = None) -> List[str]:
        return [file.key for file in self.client.list_files(prefix, limit=limit)]
