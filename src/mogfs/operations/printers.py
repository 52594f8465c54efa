"""
Human-readable output formatting.

Centralizes all CLI output formatting while keeping CLI commands thin and
focused. Plain lines go through typer.echo; tables through rich.
"""
from __future__ import annotations

from typing import List

import typer
from rich.console import Console
from rich.table import Table

from .facade import FileStat

_console = Console()


def print_exists(key: str, exists: bool) -> None:
    typer.echo(f"{key}: {'exists' if exists else 'does not exist'}")


def print_stat(stat: FileStat, verbose: bool = False) -> None:
    """
    Print length and tracker attributes of a file.

    Args:
        stat: File statistics to display
        verbose: Also show tracker file id and domain
    """
    attributes = stat.attributes
    table = Table(title=stat.key, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="yellow")
    table.add_row("Length", f"{stat.length} ({_format_bytes(stat.length)})")
    table.add_row("Class", attributes.storage_class)
    table.add_row("Replicas", str(attributes.device_count))
    if verbose:
        table.add_row("Domain", attributes.domain)
        table.add_row("Fid", str(attributes.fid))
    _console.print(table)


def print_paths(paths: List[str]) -> None:
    for path in paths:
        typer.echo(path)


def print_listing(prefix: str, keys: List[str]) -> None:
    if not keys:
        typer.echo(f"No keys match {prefix!r}")
        return
    for key in keys:
        typer.echo(key)


def print_done(message: str) -> None:
    typer.echo(message)


def print_error(exc: BaseException) -> None:
    """Print an error on stderr."""
    typer.echo(f"Error: {type(exc).__name__}: {exc}", err=True)


def _format_bytes(size_bytes: int) -> str:
    """
    Format byte count as human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB", "42 KB")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"
