"""
mogfs CLI

Thin Typer commands over the Operations facade:
- exists: Check whether a key is known to the tracker
- stat: Show length and tracker attributes
- paths: List storage node URLs
- get: Download a file
- put: Upload a local file
- rm: Delete a key
- mv: Rename a key
- set-class: Change the storage class of a key
- ls: List keys by prefix
"""
from __future__ import annotations

from typing import Optional

import typer

from .cli_context import CLIContext
from .logging_config import setup_logging
from .operations import run_and_exit
from .operations.printers import (
    print_done, print_exists, print_listing, print_paths, print_stat
)

app = typer.Typer(name="mogfs", help="Replicated file store client")


def _context(ctx: typer.Context) -> CLIContext:
    return ctx.ensure_object(CLIContext)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed output and debug logs"),
    backend: Optional[str] = typer.Option(None, "--backend", envvar="MOGFS_BACKEND", hidden=True,
                                          help="Backend override for testing"),
) -> None:
    """Access files stored by (domain, key) on replicated storage nodes."""
    if verbose:
        setup_logging("DEBUG")
    context = CLIContext(verbose=verbose, backend=backend)
    ctx.obj = context
    ctx.call_on_close(context.close)


@app.command()
def exists(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="File key"),
) -> None:
    """Check whether a key exists (exit code 1 when it does not)."""
    context = _context(ctx)
    found = run_and_exit(lambda: context.operations().exists(key))
    print_exists(key, found)
    if not found:
        raise typer.Exit(code=1)


@app.command()
def stat(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="File key"),
) -> None:
    """Show length and tracker attributes of a file."""
    context = _context(ctx)
    result = run_and_exit(lambda: context.operations().stat(key))
    print_stat(result, verbose=context.verbose)


@app.command()
def paths(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="File key"),
) -> None:
    """List the storage node URLs holding a file."""
    context = _context(ctx)
    print_paths(run_and_exit(lambda: context.operations().paths(key)))


@app.command()
def get(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="File key"),
    dest: str = typer.Argument(..., help="Local destination file or directory"),
) -> None:
    """Download a file."""
    context = _context(ctx)
    target = run_and_exit(lambda: context.operations().get(key, dest))
    print_done(f"Downloaded {key} to {target}")


@app.command()
def put(
    ctx: typer.Context,
    src: str = typer.Argument(..., help="Local file to upload"),
    key: str = typer.Argument(..., help="File key"),
    storage_class: Optional[str] = typer.Option(None, "--class", help="Storage class for the key"),
) -> None:
    """Upload a local file."""
    context = _context(ctx)
    size = run_and_exit(lambda: context.operations().put(src, key, storage_class=storage_class))
    print_done(f"Uploaded {src} to {key} ({size} bytes)")


@app.command()
def rm(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="File key"),
) -> None:
    """Delete a key."""
    context = _context(ctx)
    run_and_exit(lambda: context.operations().remove(key))
    print_done(f"Deleted {key}")


@app.command()
def mv(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Current key"),
    new_key: str = typer.Argument(..., help="New key"),
) -> None:
    """Rename a key (exit code 4 when the new key exists)."""
    context = _context(ctx)
    run_and_exit(lambda: context.operations().move(key, new_key))
    print_done(f"Renamed {key} to {new_key}")


@app.command("set-class")
def set_class(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="File key"),
    storage_class: str = typer.Argument(..., help="New storage class"),
) -> None:
    """Change the storage class of a key."""
    context = _context(ctx)
    run_and_exit(lambda: context.operations().set_class(key, storage_class))
    print_done(f"Storage class of {key} set to {storage_class}")


@app.command()
def ls(
    ctx: typer.Context,
    prefix: str = typer.Argument("", help="Key prefix"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum number of keys"),
) -> None:
    """List keys starting with a prefix."""
    context = _context(ctx)
    print_listing(prefix, run_and_exit(lambda: context.operations().list(prefix, limit=limit)))


if __name__ == "__main__":
    app()
