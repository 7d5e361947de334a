"""
CLI commands for managing the on-disk favicon store.

Provides ``feedicons cache status`` and ``feedicons cache purge``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from feedicons.config.settings import settings
from feedicons.exceptions import BinaryStoreError
from feedicons.services.binary_store import BinaryStore

console = Console()

app = typer.Typer(
    name="cache",
    help="Manage the on-disk favicon store.",
    no_args_is_help=True,
)


def _build_store(cache_dir: Path | None) -> BinaryStore:
    """Open the favicon store at *cache_dir* or the configured default."""
    folder = cache_dir or settings.cache_dir
    try:
        return BinaryStore(folder)
    except BinaryStoreError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(code=1)


def format_size(size_bytes: int) -> str:
    """Convert bytes to human-readable format."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"


@app.command(name="status")
def status(
    cache_dir: Optional[Path] = typer.Option(
        None,
        "--cache-dir",
        help="Favicon store directory (default: FEEDICONS_CACHE_DIR)",
    ),
) -> None:
    """
    Display favicon store statistics.

    Examples:
        feedicons cache status
        feedicons cache status --cache-dir ~/.cache/feedicons
    """
    store = _build_store(cache_dir)
    stats = store.stats()

    table = Table(title="Favicon Store Status")
    table.add_column("Entries", style="green", justify="right")
    table.add_column("Size", style="blue", justify="right")
    table.add_row(f"{stats.entry_count:,}", format_size(stats.total_size_bytes))

    console.print()
    console.print(table)
    console.print()

    console.print(f"  Store directory: {store.folder}")
    if stats.oldest_entry is not None:
        console.print(f"  Oldest entry:    {stats.oldest_entry.strftime('%Y-%m-%d')}")
    if stats.newest_entry is not None:
        console.print(f"  Newest entry:    {stats.newest_entry.strftime('%Y-%m-%d')}")
    console.print()


@app.command(name="purge")
def purge(
    cache_dir: Optional[Path] = typer.Option(
        None,
        "--cache-dir",
        help="Favicon store directory (default: FEEDICONS_CACHE_DIR)",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Skip confirmation prompt",
    ),
) -> None:
    """
    Delete every stored favicon.

    Examples:
        feedicons cache purge
        feedicons cache purge --force
    """
    store = _build_store(cache_dir)

    if not force:
        confirmation = typer.confirm(
            f"Are you sure you want to purge all favicons in {store.folder}?",
            default=False,
        )
        if not confirmation:
            console.print("[yellow]Purge cancelled by user[/yellow]")
            raise typer.Exit(code=1)

    bytes_freed = store.purge()
    console.print(f"[green]Purged favicon store, freed {format_size(bytes_freed)}[/green]")
