"""
CLI command for resolving favicons.

Runs the full favicon pipeline (memory, disk, network, discovery) for each
given URL and reports the outcome.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from feedicons.config.settings import settings
from feedicons.models import Feed, FaviconAvailable, FaviconImage
from feedicons.services.downloader import FaviconDownloader

console = Console()


def _build_downloader(cache_dir: Path | None) -> FaviconDownloader:
    """Build a FaviconDownloader from application settings."""
    return FaviconDownloader(cache_dir or settings.cache_dir, settings=settings)


def resolve(
    favicon_urls: Optional[List[str]] = typer.Option(
        None,
        "--favicon-url",
        "-f",
        help="Favicon URL to resolve directly (repeatable)",
    ),
    home_page_urls: Optional[List[str]] = typer.Option(
        None,
        "--home-page-url",
        "-p",
        help="Home page whose favicon should be discovered (repeatable)",
    ),
    cache_dir: Optional[Path] = typer.Option(
        None,
        "--cache-dir",
        help="Favicon store directory (default: FEEDICONS_CACHE_DIR)",
    ),
) -> None:
    """
    Resolve favicons and store them on disk.

    Exit code is 0 when at least one favicon resolved, 1 otherwise.

    Examples:
        feedicons resolve --favicon-url https://example.com/favicon.png
        feedicons resolve -p https://example.com/ -p https://example.org/
    """
    feeds: list[Feed] = [
        Feed(feed_id=f"favicon-{i}", favicon_url=url)
        for i, url in enumerate(favicon_urls or [], start=1)
    ]
    feeds.extend(
        Feed(feed_id=f"home-page-{i}", home_page_url=url)
        for i, url in enumerate(home_page_urls or [], start=1)
    )

    if not feeds:
        console.print(
            "[red]Error: give at least one --favicon-url or --home-page-url[/red]"
        )
        raise typer.Exit(code=2)

    try:
        resolved = asyncio.run(_resolve_async(feeds, cache_dir=cache_dir))
    except KeyboardInterrupt:
        console.print("\n[yellow]Resolution interrupted by user[/yellow]")
        raise typer.Exit(code=130)

    if resolved == 0:
        raise typer.Exit(code=1)


async def _resolve_async(feeds: list[Feed], *, cache_dir: Path | None) -> int:
    """Resolve *feeds* and print a summary table.

    Returns
    -------
    int
        Number of feeds for which a favicon was found.
    """
    notifications: list[FaviconAvailable] = []

    async with _build_downloader(cache_dir) as downloader:
        downloader.subscribe(notifications.append)
        images = await asyncio.gather(*(downloader.resolve(feed) for feed in feeds))
        await downloader.wait_idle()

        table = Table(title="Favicons")
        table.add_column("Source", style="cyan")
        table.add_column("Favicon URL", style="blue")
        table.add_column("Result", justify="right")

        for feed, image in zip(feeds, images):
            source = feed.favicon_url or feed.home_page_url or feed.feed_id
            favicon_url = feed.favicon_url
            if favicon_url is None and feed.home_page_url is not None:
                favicon_url = downloader.cache.association(feed.home_page_url)
            table.add_row(source, favicon_url or "-", _describe(image))
        summary = downloader.cache.snapshot()

    console.print(table)
    resolved = sum(1 for image in images if image is not None)
    console.print(
        f"\n  Resolved {resolved}/{len(feeds)}; "
        f"{len(notifications)} notification(s) posted"
    )
    for bad_url in summary["bad_urls"]:
        console.print(f"  [yellow]Unreachable:[/yellow] {bad_url}")
    for bad_image in summary["bad_images"]:
        console.print(f"  [yellow]Undecodable:[/yellow] {bad_image}")
    return resolved


def _describe(image: FaviconImage | None) -> str:
    if image is None:
        return "[red]none[/red]"
    return f"[green]{image.format} {image.width}x{image.height}[/green]"
