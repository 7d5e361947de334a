"""
Main CLI entry point for feedicons.
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.panel import Panel

from feedicons import __version__
from feedicons.cli.commands import cache
from feedicons.cli.commands.resolve import resolve
from feedicons.config.settings import settings

console = Console()

app = typer.Typer(
    name="feedicons",
    help="Favicon resolution and caching for feed readers",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Add subcommands
app.add_typer(cache.app, name="cache", help="Favicon store commands")
app.command(name="resolve")(resolve)


def setup_logging(verbose: bool = False) -> None:
    """Attach a console handler to the ``feedicons`` logger.

    Parameters
    ----------
    verbose : bool, optional
        If True, log at DEBUG instead of the configured level (default False).
    """
    log_level = logging.DEBUG if verbose else getattr(logging, settings.log_level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger("feedicons")
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.setLevel(log_level)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(
        Panel(
            f"[bold blue]feedicons[/bold blue] v{__version__}",
            title="Version",
            border_style="blue",
        )
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version and exit"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", help="Enable debug logging"
    ),
) -> None:
    """
    feedicons - Favicon resolution and caching for feed readers.
    """
    if version:
        console.print(f"feedicons v{__version__}")
        raise typer.Exit(code=0)

    setup_logging(verbose)

    if ctx.invoked_subcommand is None:
        console.print(
            "[yellow]Use 'feedicons --help' for available commands[/yellow]"
        )
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
