"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.logging import RichHandler

from fswarden import __version__
from fswarden.cli.commands import config, fs, mounts
from fswarden.utils.formatting import err_console

# Create main Typer app
app = typer.Typer(
    name="fswarden",
    help="Restriction-aware filesystem traversal and deduplication.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"fswarden version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool, quiet: bool) -> None:
    """Route library log records to stderr through Rich."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logger = logging.getLogger("fswarden")
    logger.setLevel(level)
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        logger.addHandler(RichHandler(console=err_console, show_time=False, show_path=False))


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Configuration file (defaults to the XDG config location).",
        ),
    ] = None,
) -> None:
    """fswarden - Restriction-aware filesystem traversal.

    Every path is checked against an allow-list before it is read or
    written.
    """
    configure_logging(verbose, quiet)

    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = config_path


# Register commands
app.add_typer(fs.app, name="fs")
app.add_typer(mounts.app, name="mounts")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
