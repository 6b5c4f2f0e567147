"""Mount-table inspection commands.

Provides commands to list the kernel mount table and to look up what a
directory or device is mounted as.
"""

import json
from dataclasses import asdict
from typing import Annotated

import typer
from rich.table import Table

from fswarden.cli.types import OutputFormat, get_config, make_normalizer
from fswarden.filesystem.errors import FilesystemError
from fswarden.filesystem.mounts import MountEntry, MountTable
from fswarden.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Inspect the kernel mount table.",
    invoke_without_command=True,
    no_args_is_help=True,
)


def _load_table(ctx: typer.Context) -> MountTable:
    """Read the configured mounts file into a refreshed MountTable."""
    config = get_config(ctx)
    table = MountTable.from_file(config.mounts_file, normalizer=make_normalizer(config))
    try:
        return table.refresh()
    except FilesystemError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


@app.command("list")
def list_mounts(
    ctx: typer.Context,
    fs_type: Annotated[
        str | None,
        typer.Option("--type", "-t", help="Only show mounts of this filesystem type."),
    ] = None,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """List mounted filesystems."""
    entries = list(_load_table(ctx).entries)
    if fs_type is not None:
        entries = [entry for entry in entries if entry.filesystem_type == fs_type]

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps([asdict(entry) for entry in entries]))
        return

    if not entries:
        print_info("No mounts found.")
        return

    _print_table(entries)


@app.command()
def show(
    ctx: typer.Context,
    target: Annotated[
        str | None,
        typer.Argument(help="Mount point to look up."),
    ] = None,
    source: Annotated[
        str | None,
        typer.Option("--source", "-s", help="Look up by mounted source instead (e.g. /dev/sda1)."),
    ] = None,
    expect: Annotated[
        str | None,
        typer.Option("--expect", help="Fail unless the target is mounted from this source."),
    ] = None,
) -> None:
    """Show the mount for a target directory or source device."""
    if (target is None) == (source is None):
        print_error("Specify exactly one of TARGET or --source.")
        raise typer.Exit(code=1)

    table = _load_table(ctx)
    try:
        if source is not None:
            entry = table.lookup_by_source(source)
        else:
            entry = table.lookup_by_target(target)
            if expect is not None:
                table.is_mounted(target, expect)
    except FilesystemError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    _print_table([entry])
    if expect is not None:
        print_success(f"{entry.target} is mounted from {expect}")


def _print_table(entries: list[MountEntry]) -> None:
    """Display mount entries as a Rich table."""
    table = Table(title="Mounts", show_lines=False)
    table.add_column("Source", style="bold")
    table.add_column("Target")
    table.add_column("Type", width=10)
    table.add_column("Access", width=6)
    table.add_column("Options", style="muted")

    for entry in entries:
        access = "[read_only]ro[/]" if entry.is_read_only else "[read_write]rw[/]"
        table.add_row(entry.source, entry.target, entry.filesystem_type, access, entry.options)

    console.print(table)
