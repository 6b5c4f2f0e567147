"""Configuration file commands.

Provides commands to create, inspect and locate the fswarden
configuration file with its named directory roots.
"""

from pathlib import Path
from typing import Annotated

import tomli_w
import typer
from pydantic import ValidationError
from rich.table import Table

from fswarden.cli.types import get_config
from fswarden.core.config import ConfigError, DirectoryRoots, WardenConfig, save_config
from fswarden.core.paths import get_config_path
from fswarden.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Manage the fswarden configuration.",
    invoke_without_command=True,
    no_args_is_help=True,
)


def _config_path(ctx: typer.Context) -> Path:
    return (ctx.obj or {}).get("config_path") or get_config_path()


def _parse_roots(values: list[str]) -> DirectoryRoots:
    """Build DirectoryRoots from NAME=PATH pairs."""
    roots: dict[str, str] = {}
    for value in values:
        name, sep, path = value.partition("=")
        if not sep or not name or not path:
            print_error(f"Invalid root {value!r}, expected NAME=PATH")
            raise typer.Exit(code=1)
        roots[name.strip()] = path.strip()

    try:
        return DirectoryRoots.model_validate(roots)
    except ValidationError as e:
        print_error(f"Invalid directory roots: {e}")
        raise typer.Exit(code=1) from e


@app.command()
def init(
    ctx: typer.Context,
    root: Annotated[
        list[str] | None,
        typer.Option("--root", "-r", help="Named directory root as NAME=PATH (repeatable)."),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing configuration."),
    ] = False,
) -> None:
    """Create a configuration file with default settings."""
    path = _config_path(ctx)
    if path.exists() and not force:
        print_error(f"Config already exists: {path} (use --force to overwrite)")
        raise typer.Exit(code=1)

    config = WardenConfig(roots=_parse_roots(root or []))
    try:
        saved = save_config(config, path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Config written to {saved}")


@app.command()
def show(ctx: typer.Context) -> None:
    """Show the effective configuration."""
    config = get_config(ctx)
    path = _config_path(ctx)
    if not path.exists():
        print_info(f"No config at {path}, showing defaults.")

    roots = config.roots.configured()
    if roots:
        table = Table(title="Directory Roots", show_lines=False)
        table.add_column("Name", style="bold")
        table.add_column("Path")
        for name, root_path in roots.items():
            table.add_row(name, root_path)
        console.print(table)
    else:
        print_info("No directory roots configured.")

    settings = config.model_dump(exclude={"roots"})
    console.print(tomli_w.dumps(settings), markup=False, highlight=False)


@app.command("path")
def show_path(ctx: typer.Context) -> None:
    """Print the configuration file location."""
    console.print(str(_config_path(ctx)), markup=False, highlight=False)
