"""Shared types and utilities for CLI commands.

This module provides common enums and helper functions used across
multiple CLI command modules to avoid code duplication.
"""

from enum import Enum
from pathlib import Path

import typer

from fswarden.core.config import ConfigError, WardenConfig, load_config_or_default
from fswarden.filesystem.paths import PathNormalizer
from fswarden.filesystem.restrictions import ALLOW_ALL, RestrictionSet
from fswarden.utils.formatting import print_error

CLI_LABEL = "command line"


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def get_config(ctx: typer.Context) -> WardenConfig:
    """Load the configuration selected by the global --config option.

    Exits with code 1 if the file exists but cannot be loaded.
    """
    config_path: Path | None = (ctx.obj or {}).get("config_path")
    try:
        return load_config_or_default(config_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def make_normalizer(config: WardenConfig) -> PathNormalizer:
    """Create a PathNormalizer honoring the configured symlink hop limit."""
    return PathNormalizer(max_hops=config.max_symlink_hops)


def build_restrictions(
    config: WardenConfig,
    normalizer: PathNormalizer,
    *,
    allow: list[str] | None = None,
    allow_write: list[str] | None = None,
    roots: list[str] | None = None,
    write_roots: bool = False,
    unrestricted: bool = False,
) -> RestrictionSet:
    """Assemble a RestrictionSet from command-line options.

    Read-only paths are added before writable ones, then named roots, so
    an explicit --allow takes precedence over a broader root.

    Args:
        config: Loaded configuration providing the named roots.
        normalizer: PathNormalizer for the new set.
        allow: Paths allowed for reading.
        allow_write: Paths allowed for reading and writing.
        roots: Names of configured directory roots to allow.
        write_roots: Whether the named roots allow writing.
        unrestricted: Return the AllowAll set instead.

    Raises:
        typer.Exit: If a named root is not configured.
    """
    if unrestricted:
        return ALLOW_ALL

    restrictions = RestrictionSet(label=CLI_LABEL, normalizer=normalizer)
    restrictions.add_paths(allow or [], write=False)
    restrictions.add_paths(allow_write or [], write=True)

    for name in roots or []:
        try:
            root_set = RestrictionSet.for_root(config.roots, name, write=write_roots)
        except KeyError as e:
            print_error(e.args[0])
            raise typer.Exit(code=1) from e
        restrictions.add_restrictions(root_set)

    return restrictions
