"""CLI commands for fswarden.

This package contains all subcommand implementations.
"""

from fswarden.cli.commands import config, fs, mounts

__all__ = ["config", "fs", "mounts"]
