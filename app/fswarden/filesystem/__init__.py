"""Restriction-aware filesystem access.

This module provides path normalization, path-prefix restrictions,
recursive traversal with filtering, duplicate file resolution and
mount-table lookups.
"""

from fswarden.filesystem.duplicates import DuplicateFinder, DuplicateResolver
from fswarden.filesystem.errors import (
    ActionError,
    BrokenSymlinkError,
    FilesystemError,
    InvalidPathError,
    MalformedMountTableError,
    MountError,
    MountMismatchError,
    NoRestrictionsConfiguredError,
    NotMountedError,
    PathRestrictedError,
    RestrictionError,
    SymlinkLoopError,
    TraversalError,
    WriteRestrictedError,
)
from fswarden.filesystem.handle import FileHandle, LocalFile
from fswarden.filesystem.models import (
    DuplicateGroup,
    DuplicateOutcome,
    PathType,
    TraversalSpec,
    TraversalStats,
)
from fswarden.filesystem.mounts import MountEntry, MountTable, parse_mount_table
from fswarden.filesystem.paths import PathNormalizer, normalize_path, resolve_symlink
from fswarden.filesystem.restrictions import (
    ALLOW_ALL,
    AllowAll,
    RestrictionEntry,
    RestrictionSet,
    ensure_restrictions,
)
from fswarden.filesystem.traversal import TraversalEngine

__all__ = [
    "ALLOW_ALL",
    "ActionError",
    "AllowAll",
    "BrokenSymlinkError",
    "DuplicateFinder",
    "DuplicateGroup",
    "DuplicateOutcome",
    "DuplicateResolver",
    "FileHandle",
    "FilesystemError",
    "InvalidPathError",
    "LocalFile",
    "MalformedMountTableError",
    "MountEntry",
    "MountError",
    "MountMismatchError",
    "MountTable",
    "NoRestrictionsConfiguredError",
    "NotMountedError",
    "PathNormalizer",
    "PathRestrictedError",
    "PathType",
    "RestrictionEntry",
    "RestrictionError",
    "RestrictionSet",
    "SymlinkLoopError",
    "TraversalEngine",
    "TraversalError",
    "TraversalSpec",
    "TraversalStats",
    "WriteRestrictedError",
    "ensure_restrictions",
    "normalize_path",
    "parse_mount_table",
    "resolve_symlink",
]
