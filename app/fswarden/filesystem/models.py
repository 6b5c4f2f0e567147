"""Filesystem domain models for traversal and duplicate resolution.

This module defines the data structures passed between the traversal
engine, its callers and the duplicate resolver: entry classification,
the immutable traversal description, running statistics and
duplicate groups with their deletion outcome.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from fswarden.filesystem.handle import FileHandle


class PathType(str, Enum):
    """Type of filesystem entry.

    Attributes:
        DIRECTORY: Regular directory.
        FILE: Regular file (or any non-directory that is not a link).
        SYMLINK: Symbolic link with a valid target.
        DEAD_SYMLINK: Symbolic link whose target does not exist.
        MISSING: Entry vanished before it could be inspected.
    """

    DIRECTORY = "directory"
    FILE = "file"
    SYMLINK = "symlink"
    DEAD_SYMLINK = "dead_symlink"
    MISSING = "missing"


def _extension_set(extensions: Iterable[str] | None) -> frozenset[str] | None:
    if extensions is None:
        return None
    if isinstance(extensions, str):
        extensions = [extensions]
    return frozenset(ext.removeprefix(".") for ext in extensions)


@dataclass(frozen=True, slots=True)
class TraversalSpec:
    """Immutable description of a single traversal run.

    The same spec is passed unchanged down the recursion; only the
    current directory varies.

    Attributes:
        roots: Starting paths (files or directories).
        recurse: Descend into subdirectories.
        follow_symlinks: Process symbolic links instead of skipping them.
        follow_hidden: Process entries whose name starts with ".".
        extension_allow: If set, only files with these extensions are processed.
        extension_deny: If set, files with these extensions are skipped.
        skip_prefixes: Paths that are skipped together with everything beneath.
        temporary_mode: Permission bits applied around each action call.
        ignore_action_errors: Log action failures and continue instead of
            stopping the traversal.
    """

    roots: tuple[str, ...]
    recurse: bool = False
    follow_symlinks: bool = False
    follow_hidden: bool = False
    extension_allow: frozenset[str] | None = None
    extension_deny: frozenset[str] | None = None
    skip_prefixes: frozenset[str] = frozenset()
    temporary_mode: int | None = None
    ignore_action_errors: bool = False

    def __post_init__(self) -> None:
        """Validate and coerce traversal spec fields."""
        roots = (self.roots,) if isinstance(self.roots, str) else tuple(self.roots)
        if not roots:
            msg = "At least one traversal root is required"
            raise ValueError(msg)
        object.__setattr__(self, "roots", roots)
        object.__setattr__(self, "extension_allow", _extension_set(self.extension_allow))
        object.__setattr__(self, "extension_deny", _extension_set(self.extension_deny))

        skip = (self.skip_prefixes,) if isinstance(self.skip_prefixes, str) else self.skip_prefixes
        object.__setattr__(self, "skip_prefixes", frozenset(skip))

        if self.temporary_mode is not None and not (0 <= self.temporary_mode <= 0o7777):
            msg = f"Invalid permission mode: {self.temporary_mode!r}"
            raise ValueError(msg)


@dataclass(slots=True)
class TraversalStats:
    """Running counters of a traversal.

    Attributes:
        processed: Entries the action was invoked on.
        skipped: Entries excluded by skip, hidden, symlink, extension or
            dead-entry policy.
        failed: Action invocations that failed and were ignored.
    """

    processed: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass(frozen=True, slots=True)
class DuplicateGroup:
    """Files considered equivalent, in discovery order.

    The first member is the keeper; every other member is redundant.
    """

    members: tuple[FileHandle, ...]

    def __post_init__(self) -> None:
        """Validate the group after initialization."""
        object.__setattr__(self, "members", tuple(self.members))
        if not self.members:
            msg = "A duplicate group needs at least one member"
            raise ValueError(msg)

    @property
    def keeper(self) -> FileHandle:
        """The member that is retained."""
        return self.members[0]

    @property
    def redundant(self) -> tuple[FileHandle, ...]:
        """Members that are deleted by the resolver."""
        return self.members[1:]


@dataclass(slots=True)
class DuplicateOutcome:
    """Accumulated result of deleting duplicates.

    Attributes:
        deleted_count: Number of files deleted.
        deleted_bytes: Sum of the deleted files' sizes, read before deletion.
        deleted_files: Handles of the deleted files, in deletion order.
        dry_run: Whether the deletions were only simulated.
    """

    deleted_count: int = 0
    deleted_bytes: int = 0
    deleted_files: list[FileHandle] = field(default_factory=list)
    dry_run: bool = False
