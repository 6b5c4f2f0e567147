"""Path restrictions that gate filesystem access.

A RestrictionSet is an ordered allow-list of path prefixes, each with
its own write flag. Every read or write performed by the filesystem
domain is checked against one. An empty set permits nothing; the
AllowAll variant permits everything and is reserved for trusted
internal callers.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from fswarden.filesystem.errors import (
    InvalidPathError,
    NoRestrictionsConfiguredError,
    PathRestrictedError,
    RestrictionError,
    WriteRestrictedError,
)
from fswarden.filesystem.paths import (
    PathNormalizer,
    get_normalizer,
    is_nested,
    strip_trailing_separator,
)

if TYPE_CHECKING:
    from fswarden.core.config import DirectoryRoots

logger = logging.getLogger(__name__)

UNSPECIFIED_LABEL = "Unspecified"

PathLike = str | os.PathLike[str]


@dataclass(frozen=True, slots=True)
class RestrictionEntry:
    """A single allow-list entry.

    Attributes:
        path: Canonical path prefix (no trailing separator).
        write: Whether write access is allowed beneath the prefix.
    """

    path: str
    write: bool


class RestrictionSet:
    """Ordered allow-list of path prefixes with read/write permission.

    Entries are scanned in insertion order and the first entry whose
    prefix contains the checked path decides the outcome. Entries are
    never merged or ranked by specificity, so callers control
    precedence by the order in which they add paths.

    Args:
        paths: A single path, an iterable of paths, or a mapping of
            path to write flag.
        write: Write flag for paths given without one.
        label: Human-readable name reported in restriction errors.
        resolve_symlinks: If True, the symlink-resolved form of each
            checked path must pass as well.
        normalizer: PathNormalizer used to canonicalize paths.
    """

    def __init__(
        self,
        paths: PathLike | Iterable[PathLike] | Mapping[PathLike, bool] | None = None,
        *,
        write: bool = False,
        label: str | None = None,
        resolve_symlinks: bool = False,
        normalizer: PathNormalizer | None = None,
    ) -> None:
        self._normalizer = normalizer or get_normalizer()
        self._paths: dict[str, bool] = {}
        self._label = label or UNSPECIFIED_LABEL
        self._resolve_symlinks = resolve_symlinks

        if paths is not None:
            self.add_paths(paths, write=write)

    @classmethod
    def writable(
        cls,
        paths: PathLike | Iterable[PathLike] | None = None,
        label: str | None = None,
    ) -> RestrictionSet:
        """Create a set whose paths all allow writing."""
        return cls(paths, write=True, label=label)

    @classmethod
    def readonly(
        cls,
        paths: PathLike | Iterable[PathLike] | None = None,
        label: str | None = None,
    ) -> RestrictionSet:
        """Create a set whose paths are all read-only."""
        return cls(paths, write=False, label=label)

    @classmethod
    def for_root(
        cls,
        roots: DirectoryRoots,
        name: str,
        *,
        write: bool = False,
        subdirectory: str | None = None,
        label: str | None = None,
    ) -> RestrictionSet:
        """Create a set for one of the configured named directory roots.

        Args:
            roots: Named roots from the application configuration.
            name: Root name (e.g. "data", "tmp", "web").
            write: Whether write access is allowed.
            subdirectory: Optional path beneath the root to restrict to.
            label: Label for the set. Defaults to "<name> root".

        Raises:
            KeyError: If the named root is unknown or not configured.
        """
        base = roots.get(name)
        path = f"{base}/{subdirectory.lstrip('/')}" if subdirectory else base
        return cls(path, write=write, label=label or f"{name} root")

    @property
    def label(self) -> str:
        """Human-readable name of this restriction set."""
        return self._label

    @label.setter
    def label(self, value: str | None) -> None:
        self._label = value or UNSPECIFIED_LABEL

    @property
    def resolve_symlinks(self) -> bool:
        """Whether symlink-resolved paths are checked as well."""
        return self._resolve_symlinks

    @property
    def entries(self) -> tuple[RestrictionEntry, ...]:
        """Entries in insertion (precedence) order."""
        return tuple(RestrictionEntry(path, write) for path, write in self._paths.items())

    def add_path(self, path: PathLike, write: bool = False) -> RestrictionSet:
        """Add a path prefix.

        Re-adding an existing prefix updates its write flag but keeps its
        original position in the precedence order.

        Raises:
            InvalidPathError: If the path cannot be normalized.
        """
        canonical = strip_trailing_separator(self._normalizer.normalize(path))
        self._paths[canonical] = write
        return self

    def add_paths(
        self,
        paths: PathLike | Iterable[PathLike] | Mapping[PathLike, bool],
        write: bool = False,
    ) -> RestrictionSet:
        """Add several path prefixes.

        Args:
            paths: A single path, an iterable of paths (all using
                ``write``), or a mapping of path to write flag.
            write: Write flag for paths given without one.
        """
        if isinstance(paths, (str, os.PathLike)):
            return self.add_path(paths, write)

        if isinstance(paths, Mapping):
            for path, path_write in paths.items():
                self.add_path(path, bool(path_write))
            return self

        for path in paths:
            self.add_path(path, write)
        return self

    def add_restrictions(self, other: RestrictionSet | None) -> RestrictionSet:
        """Merge another set's entries and label into this one."""
        if other is None:
            return self
        self._label = f"{self._label}, {other.label}"
        for entry in other.entries:
            self.add_path(entry.path, entry.write)
        return self

    def clear_paths(self) -> RestrictionSet:
        """Remove all entries, leaving a set that permits nothing."""
        self._paths.clear()
        return self

    def check(self, pattern: PathLike, write: bool = False) -> None:
        """Check that access to a path is permitted.

        Args:
            pattern: Path to check (normalized before comparison).
            write: True to check write access, False for read access.

        Raises:
            NoRestrictionsConfiguredError: If this set has no entries.
            PathRestrictedError: If no entry covers the path.
            WriteRestrictedError: If the first covering entry is read-only
                and write access was requested.
            InvalidPathError: If the path cannot be normalized.
        """
        if not self._paths:
            msg = f'The "{self._label}" restrictions have no paths specified'
            raise NoRestrictionsConfiguredError(msg, path=os.fspath(pattern), label=self._label)

        normalized = self._normalizer.normalize(pattern)
        self._check_canonical(normalized, write)

        if self._resolve_symlinks:
            self._check_target(normalized, write)

    def check_resolved(self, pattern: PathLike, write: bool = False) -> None:
        """Check a path and the file it resolves to through symlinks.

        Used before operations that follow links (chmod, stat, opening
        for reading), whatever ``resolve_symlinks`` is set to, so a link
        inside a permitted prefix cannot reach a target outside of it.

        Raises:
            RestrictionError: If either form is not permitted.
            SymlinkLoopError: If resolving the path expands too many links.
        """
        self.check(pattern, write)
        if not self._resolve_symlinks:
            self._check_target(self._normalizer.normalize(pattern), write)

    def allows(self, pattern: PathLike, write: bool = False) -> bool:
        """Return True if check() would pass for this path."""
        try:
            self.check(pattern, write)
        except (RestrictionError, InvalidPathError):
            return False
        return True

    def with_parent(self, levels: int = 1) -> RestrictionSet:
        """Derive a set whose prefixes are ancestors of the current ones.

        Used to permit creating a path's parent directory before the path
        itself exists. Each entry keeps its write flag.

        Args:
            levels: How many directory levels to go up (1 or higher).

        Raises:
            ValueError: If levels is lower than 1.
        """
        if levels < 1:
            msg = f"Invalid parent level {levels}, must be 1 or higher"
            raise ValueError(msg)

        derived = self._derive()
        for path, write in self._paths.items():
            parent = path
            for _ in range(levels):
                parent = os.path.dirname(parent)
            derived.add_path(parent, write)
        return derived

    def with_child(
        self,
        subpaths: str | Iterable[str],
        write: bool | None = None,
    ) -> RestrictionSet:
        """Derive a stricter set scoped to subdirectories of each entry.

        Args:
            subpaths: One or more paths relative to every current entry.
            write: Write flag override; None keeps each entry's flag.

        Raises:
            InvalidPathError: If a subpath escapes its parent entry.
        """
        if isinstance(subpaths, str):
            subpaths = [subpaths]
        children = [child.lstrip("/") for child in subpaths]

        derived = self._derive()
        for path, original_write in self._paths.items():
            for child in children:
                candidate = strip_trailing_separator(self._normalizer.normalize(f"{path}/{child}"))
                if not is_nested(candidate, path):
                    msg = f"Child path {child!r} escapes restriction {path}"
                    raise InvalidPathError(msg)
                derived.add_path(candidate, original_write if write is None else write)
        return derived

    def make_writable(self) -> RestrictionSet:
        """Return a copy of this set with write enabled on every entry."""
        derived = self._derive()
        for path in self._paths:
            derived.add_path(path, True)
        return derived

    def _derive(self) -> RestrictionSet:
        return RestrictionSet(
            label=self._label,
            resolve_symlinks=self._resolve_symlinks,
            normalizer=self._normalizer,
        )

    def _check_target(self, normalized: str, write: bool) -> None:
        """Check the symlink-resolved form of a path against resolved prefixes."""
        resolved = self._normalizer.canonical(normalized)
        if resolved == strip_trailing_separator(normalized):
            return

        logger.debug("Checking resolved form %s of %s", resolved, normalized)
        prefixes: dict[str, bool] = {}
        for prefix, allow_write in self._paths.items():
            prefixes.setdefault(self._normalizer.canonical(prefix), allow_write)
        self._check_canonical(resolved, write, prefixes)

    def _check_canonical(
        self, normalized: str, write: bool, prefixes: Mapping[str, bool] | None = None
    ) -> None:
        if prefixes is None:
            prefixes = self._paths
        for prefix, allow_write in prefixes.items():
            if not is_nested(normalized, prefix):
                continue
            if write and not allow_write:
                msg = (
                    f'Write access to "{normalized}" denied by "{self._label}" '
                    "readonly restrictions"
                )
                raise WriteRestrictedError(msg, path=normalized, label=self._label)
            return

        method = "Write" if write else "Read"
        msg = (
            f'{method} access to "{normalized}" denied due to restrictions '
            f'defined by "{self._label}"'
        )
        raise PathRestrictedError(msg, path=normalized, label=self._label)

    def __str__(self) -> str:
        return ",".join(self._paths)

    def __repr__(self) -> str:
        entries = ", ".join(f"{p}:{'rw' if w else 'ro'}" for p, w in self._paths.items())
        return f"{type(self).__name__}(label={self._label!r}, [{entries}])"


class AllowAll(RestrictionSet):
    """Restriction set that permits every access.

    Reserved for trusted internal callers that must not be gated by the
    restrictions they help enforce. Adding paths has no effect on checks.
    """

    def __init__(self, label: str = "Unrestricted") -> None:
        super().__init__(label=label)

    def check(self, pattern: PathLike, write: bool = False) -> None:
        return None

    def check_resolved(self, pattern: PathLike, write: bool = False) -> None:
        return None

    def allows(self, pattern: PathLike, write: bool = False) -> bool:
        return True

    def with_parent(self, levels: int = 1) -> RestrictionSet:
        return AllowAll(self.label)

    def with_child(
        self, subpaths: str | Iterable[str], write: bool | None = None
    ) -> RestrictionSet:
        return AllowAll(self.label)

    def make_writable(self) -> RestrictionSet:
        return AllowAll(self.label)


ALLOW_ALL = AllowAll()


def ensure_restrictions(
    restrictions: RestrictionSet | PathLike | Iterable[PathLike] | None,
    write: bool = False,
    label: str | None = None,
) -> RestrictionSet | None:
    """Coerce a path or list of paths into a RestrictionSet.

    RestrictionSet instances are returned unchanged. Empty input returns
    None so callers can fall back to their own default.
    """
    if isinstance(restrictions, RestrictionSet):
        return restrictions
    if not restrictions:
        return None
    return RestrictionSet(restrictions, write=write, label=label)
