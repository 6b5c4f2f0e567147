"""Kernel mount-table parsing and lookup.

Parses the line-oriented mount table (``/proc/mounts`` by default) into
source-keyed and target-keyed lookups. Each refresh builds a complete
new snapshot and swaps it in with a single assignment, so readers never
see entries from two different refreshes. A malformed line fails the
whole refresh and the previous snapshot stays in place.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from fswarden.filesystem.errors import (
    FilesystemError,
    MalformedMountTableError,
    MountMismatchError,
    NotMountedError,
)
from fswarden.filesystem.paths import PathNormalizer, get_normalizer, strip_trailing_separator

logger = logging.getLogger(__name__)

DEFAULT_MOUNTS_FILE = "/proc/mounts"

_FIELD_COUNT = 6
_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")

MountSource = Callable[[], str]


@dataclass(frozen=True, slots=True)
class MountEntry:
    """One row of the kernel mount table.

    Attributes:
        source: Mounted device or pseudo-filesystem name (e.g. "/dev/sda1", "tmpfs").
        target: Canonical mount point.
        filesystem_type: Filesystem type (e.g. "ext4").
        options: Comma-separated mount options.
        dump_frequency: dump(8) frequency field.
        pass_number: fsck(8) pass number field.
    """

    source: str
    target: str
    filesystem_type: str
    options: str
    dump_frequency: int
    pass_number: int

    @property
    def option_list(self) -> list[str]:
        """Mount options as a list."""
        return [option for option in self.options.split(",") if option]

    @property
    def is_read_only(self) -> bool:
        return "ro" in self.option_list


@dataclass(frozen=True, slots=True)
class _Snapshot:
    entries: tuple[MountEntry, ...]
    by_source: Mapping[str, MountEntry]
    by_target: Mapping[str, MountEntry]


def read_mounts_file(path: str = DEFAULT_MOUNTS_FILE) -> str:
    """Read the raw mount-table text from a file.

    Raises:
        FilesystemError: If the file cannot be read.
    """
    try:
        return Path(path).read_text(encoding="utf-8", errors="surrogateescape")
    except OSError as e:
        msg = f"Cannot read mount table {path}: {e}"
        raise FilesystemError(msg) from e


def _unescape(field: str) -> str:
    """Decode the octal escapes the kernel uses for spaces, tabs and backslashes."""
    return _OCTAL_ESCAPE.sub(lambda match: chr(int(match.group(1), 8)), field)


def parse_mount_table(
    text: str, normalizer: PathNormalizer | None = None
) -> tuple[MountEntry, ...]:
    """Parse mount-table text into entries.

    Blank lines are ignored. Every other line must have exactly six
    whitespace-separated fields.

    Args:
        text: Raw mount-table text.
        normalizer: PathNormalizer used to canonicalize targets.

    Returns:
        Entries in table order.

    Raises:
        MalformedMountTableError: If a line has the wrong number of
            fields or non-numeric dump/pass fields.
    """
    normalizer = normalizer or get_normalizer()
    entries: list[MountEntry] = []

    for line_num, line in enumerate(text.splitlines(), start=1):
        fields = line.split()
        if not fields:
            continue
        if len(fields) != _FIELD_COUNT:
            msg = (
                f"Mount table line {line_num} has {len(fields)} fields, "
                f"expected {_FIELD_COUNT}: {line!r}"
            )
            raise MalformedMountTableError(msg)

        source, target, fs_type, options, dump, pass_number = fields
        try:
            dump_frequency = int(dump)
            pass_num = int(pass_number)
        except ValueError as e:
            msg = f"Mount table line {line_num} has non-numeric dump/pass fields: {line!r}"
            raise MalformedMountTableError(msg) from e

        try:
            canonical_target = strip_trailing_separator(normalizer.normalize(_unescape(target)))
        except FilesystemError as e:
            msg = f"Mount table line {line_num} has an invalid target: {line!r}"
            raise MalformedMountTableError(msg) from e

        entries.append(
            MountEntry(
                source=_unescape(source),
                target=canonical_target,
                filesystem_type=fs_type,
                options=options,
                dump_frequency=dump_frequency,
                pass_number=pass_num,
            )
        )

    return tuple(entries)


class MountTable:
    """Snapshot of the live mount table with lookups by source and target.

    Args:
        source: Callable returning the raw mount-table text. Defaults to
            reading ``/proc/mounts``.
        normalizer: PathNormalizer used for targets and lookups.
    """

    def __init__(
        self,
        source: MountSource | None = None,
        *,
        normalizer: PathNormalizer | None = None,
    ) -> None:
        self._source = source or read_mounts_file
        self._normalizer = normalizer or get_normalizer()
        self._snapshot: _Snapshot | None = None

    @classmethod
    def from_file(cls, path: str, *, normalizer: PathNormalizer | None = None) -> MountTable:
        """Create a table that reads the given mounts file on each refresh."""
        return cls(lambda: read_mounts_file(path), normalizer=normalizer)

    def refresh(self) -> MountTable:
        """Rebuild the snapshot from the current mount-table text.

        Later lines win when several mounts share a source or target,
        matching the kernel's view of stacked mounts.

        Returns:
            This table, for chaining.

        Raises:
            MalformedMountTableError: If the text cannot be parsed.
            FilesystemError: If the text cannot be read.
        """
        self._rebuild()
        return self

    @property
    def entries(self) -> tuple[MountEntry, ...]:
        return self._current().entries

    @property
    def by_source(self) -> Mapping[str, MountEntry]:
        return self._current().by_source

    @property
    def by_target(self) -> Mapping[str, MountEntry]:
        return self._current().by_target

    def lookup_by_target(self, directory: str) -> MountEntry:
        """Return the mount whose target is exactly this directory.

        Raises:
            NotMountedError: If no mount has this canonical target.
            InvalidPathError: If the directory cannot be normalized.
        """
        target = strip_trailing_separator(self._normalizer.normalize(directory))
        entry = self._current().by_target.get(target)
        if entry is None:
            msg = f"Directory {target} is not a mount target"
            raise NotMountedError(msg)
        return entry

    def lookup_by_source(self, source: str) -> MountEntry:
        """Return the mount for this source.

        Raises:
            NotMountedError: If the source is not mounted.
        """
        entry = self._current().by_source.get(source)
        if entry is None:
            msg = f"Source {source} is not mounted"
            raise NotMountedError(msg)
        return entry

    def current_source(self, target: str) -> str | None:
        """Return what a directory is mounted from, or None if it is not a mount target."""
        try:
            return self.lookup_by_target(target).source
        except NotMountedError:
            return None

    def is_mounted(self, target: str, expected_source: str | None = None) -> bool:
        """Check whether a directory is mounted, optionally from a specific source.

        Raises:
            MountMismatchError: If the directory is mounted from a
                different source than expected.
        """
        current = self.current_source(target)
        if current is None:
            return False
        if expected_source is not None and current != expected_source:
            msg = (
                f"Target {target} should be mounted from {expected_source} "
                f"but is mounted from {current}"
            )
            raise MountMismatchError(msg)
        return True

    def _rebuild(self) -> _Snapshot:
        entries = parse_mount_table(self._source(), self._normalizer)
        by_source = {entry.source: entry for entry in entries}
        by_target = {entry.target: entry for entry in entries}

        snapshot = _Snapshot(
            entries=entries,
            by_source=MappingProxyType(by_source),
            by_target=MappingProxyType(by_target),
        )
        self._snapshot = snapshot
        logger.debug("Mount table refreshed, %d entries", len(entries))
        return snapshot

    def _current(self) -> _Snapshot:
        snapshot = self._snapshot
        if snapshot is None:
            snapshot = self._rebuild()
        return snapshot
