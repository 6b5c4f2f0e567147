"""Duplicate file detection and removal.

DuplicateFinder groups files by size and then by content hash.
DuplicateResolver deletes every member of each group except the first,
accumulating counts and byte totals.
"""

import hashlib
import logging
import os
from collections import defaultdict
from collections.abc import Iterable, Iterator
from pathlib import Path

from fswarden.filesystem.errors import FilesystemError
from fswarden.filesystem.handle import LocalFile
from fswarden.filesystem.models import DuplicateGroup, DuplicateOutcome, TraversalSpec
from fswarden.filesystem.restrictions import RestrictionSet
from fswarden.filesystem.traversal import TraversalEngine

logger = logging.getLogger(__name__)

# Files above this size are not hashed unless the caller raises the limit
DEFAULT_MAX_SIZE: int = 1_073_741_824

_HASH_CHUNK_SIZE = 1024 * 1024


class DuplicateResolver:
    """Deletes redundant members of duplicate groups.

    Groups are expected to contain only paths already validated by a
    RestrictionSet; deletion failures are not suppressed.

    Attributes:
        _dry_run: If True, report what would be deleted without deleting.
    """

    def __init__(self, dry_run: bool = False) -> None:
        """Initialize the DuplicateResolver.

        Args:
            dry_run: If True, simulate deletions without modifying the filesystem.
        """
        self._dry_run = dry_run

    def delete_keeping_first(self, groups: Iterable[DuplicateGroup]) -> DuplicateOutcome:
        """Delete all but the first member of each group.

        Each member's size is read before it is deleted. Groups are
        consumed lazily, so a generator of groups is processed as it is
        produced.

        Args:
            groups: Duplicate groups, members in discovery order.

        Returns:
            DuplicateOutcome with counts, bytes and deleted handles.

        Raises:
            FilesystemError: If reading a size or deleting a member fails.
            RestrictionError: If a member may not be written.
        """
        outcome = DuplicateOutcome(dry_run=self._dry_run)

        for group in groups:
            logger.debug("Keeping %s, %d duplicate(s)", group.keeper.path, len(group.redundant))

            for member in group.redundant:
                if member.path == group.keeper.path:
                    logger.warning("Not deleting %s, it is the file being kept", member.path)
                    continue

                size = member.get_size()

                if self._dry_run:
                    logger.info("Dry-run: would delete duplicate %s", member.path)
                else:
                    member.delete()
                    logger.info("Deleted duplicate %s of %s", member.path, group.keeper.path)

                outcome.deleted_count += 1
                outcome.deleted_bytes += size
                outcome.deleted_files.append(member)

        return outcome


class DuplicateFinder:
    """Finds groups of files with identical content beneath some roots.

    Files are first bucketed by size; only buckets with two or more
    files are hashed (SHA-1). Group members keep traversal order, which
    is sorted per directory, so results are deterministic.

    Args:
        restrictions: RestrictionSet the traversal and file handles use.
    """

    def __init__(self, restrictions: RestrictionSet) -> None:
        self._restrictions = restrictions

    def find(
        self,
        roots: Iterable[str],
        *,
        recurse: bool = True,
        max_size: int = DEFAULT_MAX_SIZE,
        follow_hidden: bool = False,
    ) -> Iterator[DuplicateGroup]:
        """Yield duplicate groups found beneath the roots.

        Args:
            roots: Directories (or files) to scan.
            recurse: Descend into subdirectories.
            max_size: Files larger than this are ignored with a warning.
            follow_hidden: Include hidden files.

        Yields:
            DuplicateGroup for every set of two or more identical files.
        """
        sizes = self._sizes_table(tuple(roots), recurse, max_size, follow_hidden)
        logger.info("Found %d size bucket(s), hash checking candidates", len(sizes))

        for files in sizes.values():
            if len(files) < 2:
                continue

            by_hash: dict[str, list[LocalFile]] = defaultdict(list)
            for handle in files:
                by_hash[self._hash_file(handle)].append(handle)

            for members in by_hash.values():
                if len(members) > 1:
                    yield DuplicateGroup(members=tuple(members))

    def _sizes_table(
        self,
        roots: tuple[str, ...],
        recurse: bool,
        max_size: int,
        follow_hidden: bool,
    ) -> dict[int, list[LocalFile]]:
        """Map file size to the files of that size, in discovery order.

        A file reached more than once (overlapping roots, hard links) is
        recorded only the first time, keyed by device and inode.
        """
        sizes: dict[int, list[LocalFile]] = defaultdict(list)
        seen: set[tuple[int, int]] = set()

        def collect(path: str) -> None:
            handle = LocalFile(path, self._restrictions)
            size = handle.get_size()
            try:
                info = os.lstat(path)
            except OSError as e:
                msg = f"Cannot stat {path}: {e}"
                raise FilesystemError(msg) from e
            key = (info.st_dev, info.st_ino)
            if key in seen:
                logger.info("Ignoring %s, the same file was already found", path)
                return
            seen.add(key)

            if size > max_size:
                logger.warning(
                    "Ignoring file %s with size %d, it is larger than the maximum of %d",
                    path,
                    size,
                    max_size,
                )
                return
            sizes[size].append(handle)

        spec = TraversalSpec(roots=roots, recurse=recurse, follow_hidden=follow_hidden)
        TraversalEngine(self._restrictions).run(spec, collect)
        return sizes

    def _hash_file(self, handle: LocalFile) -> str:
        self._restrictions.check_resolved(handle.path, write=False)
        digest = hashlib.sha1(usedforsecurity=False)
        try:
            with Path(handle.path).open("rb") as f:
                for chunk in iter(lambda: f.read(_HASH_CHUNK_SIZE), b""):
                    digest.update(chunk)
        except OSError as e:
            msg = f"Cannot hash {handle.path}: {e}"
            raise FilesystemError(msg) from e
        return digest.hexdigest()
