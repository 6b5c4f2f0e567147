"""Restriction-aware directory traversal.

Walks one or more roots depth-first, applying skip, hidden, symlink and
extension policies, and invokes a caller-supplied action on every
matching entry. Policy exclusions and vanished entries are reported as
warnings; restriction errors and (unless ignored) action failures stop
the run.
"""

import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from fswarden.filesystem.errors import FilesystemError, RestrictionError, TraversalError
from fswarden.filesystem.handle import LocalFile
from fswarden.filesystem.models import PathType, TraversalSpec, TraversalStats
from fswarden.filesystem.paths import (
    PathNormalizer,
    get_extension,
    get_normalizer,
    is_nested,
    strip_trailing_separator,
)
from fswarden.filesystem.restrictions import RestrictionSet

logger = logging.getLogger(__name__)

Action = Callable[[str], object]


class TraversalEngine:
    """Walks paths under a RestrictionSet and applies an action.

    The engine keeps no state between runs other than the statistics of
    the most recent run.

    Args:
        restrictions: RestrictionSet every path is checked against.
        normalizer: PathNormalizer used for roots and skip prefixes.
    """

    def __init__(
        self,
        restrictions: RestrictionSet,
        *,
        normalizer: PathNormalizer | None = None,
    ) -> None:
        self._restrictions = restrictions
        self._normalizer = normalizer or get_normalizer()
        self._stats = TraversalStats()

    @property
    def restrictions(self) -> RestrictionSet:
        return self._restrictions

    @property
    def stats(self) -> TraversalStats:
        """Counters of the current (or most recent) run."""
        return self._stats

    def run(self, spec: TraversalSpec, action: Action) -> int:
        """Invoke the action on every matching file beneath the roots.

        Directories are never passed to the action; they are descended
        into when ``spec.recurse`` is set. A root that is a file is
        processed like any other file.

        Args:
            spec: What to traverse and how.
            action: Called with the canonical path of each matching file.

        Returns:
            Number of files the action was invoked on.

        Raises:
            RestrictionError: If a root or entry is not permitted.
            TraversalError: If a root is missing or unreadable, or the
                action fails and ``spec.ignore_action_errors`` is False.
        """
        roots, skip = self._prepare(spec)
        visited: set[tuple[int, int]] = set()

        for root in roots:
            if self._is_skipped(root, skip):
                logger.info("Skipping root %s, it is on the skip list", root)
                self._stats.skipped += 1
                continue

            path = Path(root)
            if not path.exists():
                msg = f"Traversal root does not exist: {root}"
                raise TraversalError(msg)

            if path.is_dir():
                self._walk(root, spec, skip, action, visited)
            elif self._extension_allowed(root, spec):
                self._invoke(root, spec, action)
            else:
                self._stats.skipped += 1

        return self._stats.processed

    def run_on_paths(self, spec: TraversalSpec, action: Action) -> int:
        """Invoke the action once on each root itself, files and directories alike.

        Nothing is descended into; extension filters do not apply.

        Returns:
            Number of roots the action was invoked on.
        """
        roots, skip = self._prepare(spec)

        for root in roots:
            if self._is_skipped(root, skip):
                logger.info("Skipping path %s, it is on the skip list", root)
                self._stats.skipped += 1
                continue
            self._invoke(root, spec, action)

        return self._stats.processed

    def _prepare(self, spec: TraversalSpec) -> tuple[list[str], frozenset[str]]:
        """Normalize roots and skip prefixes and check every root up front."""
        self._stats = TraversalStats()
        normalize = self._normalizer.normalize

        skip = frozenset(
            strip_trailing_separator(normalize(prefix)) for prefix in spec.skip_prefixes
        )
        roots = [strip_trailing_separator(normalize(root)) for root in spec.roots]

        for root in roots:
            self._check(root, spec)
            if spec.temporary_mode is not None:
                self._check(root, spec, write=True)

        return roots, skip

    def _walk(
        self,
        directory: str,
        spec: TraversalSpec,
        skip: frozenset[str],
        action: Action,
        visited: set[tuple[int, int]],
    ) -> None:
        """Process the entries of one directory, recursing when requested."""
        self._check(directory, spec)

        try:
            info = os.stat(directory)
        except FileNotFoundError:
            logger.warning("Not following directory %s, it no longer exists", directory)
            self._stats.skipped += 1
            return
        except OSError as e:
            msg = f"Cannot access directory {directory}: {e}"
            raise TraversalError(msg) from e

        key = (info.st_dev, info.st_ino)
        if key in visited:
            logger.warning(
                "Not following directory %s, it was already visited (symlink cycle)", directory
            )
            self._stats.skipped += 1
            return
        visited.add(key)

        try:
            entries = sorted(Path(directory).iterdir())
        except FileNotFoundError:
            logger.warning("Not following directory %s, it no longer exists", directory)
            self._stats.skipped += 1
            return
        except OSError as e:
            msg = f"Cannot read directory {directory}: {e}"
            raise TraversalError(msg) from e

        for entry in entries:
            path = str(entry)

            if self._is_skipped(path, skip):
                logger.info("Skipping path %s, it is on the skip list", path)
                self._stats.skipped += 1
                continue

            if entry.name.startswith(".") and not spec.follow_hidden:
                logger.warning("Not following path %s, hidden files are ignored", path)
                self._stats.skipped += 1
                continue

            path_type = self._classify(entry)

            if path_type == PathType.MISSING:
                logger.warning("Not processing %s, it no longer exists", path)
                self._stats.skipped += 1
                continue

            if path_type in (PathType.SYMLINK, PathType.DEAD_SYMLINK):
                if not spec.follow_symlinks:
                    logger.warning("Not following path %s, symlinks are ignored", path)
                    self._stats.skipped += 1
                    continue
                if path_type == PathType.DEAD_SYMLINK:
                    logger.warning(
                        "Not processing %s, it does not exist (probably dead symlink)", path
                    )
                    self._stats.skipped += 1
                    continue

            if entry.is_dir():
                if spec.recurse:
                    self._walk(path, spec, skip, action, visited)
                continue

            if not self._extension_allowed(path, spec):
                self._stats.skipped += 1
                continue

            self._check(path, spec)
            self._invoke(path, spec, action)

    def _invoke(self, path: str, spec: TraversalSpec, action: Action) -> None:
        """Call the action on one path, honoring temporary mode and error policy."""
        logger.debug("Executing action on %s", path)
        self._stats.processed += 1

        with self._temporary_mode(path, spec.temporary_mode):
            try:
                action(path)
            except RestrictionError:
                raise
            except Exception as e:
                if not spec.ignore_action_errors:
                    msg = f"Action failed on {path}: {e}"
                    raise TraversalError(msg) from e
                self._stats.failed += 1
                logger.warning("Path %s encountered error %r which will be ignored", path, e)

    def _check(self, path: str, spec: TraversalSpec, write: bool = False) -> None:
        """Check a path, and its link target too when links are followed."""
        if spec.follow_symlinks:
            self._restrictions.check_resolved(path, write)
        else:
            self._restrictions.check(path, write)

    @contextmanager
    def _temporary_mode(self, path: str, mode: int | None) -> Iterator[None]:
        """Apply a permission mode for the duration of the block, then restore it."""
        if mode is None:
            yield
            return

        handle = LocalFile(path, self._restrictions)
        original = handle.get_mode()
        handle.chmod(mode)
        logger.debug("Switched mode of %s from %o to %o", path, original, mode)
        try:
            yield
        finally:
            try:
                handle.chmod(original)
            except FilesystemError:
                logger.error("Failed to restore mode %o on %s", original, path)
                raise

    @staticmethod
    def _classify(entry: Path) -> PathType:
        """Classify a directory entry without following it."""
        try:
            if entry.is_symlink():
                return PathType.SYMLINK if entry.exists() else PathType.DEAD_SYMLINK
            if not entry.exists():
                return PathType.MISSING
            if entry.is_dir():
                return PathType.DIRECTORY
        except OSError:
            return PathType.MISSING
        return PathType.FILE

    @staticmethod
    def _is_skipped(path: str, skip: frozenset[str]) -> bool:
        return any(is_nested(path, prefix) for prefix in skip)

    @staticmethod
    def _extension_allowed(path: str, spec: TraversalSpec) -> bool:
        """Apply the allow-list and deny-list; both are always evaluated."""
        extension = get_extension(path)
        allowed = True

        if spec.extension_allow is not None and extension not in spec.extension_allow:
            logger.warning(
                "Not executing action on file %s, the extension is not on the allow-list", path
            )
            allowed = False

        if spec.extension_deny is not None and extension in spec.extension_deny:
            logger.warning(
                "Not executing action on file %s, the extension is on the deny-list", path
            )
            allowed = False

        return allowed
