"""Path normalization and symlink resolution.

All components normalize before comparing or storing paths. Normalization
is purely lexical; symlink resolution walks the real filesystem one
component at a time with a bounded number of link expansions.
"""

import logging
import os
from pathlib import Path, PurePosixPath

from fswarden.filesystem.errors import (
    BrokenSymlinkError,
    FilesystemError,
    InvalidPathError,
    SymlinkLoopError,
)

logger = logging.getLogger(__name__)

# Same limit as the Linux kernel (MAXSYMLINKS)
MAX_SYMLINK_HOPS: int = 40

_SEP = "/"


class PathNormalizer:
    """Turns user-supplied path strings into canonical absolute paths.

    Args:
        base_dir: Directory that relative paths are resolved against.
            When given it is captured once, so later chdir() calls do
            not change results. When omitted, relative paths follow the
            working directory current at the time of each call.
        home: Directory that a leading ``~`` expands to. Defaults to the
            current user's home directory.
        max_hops: Maximum number of symlink expansions before resolution
            fails with SymlinkLoopError.
    """

    def __init__(
        self,
        base_dir: str | os.PathLike[str] | None = None,
        *,
        home: str | os.PathLike[str] | None = None,
        max_hops: int = MAX_SYMLINK_HOPS,
    ) -> None:
        if max_hops < 1:
            msg = f"max_hops must be 1 or higher, got {max_hops}"
            raise ValueError(msg)

        self._base_dir = self._lexical(str(base_dir)) if base_dir is not None else None
        self._home = str(home) if home is not None else str(Path.home())
        self._max_hops = max_hops

    @property
    def base_dir(self) -> str:
        """Directory that relative paths are resolved against."""
        if self._base_dir is None:
            return self._lexical(os.getcwd())
        return self._base_dir

    @property
    def max_hops(self) -> int:
        """Maximum number of symlink expansions."""
        return self._max_hops

    def normalize(self, path: str | os.PathLike[str]) -> str:
        """Normalize a path string into canonical absolute form.

        Expands a leading ``~``, makes relative paths absolute, removes
        ``.`` segments, applies ``..`` segments and collapses repeated
        separators. A trailing separator is kept only when the input
        ends with one, marking it explicitly as a directory.

        Args:
            path: Relative, absolute or home-relative path.

        Returns:
            Absolute, lexically normalized path.

        Raises:
            InvalidPathError: If the path is empty, contains a NUL byte,
                or climbs above the filesystem root.
        """
        raw = os.fspath(path).strip()
        if not raw:
            msg = "Path cannot be empty"
            raise InvalidPathError(msg)
        if "\x00" in raw:
            msg = f"Path contains a NUL byte: {raw!r}"
            raise InvalidPathError(msg)

        directory = raw.endswith(_SEP)

        if raw == "~" or raw.startswith("~/"):
            raw = self._home + _SEP + raw[1:]
        elif not raw.startswith(_SEP):
            raw = self.base_dir + _SEP + raw

        normalized = self._lexical(raw)
        if directory and normalized != _SEP:
            normalized += _SEP
        return normalized

    def resolve_symlink(self, path: str | os.PathLike[str], *, must_exist: bool = True) -> str:
        """Resolve every symlink in a path.

        Walks the normalized path component by component. Whenever a
        component is a symlink its target is spliced in and resolution
        continues, so chains and links in parent directories are all
        followed.

        Args:
            path: Path to resolve.
            must_exist: If False, a missing tail is returned lexically
                instead of failing (useful for paths about to be created).

        Returns:
            Canonical path with no symlink components and no trailing
            separator.

        Raises:
            SymlinkLoopError: If more than max_hops links are expanded.
            BrokenSymlinkError: If a followed link's target does not exist.
            FilesystemError: If the path does not exist and no link was
                followed, or a link cannot be read.
        """
        normalized = self.normalize(path)
        pending = [part for part in normalized.split(_SEP) if part]
        pending.reverse()
        resolved = _SEP
        hops = 0
        followed: str | None = None

        while pending:
            name = pending.pop()
            if name == ".":
                continue
            if name == "..":
                resolved = self._parent(resolved)
                continue

            candidate = self._join(resolved, name)
            if not os.path.islink(candidate):
                resolved = candidate
                continue

            hops += 1
            if hops > self._max_hops:
                msg = (
                    f"Too many levels of symbolic links resolving {normalized} "
                    f"(limit {self._max_hops})"
                )
                raise SymlinkLoopError(msg)

            try:
                target = os.readlink(candidate)
            except OSError as e:
                msg = f"Cannot read symlink {candidate}: {e}"
                raise FilesystemError(msg) from e

            logger.debug("Following symlink %s -> %s", candidate, target)
            followed = candidate
            if target.startswith(_SEP):
                resolved = _SEP
            parts = [part for part in target.split(_SEP) if part]
            pending.extend(reversed(parts))

        if must_exist and not os.path.exists(resolved):
            if followed is not None:
                msg = f"Symlink {followed} points to {resolved}, which does not exist"
                raise BrokenSymlinkError(msg)
            msg = f"Path does not exist: {normalized}"
            raise FilesystemError(msg)

        return resolved

    def canonical(self, path: str | os.PathLike[str]) -> str:
        """Return the symlink-resolved form of a path that may not exist yet."""
        return self.resolve_symlink(path, must_exist=False)

    def _lexical(self, path: str) -> str:
        """Apply ``.``/``..`` segments to an absolute path string."""
        parts: list[str] = []
        for part in path.split(_SEP):
            if part in ("", "."):
                continue
            if part == "..":
                if not parts:
                    msg = f"Cannot normalize path {path!r}, it passes beyond the root directory"
                    raise InvalidPathError(msg)
                parts.pop()
                continue
            parts.append(part)
        return _SEP + _SEP.join(parts)

    @staticmethod
    def _join(directory: str, name: str) -> str:
        if directory == _SEP:
            return _SEP + name
        return directory + _SEP + name

    @staticmethod
    def _parent(path: str) -> str:
        return str(PurePosixPath(path).parent)


def strip_trailing_separator(path: str) -> str:
    """Remove a trailing separator, keeping the root directory intact."""
    stripped = path.rstrip(_SEP)
    return stripped or _SEP


def is_nested(path: str, prefix: str) -> bool:
    """Check whether a canonical path equals or lies beneath a canonical prefix.

    The comparison is component-aware: ``/data`` contains ``/data/x``
    but not ``/database``.
    """
    path = strip_trailing_separator(path)
    prefix = strip_trailing_separator(prefix)
    if prefix == _SEP:
        return True
    return path == prefix or path.startswith(prefix + _SEP)


def get_extension(path: str | os.PathLike[str]) -> str:
    """Return the final segment's extension without the leading dot.

    ``archive.tar.gz`` yields ``gz``; ``README`` and ``.bashrc`` yield ``""``.
    """
    return PurePosixPath(os.fspath(path)).suffix.removeprefix(".")


_default_normalizer: PathNormalizer | None = None


def get_normalizer() -> PathNormalizer:
    """Return the process-wide default PathNormalizer (created lazily)."""
    global _default_normalizer
    if _default_normalizer is None:
        _default_normalizer = PathNormalizer()
    return _default_normalizer


def normalize_path(path: str | os.PathLike[str]) -> str:
    """Normalize a path with the default normalizer.

    Relative paths resolve against the working directory current at the
    time of the call.
    """
    return get_normalizer().normalize(path)


def resolve_symlink(path: str | os.PathLike[str], *, must_exist: bool = True) -> str:
    """Resolve symlinks in a path with the default normalizer."""
    return get_normalizer().resolve_symlink(path, must_exist=must_exist)
