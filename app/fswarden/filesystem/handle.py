"""File handle abstraction used by traversal and duplicate resolution.

The engine depends only on the FileHandle capability surface. LocalFile
implements it for the local filesystem and checks every operation
against its RestrictionSet before touching the disk.
"""

import logging
import os
import shutil
import stat
from pathlib import Path
from typing import Protocol, runtime_checkable

from fswarden.filesystem.errors import FilesystemError
from fswarden.filesystem.paths import get_extension
from fswarden.filesystem.restrictions import RestrictionSet

logger = logging.getLogger(__name__)


@runtime_checkable
class FileHandle(Protocol):
    """Capabilities the filesystem core needs from a file."""

    @property
    def path(self) -> str: ...

    def get_size(self) -> int: ...

    def get_extension(self) -> str: ...

    def get_mode(self) -> int: ...

    def delete(self) -> None: ...

    def chmod(self, mode: int) -> None: ...

    def exists(self) -> bool: ...

    def is_symlink(self) -> bool: ...

    def is_directory(self) -> bool: ...


class LocalFile:
    """FileHandle backed by the local filesystem.

    Reads (stat, size, mode) require read access and mutations (delete,
    chmod) require write access under the given restrictions. Operations
    that follow symlinks (mode, chmod) check the link target as well.

    Args:
        path: Canonical path of the file.
        restrictions: RestrictionSet gating every operation.
    """

    def __init__(self, path: str, restrictions: RestrictionSet) -> None:
        if not path:
            msg = "Path cannot be empty"
            raise ValueError(msg)
        self._path = path
        self._restrictions = restrictions

    @property
    def path(self) -> str:
        return self._path

    @property
    def restrictions(self) -> RestrictionSet:
        return self._restrictions

    def get_size(self) -> int:
        """Size in bytes of the file itself (symlinks are not followed)."""
        self._restrictions.check(self._path, write=False)
        try:
            return Path(self._path).lstat().st_size
        except OSError as e:
            msg = f"Cannot determine size of {self._path}: {e}"
            raise FilesystemError(msg) from e

    def get_extension(self) -> str:
        return get_extension(self._path)

    def get_mode(self) -> int:
        """Permission bits of the file, following symlinks."""
        self._restrictions.check_resolved(self._path, write=False)
        try:
            return stat.S_IMODE(Path(self._path).stat().st_mode)
        except OSError as e:
            msg = f"Cannot read mode of {self._path}: {e}"
            raise FilesystemError(msg) from e

    def delete(self) -> None:
        """Delete the file, symlink or directory tree.

        Symlinks are removed themselves, never their targets.
        """
        self._restrictions.check(self._path, write=True)
        target = Path(self._path)
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        except OSError as e:
            msg = f"Cannot delete {self._path}: {e}"
            raise FilesystemError(msg) from e
        logger.debug("Deleted %s", self._path)

    def chmod(self, mode: int) -> None:
        self._restrictions.check_resolved(self._path, write=True)
        try:
            os.chmod(self._path, mode)
        except OSError as e:
            msg = f"Cannot change mode of {self._path} to {mode:o}: {e}"
            raise FilesystemError(msg) from e

    def exists(self) -> bool:
        """True if the path exists (dangling symlinks count as missing)."""
        self._restrictions.check(self._path, write=False)
        return Path(self._path).exists()

    def is_symlink(self) -> bool:
        self._restrictions.check(self._path, write=False)
        return Path(self._path).is_symlink()

    def is_directory(self) -> bool:
        self._restrictions.check(self._path, write=False)
        return Path(self._path).is_dir()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LocalFile):
            return NotImplemented
        return self._path == other._path

    def __hash__(self) -> int:
        return hash(self._path)

    def __str__(self) -> str:
        return self._path

    def __repr__(self) -> str:
        return f"LocalFile({self._path!r})"
