"""Exception hierarchy for the filesystem domain.

Every error raised by path normalization, restriction checks, traversal
and mount-table parsing derives from FilesystemError so callers can
catch the whole family at once. Restriction errors are security
relevant and always reach the immediate caller.
"""


class FilesystemError(Exception):
    """Base exception for filesystem-related errors."""


class InvalidPathError(FilesystemError):
    """Raised when a path string cannot be normalized."""


class BrokenSymlinkError(FilesystemError):
    """Raised when a followed symlink points to a target that does not exist."""


class SymlinkLoopError(FilesystemError):
    """Raised when symlink resolution exceeds the allowed number of hops."""


class RestrictionError(FilesystemError):
    """Base exception for access denied by a RestrictionSet.

    Attributes:
        path: The path that was checked.
        label: Label of the RestrictionSet that denied access.
    """

    def __init__(self, message: str, *, path: str | None = None, label: str | None = None) -> None:
        super().__init__(message)
        self.path = path
        self.label = label


class NoRestrictionsConfiguredError(RestrictionError):
    """Raised when a RestrictionSet with no entries is checked."""


class PathRestrictedError(RestrictionError):
    """Raised when no restriction entry covers the requested path."""


class WriteRestrictedError(RestrictionError):
    """Raised when write access is requested beneath a read-only entry."""


class TraversalError(FilesystemError):
    """Raised when a traversal fails on a filesystem or action error."""


class ActionError(Exception):
    """Optional base class for failures raised by traversal callbacks."""


class MountError(FilesystemError):
    """Base exception for mount-table errors."""


class NotMountedError(MountError):
    """Raised when a directory is not a mount target (or source is unknown)."""


class MalformedMountTableError(MountError):
    """Raised when the mount-table text cannot be parsed."""


class MountMismatchError(MountError):
    """Raised when a target is mounted from a different source than expected."""
