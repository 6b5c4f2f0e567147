"""Unit tests for the LocalFile handle."""

import stat
from pathlib import Path
from unittest.mock import patch

import pytest
from fswarden.filesystem.errors import FilesystemError, PathRestrictedError, WriteRestrictedError
from fswarden.filesystem.handle import FileHandle, LocalFile
from fswarden.filesystem.restrictions import RestrictionSet


class TestLocalFile:
    """Tests for LocalFile."""

    def test_implements_protocol(self, tmp_path: Path) -> None:
        """LocalFile satisfies the FileHandle protocol."""
        handle = LocalFile(str(tmp_path / "x"), RestrictionSet(str(tmp_path)))

        assert isinstance(handle, FileHandle)

    def test_empty_path_rejected(self) -> None:
        """An empty path is a programming error."""
        with pytest.raises(ValueError, match="empty"):
            LocalFile("", RestrictionSet("/"))

    def test_get_size_and_extension(self, tmp_path: Path) -> None:
        """Size and extension are read from the file."""
        target = tmp_path / "data.json"
        target.write_text("12345")
        handle = LocalFile(str(target), RestrictionSet(str(tmp_path)))

        assert handle.get_size() == 5
        assert handle.get_extension() == "json"

    def test_size_of_symlink_is_link_size(self, tmp_path: Path) -> None:
        """Symlinks are not followed when reading the size."""
        target = tmp_path / "big.bin"
        target.write_bytes(b"x" * 4096)
        link = tmp_path / "link"
        link.symlink_to(target)

        handle = LocalFile(str(link), RestrictionSet(str(tmp_path)))

        assert handle.get_size() == link.lstat().st_size
        assert handle.is_symlink() is True

    def test_read_outside_restrictions(self, tmp_path: Path) -> None:
        """Reading outside the restrictions raises before touching the disk."""
        target = tmp_path / "file"
        target.write_text("x")
        handle = LocalFile(str(target), RestrictionSet("/nonexistent"))

        with pytest.raises(PathRestrictedError):
            handle.get_size()

    def test_delete_file(self, tmp_path: Path) -> None:
        """Deleting a file requires write access and removes it."""
        target = tmp_path / "file"
        target.write_text("x")

        LocalFile(str(target), RestrictionSet.writable(str(tmp_path))).delete()

        assert not target.exists()

    def test_delete_directory(self, tmp_path: Path) -> None:
        """Directories are removed recursively."""
        target = tmp_path / "dir"
        (target / "nested").mkdir(parents=True)
        (target / "nested" / "file").write_text("x")

        LocalFile(str(target), RestrictionSet.writable(str(tmp_path))).delete()

        assert not target.exists()

    def test_delete_symlink_keeps_target(self, tmp_path: Path) -> None:
        """Deleting a symlink removes the link, not the target."""
        real_dir = tmp_path / "real"
        real_dir.mkdir()
        link = tmp_path / "link"
        link.symlink_to(real_dir)

        LocalFile(str(link), RestrictionSet.writable(str(tmp_path))).delete()

        assert not link.is_symlink()
        assert real_dir.exists()

    def test_delete_readonly(self, tmp_path: Path) -> None:
        """Deleting beneath a read-only entry is refused."""
        target = tmp_path / "file"
        target.write_text("x")

        with pytest.raises(WriteRestrictedError):
            LocalFile(str(target), RestrictionSet.readonly(str(tmp_path))).delete()

        assert target.exists()

    def test_delete_missing_wraps_oserror(self, tmp_path: Path) -> None:
        """OS errors are wrapped in FilesystemError."""
        handle = LocalFile(str(tmp_path / "missing"), RestrictionSet.writable(str(tmp_path)))

        with pytest.raises(FilesystemError, match="Cannot delete") as exc_info:
            handle.delete()

        assert isinstance(exc_info.value.__cause__, OSError)

    def test_chmod_and_get_mode(self, tmp_path: Path) -> None:
        """chmod changes the permission bits reported by get_mode."""
        target = tmp_path / "file"
        target.write_text("x")
        handle = LocalFile(str(target), RestrictionSet.writable(str(tmp_path)))

        handle.chmod(0o640)

        assert handle.get_mode() == 0o640
        assert stat.S_IMODE(target.stat().st_mode) == 0o640

    def test_chmod_through_link_outside_restrictions(self, tmp_path: Path) -> None:
        """chmod checks the link target, not just the link."""
        allowed = tmp_path / "allowed"
        allowed.mkdir()
        secret = tmp_path / "secret"
        secret.write_text("x")
        secret.chmod(0o600)
        (allowed / "link").symlink_to(secret)
        handle = LocalFile(str(allowed / "link"), RestrictionSet.writable(str(allowed)))

        with pytest.raises(PathRestrictedError):
            handle.chmod(0o777)
        with pytest.raises(PathRestrictedError):
            handle.get_mode()

        assert stat.S_IMODE(secret.stat().st_mode) == 0o600

    def test_chmod_through_link_to_readonly_target(self, tmp_path: Path) -> None:
        """A link into a read-only prefix cannot be used to change modes."""
        allowed = tmp_path / "allowed"
        shared = tmp_path / "shared"
        allowed.mkdir()
        shared.mkdir()
        (shared / "file").write_text("x")
        (allowed / "link").symlink_to(shared / "file")
        restrictions = RestrictionSet({str(allowed): True, str(shared): False})
        handle = LocalFile(str(allowed / "link"), restrictions)

        with pytest.raises(WriteRestrictedError):
            handle.chmod(0o777)

    def test_chmod_failure(self, tmp_path: Path) -> None:
        """chmod errors are wrapped in FilesystemError."""
        target = tmp_path / "file"
        target.write_text("x")
        handle = LocalFile(str(target), RestrictionSet.writable(str(tmp_path)))

        with patch("fswarden.filesystem.handle.os.chmod", side_effect=PermissionError("denied")):
            with pytest.raises(FilesystemError, match="Cannot change mode"):
                handle.chmod(0o600)

    def test_exists_and_is_directory(self, tmp_path: Path) -> None:
        """Existence checks respect the restrictions and the disk."""
        restrictions = RestrictionSet(str(tmp_path))

        assert LocalFile(str(tmp_path), restrictions).is_directory() is True
        assert LocalFile(str(tmp_path / "missing"), restrictions).exists() is False

    def test_equality_by_path(self, tmp_path: Path) -> None:
        """Handles compare and hash by path."""
        restrictions = RestrictionSet(str(tmp_path))
        first = LocalFile(str(tmp_path / "a"), restrictions)
        second = LocalFile(str(tmp_path / "a"), RestrictionSet("/"))

        assert first == second
        assert len({first, second}) == 1
        assert str(first) == str(tmp_path / "a")
