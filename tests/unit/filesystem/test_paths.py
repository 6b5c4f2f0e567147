"""Unit tests for path normalization and symlink resolution."""

import os
from pathlib import Path

import pytest
from fswarden.filesystem.errors import (
    BrokenSymlinkError,
    FilesystemError,
    InvalidPathError,
    SymlinkLoopError,
)
from fswarden.filesystem.paths import (
    MAX_SYMLINK_HOPS,
    PathNormalizer,
    get_extension,
    is_nested,
    normalize_path,
    strip_trailing_separator,
)


class TestNormalize:
    """Tests for PathNormalizer.normalize."""

    def test_absolute_path_unchanged(self, normalizer: PathNormalizer) -> None:
        """Already canonical absolute paths are returned as-is."""
        assert normalizer.normalize("/var/lib/data") == "/var/lib/data"

    def test_relative_path_uses_base_dir(self, normalizer: PathNormalizer, tmp_path: Path) -> None:
        """Relative paths are resolved against the base directory."""
        assert normalizer.normalize("docs/readme.md") == f"{tmp_path}/docs/readme.md"

    def test_base_dir_captured_at_construction(self, tmp_path: Path) -> None:
        """Changing the working directory later does not affect results."""
        other = tmp_path / "other"
        other.mkdir()
        normalizer = PathNormalizer(tmp_path)

        cwd = os.getcwd()
        try:
            os.chdir(other)
            result = normalizer.normalize("file")
        finally:
            os.chdir(cwd)

        assert result == f"{tmp_path}/file"

    def test_default_base_follows_working_directory(self, tmp_path: Path) -> None:
        """Without an explicit base, relative paths use the current directory."""
        normalizer = PathNormalizer()

        cwd = os.getcwd()
        try:
            os.chdir(tmp_path)
            result = normalizer.normalize("file")
            module_result = normalize_path("file")
        finally:
            os.chdir(cwd)

        assert result == f"{tmp_path}/file"
        assert module_result == f"{tmp_path}/file"

    def test_home_expansion(self, normalizer: PathNormalizer, tmp_path: Path) -> None:
        """A leading ~ expands to the home directory."""
        assert normalizer.normalize("~") == f"{tmp_path}/home"
        assert normalizer.normalize("~/notes.txt") == f"{tmp_path}/home/notes.txt"

    def test_tilde_user_is_not_expanded(self, normalizer: PathNormalizer, tmp_path: Path) -> None:
        """Only ~ and ~/ are expanded; ~name is treated as a relative name."""
        assert normalizer.normalize("~bob") == f"{tmp_path}/~bob"

    def test_dot_segments_and_duplicate_separators(self, normalizer: PathNormalizer) -> None:
        """. segments are dropped, .. applied and repeated separators collapsed."""
        assert normalizer.normalize("/a/./b//c/../d") == "/a/b/d"

    def test_trailing_separator_preserved(self, normalizer: PathNormalizer) -> None:
        """A trailing separator marks an explicit directory and is kept."""
        assert normalizer.normalize("/a/b/") == "/a/b/"
        assert normalizer.normalize("/a/b") == "/a/b"

    def test_root_directory(self, normalizer: PathNormalizer) -> None:
        """The root directory normalizes to a single separator."""
        assert normalizer.normalize("/") == "/"
        assert normalizer.normalize("///") == "/"

    def test_surrounding_whitespace_stripped(self, normalizer: PathNormalizer) -> None:
        """Leading and trailing whitespace is ignored."""
        assert normalizer.normalize("  /etc/hosts  ") == "/etc/hosts"

    @pytest.mark.parametrize("value", ["", "   "])
    def test_empty_path_rejected(self, normalizer: PathNormalizer, value: str) -> None:
        """Empty input raises InvalidPathError."""
        with pytest.raises(InvalidPathError, match="empty"):
            normalizer.normalize(value)

    def test_nul_byte_rejected(self, normalizer: PathNormalizer) -> None:
        """Paths containing NUL bytes raise InvalidPathError."""
        with pytest.raises(InvalidPathError, match="NUL"):
            normalizer.normalize("/tmp/evil\x00.txt")

    def test_climbing_above_root_rejected(self, normalizer: PathNormalizer) -> None:
        """.. beyond the root directory raises InvalidPathError."""
        with pytest.raises(InvalidPathError, match="beyond the root"):
            normalizer.normalize("/a/../../etc/passwd")

    def test_accepts_path_objects(self, normalizer: PathNormalizer) -> None:
        """os.PathLike values are accepted."""
        assert normalizer.normalize(Path("/srv/www")) == "/srv/www"

    def test_invalid_max_hops(self) -> None:
        """max_hops lower than 1 is rejected."""
        with pytest.raises(ValueError, match="max_hops"):
            PathNormalizer(max_hops=0)

    def test_module_helper_uses_default_normalizer(self) -> None:
        """normalize_path works without an explicit normalizer."""
        assert normalize_path("/x/y/../z") == "/x/z"


class TestResolveSymlink:
    """Tests for PathNormalizer.resolve_symlink."""

    def test_plain_path_resolves_to_itself(
        self, normalizer: PathNormalizer, tmp_path: Path
    ) -> None:
        """A path without links is returned unchanged."""
        target = tmp_path / "plain.txt"
        target.write_text("x")

        assert normalizer.resolve_symlink(str(target)) == str(target)

    def test_follows_chain(self, normalizer: PathNormalizer, tmp_path: Path) -> None:
        """Chains of links are followed to the final target."""
        target = tmp_path / "real.txt"
        target.write_text("x")
        (tmp_path / "link1").symlink_to(target)
        (tmp_path / "link2").symlink_to(tmp_path / "link1")

        assert normalizer.resolve_symlink(str(tmp_path / "link2")) == str(target)

    def test_relative_link_target(self, normalizer: PathNormalizer, tmp_path: Path) -> None:
        """Relative link targets are resolved against the link's directory."""
        (tmp_path / "data").mkdir()
        (tmp_path / "data" / "file").write_text("x")
        (tmp_path / "alias").symlink_to("data")

        assert normalizer.resolve_symlink(str(tmp_path / "alias" / "file")) == str(
            tmp_path / "data" / "file"
        )

    def test_link_in_parent_directory(self, normalizer: PathNormalizer, tmp_path: Path) -> None:
        """Links in intermediate components are followed too."""
        real = tmp_path / "real"
        (real / "nested").mkdir(parents=True)
        (tmp_path / "shortcut").symlink_to(real)

        resolved = normalizer.resolve_symlink(str(tmp_path / "shortcut" / "nested"))
        assert resolved == str(real / "nested")

    def test_two_node_cycle(self, normalizer: PathNormalizer, tmp_path: Path) -> None:
        """A -> B -> A fails with SymlinkLoopError, never hangs."""
        (tmp_path / "a").symlink_to(tmp_path / "b")
        (tmp_path / "b").symlink_to(tmp_path / "a")

        with pytest.raises(SymlinkLoopError):
            normalizer.resolve_symlink(str(tmp_path / "a"))

    def test_hop_limit_is_configurable(self, tmp_path: Path) -> None:
        """A chain longer than max_hops fails even without a cycle."""
        (tmp_path / "end").write_text("x")
        (tmp_path / "l1").symlink_to(tmp_path / "end")
        (tmp_path / "l2").symlink_to(tmp_path / "l1")
        (tmp_path / "l3").symlink_to(tmp_path / "l2")

        with pytest.raises(SymlinkLoopError):
            PathNormalizer(tmp_path, max_hops=2).resolve_symlink(str(tmp_path / "l3"))
        assert PathNormalizer(tmp_path, max_hops=3).resolve_symlink(str(tmp_path / "l3")) == str(
            tmp_path / "end"
        )

    def test_default_hop_limit(self) -> None:
        """The default limit matches the kernel's."""
        assert PathNormalizer().max_hops == MAX_SYMLINK_HOPS == 40

    def test_broken_link(self, normalizer: PathNormalizer, tmp_path: Path) -> None:
        """A link to a missing target raises BrokenSymlinkError."""
        (tmp_path / "dangling").symlink_to(tmp_path / "missing")

        with pytest.raises(BrokenSymlinkError):
            normalizer.resolve_symlink(str(tmp_path / "dangling"))

    def test_missing_path_without_links(self, normalizer: PathNormalizer, tmp_path: Path) -> None:
        """A missing path with no links involved raises FilesystemError."""
        with pytest.raises(FilesystemError, match="does not exist") as exc_info:
            normalizer.resolve_symlink(str(tmp_path / "nope"))

        assert not isinstance(exc_info.value, BrokenSymlinkError)

    def test_partial_chain_allowed(self, normalizer: PathNormalizer, tmp_path: Path) -> None:
        """With must_exist=False the missing tail is returned lexically."""
        real = tmp_path / "real"
        real.mkdir()
        (tmp_path / "link").symlink_to(real)

        result = normalizer.canonical(str(tmp_path / "link" / "new" / "file.txt"))

        assert result == str(real / "new" / "file.txt")


class TestHelpers:
    """Tests for module-level path helpers."""

    def test_strip_trailing_separator(self) -> None:
        """Trailing separators are removed except for the root."""
        assert strip_trailing_separator("/a/b/") == "/a/b"
        assert strip_trailing_separator("/") == "/"

    @pytest.mark.parametrize(
        ("path", "prefix", "expected"),
        [
            ("/data", "/data", True),
            ("/data/file", "/data", True),
            ("/data/file", "/data/", True),
            ("/database", "/data", False),
            ("/dat", "/data", False),
            ("/anything", "/", True),
        ],
    )
    def test_is_nested(self, path: str, prefix: str, expected: bool) -> None:
        """Prefix containment is component-aware."""
        assert is_nested(path, prefix) is expected

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/a/report.txt", "txt"),
            ("/a/archive.tar.gz", "gz"),
            ("/a/README", ""),
            ("/a/.bashrc", ""),
        ],
    )
    def test_get_extension(self, path: str, expected: str) -> None:
        """Extensions come from the final segment, without the dot."""
        assert get_extension(path) == expected
