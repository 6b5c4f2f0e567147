"""Unit tests for configuration CLI commands."""

import tomllib
from pathlib import Path

from fswarden.cli.main import app
from fswarden.core.config import DirectoryRoots, WardenConfig, load_config, save_config
from typer.testing import CliRunner

runner = CliRunner()


class TestInitCommand:
    """Tests for fswarden config init."""

    def test_init_writes_defaults(self, tmp_path: Path) -> None:
        """init creates a config file with default settings."""
        path = tmp_path / "config.toml"

        result = runner.invoke(app, ["--config", str(path), "config", "init"])

        assert result.exit_code == 0
        assert load_config(path) == WardenConfig()

    def test_init_with_roots(self, tmp_path: Path) -> None:
        """--root NAME=PATH sets named roots."""
        path = tmp_path / "config.toml"

        result = runner.invoke(
            app,
            [
                "--config",
                str(path),
                "config",
                "init",
                "--root",
                "data=/var/lib/app",
                "--root",
                "tmp=/tmp/app",
            ],
        )

        assert result.exit_code == 0
        with open(path, "rb") as f:
            data = tomllib.load(f)
        assert data["roots"] == {"data": "/var/lib/app", "tmp": "/tmp/app"}

    def test_init_invalid_root_syntax(self, tmp_path: Path) -> None:
        """Roots without NAME=PATH form are rejected."""
        path = tmp_path / "config.toml"

        result = runner.invoke(app, ["--config", str(path), "config", "init", "--root", "data"])

        assert result.exit_code == 1
        assert "NAME=PATH" in result.output
        assert not path.exists()

    def test_init_unknown_root(self, tmp_path: Path) -> None:
        """Unknown root names are rejected."""
        path = tmp_path / "config.toml"

        result = runner.invoke(
            app, ["--config", str(path), "config", "init", "--root", "music=/srv/music"]
        )

        assert result.exit_code == 1
        assert not path.exists()

    def test_init_refuses_overwrite(self, tmp_path: Path) -> None:
        """An existing config is kept unless --force is given."""
        path = tmp_path / "config.toml"
        save_config(WardenConfig(max_symlink_hops=5), path)

        refused = runner.invoke(app, ["--config", str(path), "config", "init"])
        assert refused.exit_code == 1
        assert load_config(path).max_symlink_hops == 5

        forced = runner.invoke(app, ["--config", str(path), "config", "init", "--force"])
        assert forced.exit_code == 0
        assert load_config(path).max_symlink_hops == 40


class TestShowCommand:
    """Tests for fswarden config show."""

    def test_show_roots_and_settings(self, tmp_path: Path) -> None:
        """show prints configured roots and settings."""
        path = tmp_path / "config.toml"
        save_config(WardenConfig(roots=DirectoryRoots(cache="/var/cache/app")), path)

        result = runner.invoke(app, ["--config", str(path), "config", "show"])

        assert result.exit_code == 0
        assert "cache" in result.output
        assert "/var/cache/app" in result.output
        assert "max_symlink_hops = 40" in result.output

    def test_show_defaults_when_missing(self, tmp_path: Path) -> None:
        """Without a config file the defaults are shown."""
        result = runner.invoke(
            app, ["--config", str(tmp_path / "missing.toml"), "config", "show"]
        )

        assert result.exit_code == 0
        assert "defaults" in result.output
        assert "No directory roots configured" in result.output

    def test_show_invalid_config(self, tmp_path: Path) -> None:
        """A broken config file is reported."""
        path = tmp_path / "config.toml"
        path.write_text("max_symlink_hops = [")

        result = runner.invoke(app, ["--config", str(path), "config", "show"])

        assert result.exit_code == 1
        assert "Invalid TOML" in result.output


class TestPathCommand:
    """Tests for fswarden config path."""

    def test_path_prints_location(self, tmp_path: Path) -> None:
        """path prints the selected config file."""
        path = tmp_path / "c.toml"

        result = runner.invoke(app, ["--config", str(path), "config", "path"])

        assert result.exit_code == 0
        assert "c.toml" in result.output
