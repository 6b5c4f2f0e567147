"""Application configuration file I/O.

This module defines the configuration models (named directory roots and
engine settings) and provides functions for loading and saving them in
TOML format with validation using Pydantic models. Directory roots are
always passed explicitly to the components that need them.
"""

import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from fswarden.core.paths import get_config_path
from fswarden.filesystem.duplicates import DEFAULT_MAX_SIZE
from fswarden.filesystem.mounts import DEFAULT_MOUNTS_FILE
from fswarden.filesystem.paths import MAX_SYMLINK_HOPS


class ConfigError(Exception):
    """Base exception for configuration-related errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the configuration file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the configuration file cannot be parsed."""


class ConfigValidationError(ConfigError):
    """Raised when configuration content is invalid."""


class DirectoryRoots(BaseModel):
    """Named directory roots that restriction sets can be built for.

    Every root is optional; asking for an unset root is an error.

    Attributes:
        root: Project or installation root.
        data: Persistent data directory.
        system: System/runtime state directory.
        cache: Cache directory.
        tmp: Private temporary directory.
        public_tmp: Publicly served temporary directory.
        web: Web document root.
        cdn: CDN asset directory.
    """

    model_config = ConfigDict(extra="forbid")

    root: Annotated[str | None, Field(description="Project root")] = None
    data: Annotated[str | None, Field(description="Data directory")] = None
    system: Annotated[str | None, Field(description="System directory")] = None
    cache: Annotated[str | None, Field(description="Cache directory")] = None
    tmp: Annotated[str | None, Field(description="Temporary directory")] = None
    public_tmp: Annotated[str | None, Field(description="Public temporary directory")] = None
    web: Annotated[str | None, Field(description="Web root")] = None
    cdn: Annotated[str | None, Field(description="CDN directory")] = None

    @field_validator("*")
    @classmethod
    def validate_absolute(cls, v: str | None) -> str | None:
        """Roots must be absolute paths."""
        if v is None:
            return v
        value = v.strip()
        if not value.startswith(("/", "~")):
            msg = f"Directory root must be absolute, got {v!r}"
            raise ValueError(msg)
        return value

    def get(self, name: str) -> str:
        """Return the configured path of a named root.

        Raises:
            KeyError: If the name is unknown or the root is not configured.
        """
        if name not in type(self).model_fields:
            msg = f"Unknown directory root: {name}"
            raise KeyError(msg)
        value = getattr(self, name)
        if value is None:
            msg = f"Directory root is not configured: {name}"
            raise KeyError(msg)
        return value

    def configured(self) -> dict[str, str]:
        """Return all configured roots as a name -> path mapping."""
        return {name: value for name, value in self.model_dump().items() if value is not None}


class WardenConfig(BaseModel):
    """Top-level configuration.

    Attributes:
        roots: Named directory roots.
        max_symlink_hops: Symlink expansions allowed before a loop is assumed.
        mounts_file: Mount-table file read by MountTable.
        duplicate_max_size: Largest file (bytes) considered for duplicate detection.
    """

    model_config = ConfigDict(extra="forbid")

    roots: Annotated[DirectoryRoots, Field(default_factory=DirectoryRoots)]
    max_symlink_hops: Annotated[int, Field(ge=1, le=1000)] = MAX_SYMLINK_HOPS
    mounts_file: str = DEFAULT_MOUNTS_FILE
    duplicate_max_size: Annotated[int, Field(ge=0)] = DEFAULT_MAX_SIZE


def load_config(path: Path | None = None) -> WardenConfig:
    """Load and validate the configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default path.

    Returns:
        Validated WardenConfig object.

    Raises:
        ConfigNotFoundError: If the config file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigValidationError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return WardenConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid config content: {e}") from e


def load_config_or_default(path: Path | None = None) -> WardenConfig:
    """Load the configuration, falling back to defaults if the file is missing."""
    try:
        return load_config(path)
    except ConfigNotFoundError:
        return WardenConfig()


def save_config(config: WardenConfig, path: Path | None = None) -> Path:
    """Save the configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    in the same directory and then using os.replace() for atomic rename.

    Args:
        config: The WardenConfig object to save.
        path: Path to save to. If None, uses the default path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = _config_to_dict(config)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path


def _config_to_dict(config: WardenConfig) -> dict[str, Any]:
    """Convert a config to a TOML-serializable dictionary.

    TOML has no null, so unset roots are omitted.
    """
    return config.model_dump(exclude_none=True)
