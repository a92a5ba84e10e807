"""Configuration management for Phasekeeper.

Configuration is defined with Pydantic settings and can come from a TOML
file, environment variables, or programmatic overrides.

Configuration loading priority (highest to lowest):
1. Environment variables (PHASEKEEPER_* prefix)
2. TOML configuration file (or values passed to the PhasekeeperConfig constructor)
3. Default values defined in this module

Example TOML configuration:
    [project]
    state_dir = ".phasekeeper"
    default_type = "standard"

    [logging]
    level = "DEBUG"

Example environment variable override:
    PHASEKEEPER_PROJECT__STATE_DIR=".state"
    PHASEKEEPER_LOGGING__FORMAT=json
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomli
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log format (json or console)
        file: Optional log file path (None for stderr only)
        rotation_size_mb: Log file rotation size in megabytes
        retention_count: Number of rotated log files to keep
    """

    model_config = SettingsConfigDict(
        env_prefix="PHASEKEEPER_LOGGING__",
        extra="forbid",
    )

    level: str = Field(default="WARNING")
    format: str = Field(default="console")
    file: Path | None = Field(default=None)
    rotation_size_mb: int = Field(default=10, ge=1, le=1000)
    retention_count: int = Field(default=5, ge=1, le=100)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level is recognized."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format is recognized."""
        valid_formats = {"json", "console"}
        v_lower = v.lower()
        if v_lower not in valid_formats:
            raise ValueError(f"Invalid log format: {v}. Must be one of {valid_formats}")
        return v_lower


class ProjectConfig(BaseSettings):
    """Where project state lives and how new projects are created.

    Attributes:
        root: Repository root the state directory is relative to.
        state_dir: Directory holding phasekeeper files, relative to root.
        state_file: State document path, relative to state_dir.
        default_type: Project type used when none is given or detected.
    """

    model_config = SettingsConfigDict(
        env_prefix="PHASEKEEPER_PROJECT__",
        extra="forbid",
    )

    root: Path = Field(default_factory=Path.cwd)
    state_dir: Path = Field(default=Path(".phasekeeper"))
    state_file: Path = Field(default=Path("project/state.yaml"))
    default_type: str = Field(default="standard", min_length=1)

    @field_validator("state_file")
    @classmethod
    def validate_state_file(cls, v: Path) -> Path:
        """Require a relative YAML path."""
        if v.is_absolute():
            raise ValueError(f"state_file must be relative to state_dir: {v}")
        if v.suffix not in {".yaml", ".yml"}:
            raise ValueError(f"state_file must be a .yaml file: {v}")
        return v

    @property
    def state_path(self) -> Path:
        return self.root / self.state_dir / self.state_file


class PhasekeeperConfig(BaseSettings):
    """Root configuration for Phasekeeper.

    Environment variable format for nested config:
        PHASEKEEPER_<SECTION>__<KEY>=value
    """

    model_config = SettingsConfigDict(
        env_prefix="PHASEKEEPER_",
        env_nested_delimiter="__",
        extra="forbid",
    )

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    project: ProjectConfig = Field(default_factory=ProjectConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # TOML values arrive as constructor kwargs; the environment wins over them.
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def load_config(config_path: Path | None = None) -> PhasekeeperConfig:
    """Load configuration from TOML file with environment variable overrides.

    Configuration search order (first found is used):
    1. config_path if explicitly provided
    2. ./phasekeeper.toml (current directory)
    3. ~/.config/phasekeeper/config.toml (user config directory)

    Args:
        config_path: Explicit path to TOML config file. If None, searches
                    default locations.

    Returns:
        PhasekeeperConfig: Fully resolved configuration instance.

    Raises:
        FileNotFoundError: If config_path is explicitly provided but doesn't exist.
        ValueError: If the TOML file is malformed or holds invalid configuration.
    """
    toml_data: dict[str, Any] = {}

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        selected_path: Path | None = config_path
    else:
        search_paths = [
            Path.cwd() / "phasekeeper.toml",
            Path.home() / ".config" / "phasekeeper" / "config.toml",
        ]
        selected_path = next((p for p in search_paths if p.exists()), None)

    if selected_path is not None:
        try:
            with open(selected_path, "rb") as f:
                toml_data = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ValueError(f"Malformed TOML in {selected_path}: {e}") from e

    try:
        return PhasekeeperConfig(**toml_data)
    except ValidationError as e:
        where = f" in {selected_path}" if selected_path else ""
        raise ValueError(f"Invalid configuration{where}: {e}") from e
