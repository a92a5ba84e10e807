"""Unit tests for configuration management.

Tests cover:
- Default configuration values
- TOML file loading
- Environment variable overrides
- Validation errors for invalid configurations
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from phasekeeper.config import (
    LoggingConfig,
    PhasekeeperConfig,
    ProjectConfig,
    load_config,
)


class TestLoggingConfig:
    """Test LoggingConfig defaults and validation."""

    def test_default_values(self) -> None:
        """Test that default logging configuration values are correct."""
        config = LoggingConfig()
        assert config.level == "WARNING"
        assert config.format == "console"
        assert config.file is None
        assert config.rotation_size_mb == 10
        assert config.retention_count == 5

    def test_level_validation(self) -> None:
        """Test that log level is validated case-insensitively."""
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError, match="Invalid log level"):
            LoggingConfig(level="INVALID")

    def test_format_validation(self) -> None:
        """Test that log format is validated."""
        assert LoggingConfig(format="JSON").format == "json"
        with pytest.raises(ValidationError, match="Invalid log format"):
            LoggingConfig(format="xml")


class TestProjectConfig:
    """Test ProjectConfig defaults, validation and derived paths."""

    def test_default_values(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that the state file defaults to .phasekeeper/project/state.yaml under cwd."""
        monkeypatch.chdir(tmp_path)
        config = ProjectConfig()
        assert config.root.resolve() == tmp_path.resolve()
        assert config.default_type == "standard"
        assert config.state_path.relative_to(config.root) == Path(".phasekeeper/project/state.yaml")

    def test_state_file_must_be_relative_yaml(self) -> None:
        """Test that absolute or non-YAML state files are rejected."""
        with pytest.raises(ValidationError, match="relative"):
            ProjectConfig(state_file=Path("/tmp/state.yaml"))
        with pytest.raises(ValidationError, match="yaml"):
            ProjectConfig(state_file=Path("state.json"))

    def test_empty_default_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ProjectConfig(default_type="")


class TestPhasekeeperConfig:
    """Test PhasekeeperConfig integration."""

    def test_default_values(self) -> None:
        """Test that default root configuration creates all subsections."""
        config = PhasekeeperConfig()
        assert isinstance(config.logging, LoggingConfig)
        assert isinstance(config.project, ProjectConfig)

    def test_nested_override(self) -> None:
        """Test that nested configuration can be overridden."""
        config = PhasekeeperConfig(project=ProjectConfig(default_type="exploration"))
        assert config.project.default_type == "exploration"
        assert config.logging.level == "WARNING"


class TestLoadConfig:
    """Test TOML configuration loading."""

    def test_load_defaults_when_no_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that defaults are loaded when no config file exists."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        config = load_config()
        assert isinstance(config, PhasekeeperConfig)
        assert config.project.default_type == "standard"

    def test_explicit_path_not_found(self) -> None:
        """Test that FileNotFoundError is raised for missing explicit path."""
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_config(Path("/nonexistent/config.toml"))

    def test_load_from_toml_file(self, tmp_path: Path) -> None:
        """Test loading configuration from a TOML file."""
        config_file = tmp_path / "test.toml"
        config_file.write_text("""
[project]
state_dir = ".state"
default_type = "exploration"

[logging]
level = "DEBUG"
format = "json"
""")

        config = load_config(config_file)
        assert config.project.state_dir == Path(".state")
        assert config.project.default_type == "exploration"
        assert config.logging.level == "DEBUG"
        assert config.logging.format == "json"
        # Unspecified values should be defaults
        assert config.project.state_file == Path("project/state.yaml")

    def test_invalid_values_raise_error(self, tmp_path: Path) -> None:
        """Test that invalid configuration values raise a ValueError."""
        config_file = tmp_path / "invalid.toml"
        config_file.write_text("""
[logging]
rotation_size_mb = "not a number"
""")

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(config_file)

    def test_malformed_toml_raises_error(self, tmp_path: Path) -> None:
        """Test that a syntactically broken file raises a ValueError."""
        config_file = tmp_path / "broken.toml"
        config_file.write_text("[logging\nlevel = ")

        with pytest.raises(ValueError, match="Malformed TOML"):
            load_config(config_file)

    def test_unknown_section_rejected(self, tmp_path: Path) -> None:
        """Test that unknown top-level sections are rejected."""
        config_file = tmp_path / "extra.toml"
        config_file.write_text("""
[database]
url = "sqlite://"
""")

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(config_file)

    def test_search_current_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that load_config searches current directory."""
        (tmp_path / "phasekeeper.toml").write_text("""
[project]
default_type = "exploration"
""")

        monkeypatch.chdir(tmp_path)
        config = load_config()
        assert config.project.default_type == "exploration"

    def test_environment_variable_override(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that environment variables override TOML values."""
        config_file = tmp_path / "test.toml"
        config_file.write_text("""
[logging]
level = "INFO"
""")

        monkeypatch.setenv("PHASEKEEPER_LOGGING__LEVEL", "ERROR")
        monkeypatch.setenv("PHASEKEEPER_PROJECT__STATE_DIR", ".elsewhere")

        config = load_config(config_file)
        assert config.logging.level == "ERROR"
        assert config.project.state_dir == Path(".elsewhere")
