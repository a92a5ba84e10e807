"""Pytest fixtures for integration tests.

CLI tests run every command in a temporary working directory, so the
default state file lands in ``<tmp>/.phasekeeper/project/state.yaml``.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from phasekeeper.cli import common


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Empty repository directory used as cwd and HOME."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    for var in ("PHASEKEEPER_LOGGING__LEVEL", "PHASEKEEPER_LOGGING__FORMAT", "PHASEKEEPER_PROJECT__STATE_DIR"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


@pytest.fixture
def cli_runner(monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    """Create a Typer CLI runner.

    The shared console is widened so long lines are not wrapped.
    """
    monkeypatch.setattr(common.console, "width", 200)
    return CliRunner()


@pytest.fixture
def state_file(workspace: Path) -> Path:
    return workspace / ".phasekeeper" / "project" / "state.yaml"
