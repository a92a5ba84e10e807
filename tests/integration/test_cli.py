"""Integration tests for CLI commands.

This module drives the Typer CLI against a state file in a temporary
repository directory, one command per invocation.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from phasekeeper.main import app


def _run(cli_runner: CliRunner, *args: str, code: int = 0):
    result = cli_runner.invoke(app, list(args))
    assert result.exit_code == code, result.output
    return result


def _to_review(cli_runner: CliRunner) -> None:
    """Create a standard project and drive it to ReviewActive."""
    _run(cli_runner, "new", "Add login", "--branch", "feat/add-login")
    _run(cli_runner, "advance", "skip_discovery")
    _run(cli_runner, "advance", "skip_design")
    _run(cli_runner, "task", "add", "Write middleware")
    _run(cli_runner, "phase", "set", "implementation", "tasks_approved", "true")
    _run(cli_runner, "advance")
    _run(cli_runner, "task", "update", "010", "--status", "completed")
    _run(cli_runner, "advance")


@pytest.mark.integration
class TestNewCommand:
    """Integration tests for project creation."""

    def test_new_creates_state_file(self, cli_runner: CliRunner, state_file: Path) -> None:
        result = _run(cli_runner, "new", "Add login rate limiting", "--branch", "feat/rate-limit")

        assert "Project Created" in result.output
        assert "add-login-rate-limiting" in result.output
        assert "DiscoveryDecision" in result.output
        document = yaml.safe_load(state_file.read_text())
        assert document["type"] == "standard"
        assert document["branch"] == "feat/rate-limit"
        assert document["statechart"]["current_state"] == "DiscoveryDecision"

    def test_type_detected_from_branch(self, cli_runner: CliRunner, state_file: Path) -> None:
        result = _run(cli_runner, "new", "--branch", "explore/cache-options")

        assert "exploration" in result.output
        assert yaml.safe_load(state_file.read_text())["name"] == "cache-options"

    def test_explicit_type_and_name(self, cli_runner: CliRunner, state_file: Path) -> None:
        _run(cli_runner, "new", "Whatever", "--type", "exploration", "--name", "custom-name")

        document = yaml.safe_load(state_file.read_text())
        assert document["type"] == "exploration"
        assert document["name"] == "custom-name"

    def test_existing_project_refused(self, cli_runner: CliRunner, state_file: Path) -> None:
        _run(cli_runner, "new", "First")
        result = _run(cli_runner, "new", "Second", code=1)

        assert "already exists" in result.output
        assert yaml.safe_load(state_file.read_text())["name"] == "first"

        _run(cli_runner, "new", "Second", "--force")
        assert yaml.safe_load(state_file.read_text())["name"] == "second"

    def test_unknown_type(self, cli_runner: CliRunner, state_file: Path) -> None:
        result = _run(cli_runner, "new", "x", "--type", "quick", code=1)

        assert "Unknown project type" in result.output
        assert not state_file.exists()

    def test_state_dir_from_environment(
        self, cli_runner: CliRunner, workspace: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("PHASEKEEPER_PROJECT__STATE_DIR", ".state")
        _run(cli_runner, "new", "Elsewhere")

        assert (workspace / ".state" / "project" / "state.yaml").exists()


@pytest.mark.integration
class TestStatusCommand:
    def test_no_project(self, cli_runner: CliRunner, workspace: Path) -> None:
        result = _run(cli_runner, "status", code=1)

        assert "No project found" in result.output
        assert "phasekeeper new" in result.output

    def test_status_lists_phases(self, cli_runner: CliRunner, workspace: Path) -> None:
        _run(cli_runner, "new", "Add login")
        _run(cli_runner, "advance", "skip_discovery")

        result = _run(cli_runner, "status")

        assert "DesignDecision" in result.output
        for phase in ("discovery", "design", "implementation", "review", "finalize"):
            assert phase in result.output
        assert "skipped (disabled)" in result.output


@pytest.mark.integration
class TestAdvanceCommand:
    """Integration tests for advance, --list and --dry-run."""

    def test_list(self, cli_runner: CliRunner, workspace: Path) -> None:
        _run(cli_runner, "new", "Add login")

        result = _run(cli_runner, "advance", "--list")

        assert "Current state: DiscoveryDecision" in result.output
        assert "enable_discovery" in result.output
        assert "skip_discovery" in result.output

    def test_intent_required(self, cli_runner: CliRunner, state_file: Path) -> None:
        _run(cli_runner, "new", "Add login")

        result = _run(cli_runner, "advance", code=1)

        assert "requires an explicit event" in result.output
        assert "Available transitions" in result.output
        assert yaml.safe_load(state_file.read_text())["statechart"]["current_state"] == "DiscoveryDecision"

    def test_explicit_event(self, cli_runner: CliRunner, workspace: Path) -> None:
        _run(cli_runner, "new", "Add login")

        result = _run(cli_runner, "advance", "enable_discovery")

        assert "Advanced DiscoveryDecision -> DiscoveryActive via enable_discovery" in result.output
        assert "(determined)" not in result.output

    def test_determined_event(self, cli_runner: CliRunner, workspace: Path) -> None:
        _run(cli_runner, "new", "Add login")
        _run(cli_runner, "advance", "enable_discovery")

        result = _run(cli_runner, "advance")

        assert "DiscoveryActive -> DesignDecision via complete_discovery (determined)" in result.output

    def test_unknown_event(self, cli_runner: CliRunner, workspace: Path) -> None:
        _run(cli_runner, "new", "Add login")

        result = _run(cli_runner, "advance", "review_pass", code=1)

        assert "not configured from state DiscoveryDecision" in result.output
        assert "Valid events: enable_discovery, skip_discovery" in result.output

    def test_guard_failure(self, cli_runner: CliRunner, workspace: Path) -> None:
        _run(cli_runner, "new", "Add login")
        _run(cli_runner, "advance", "skip_discovery")
        _run(cli_runner, "advance", "skip_design")

        result = _run(cli_runner, "advance", code=1)

        assert "guard not met: tasks approved and at least one task" in result.output
        assert "Blocked by:" in result.output

    def test_dry_run(self, cli_runner: CliRunner, state_file: Path) -> None:
        _run(cli_runner, "new", "Add login")
        before = state_file.read_text()

        ok = _run(cli_runner, "advance", "--dry-run", "skip_discovery")
        unknown = _run(cli_runner, "advance", "--dry-run", "nope", code=1)

        assert "OK: skip_discovery would move DiscoveryDecision -> DesignDecision" in ok.output
        assert "Would fail:" in unknown.output
        assert state_file.read_text() == before

    def test_dry_run_blocked_by_guard(self, cli_runner: CliRunner, workspace: Path) -> None:
        _run(cli_runner, "new", "--branch", "explore/cache")

        result = _run(cli_runner, "advance", "--dry-run", "begin_summarizing", code=1)

        assert "Would fail: guard not met: all research topics completed or abandoned" in result.output

    @pytest.mark.parametrize(
        ("args", "message"),
        [
            (["--list", "skip_discovery"], "cannot specify event argument with --list flag"),
            (["--list", "--dry-run"], "cannot use --list and --dry-run together"),
            (["--dry-run"], "--dry-run requires an event argument"),
        ],
    )
    def test_argument_errors(
        self, cli_runner: CliRunner, workspace: Path, args: list[str], message: str
    ) -> None:
        result = _run(cli_runner, "advance", *args, code=1)
        assert message in result.output

    def test_review_discriminator_without_branch(self, cli_runner: CliRunner, workspace: Path) -> None:
        """Test that an unknown assessment reports the known values."""
        _to_review(cli_runner)
        _run(
            cli_runner,
            "artifact", "add", "reviews/1.md", "--type", "review", "--approved", "--meta", "assessment=maybe",
        )

        result = _run(cli_runner, "advance", code=1)

        assert 'known values: ["pass", "fail"]' in result.output
        assert "review_pass" in result.output

    def test_review_fail_returns_to_planning(self, cli_runner: CliRunner, state_file: Path) -> None:
        _to_review(cli_runner)
        _run(cli_runner, "artifact", "add", "reviews/1.md", "--type", "review", "-m", "assessment=fail")
        _run(cli_runner, "artifact", "approve", "reviews/1.md")

        result = _run(cli_runner, "advance")

        assert "ReviewActive -> ImplementationPlanning via review_fail (determined)" in result.output
        document = yaml.safe_load(state_file.read_text())
        assert document["phases"]["review"]["status"] == "failed"
        assert document["phases"]["implementation"]["iteration"] == 2


@pytest.mark.integration
class TestArtifactTaskPhaseCommands:
    """Integration tests for the artifact, task and phase sub-commands."""

    def test_artifact_add_and_approve(self, cli_runner: CliRunner, state_file: Path) -> None:
        _run(cli_runner, "new", "Add login")
        _run(cli_runner, "advance", "enable_discovery")

        added = _run(cli_runner, "artifact", "add", "notes.md", "--type", "notes", "-m", "pages=3")
        approved = _run(cli_runner, "artifact", "approve", "notes.md")

        assert "Added notes artifact notes.md to discovery" in added.output
        assert "Approved notes.md in discovery" in approved.output
        artifact = yaml.safe_load(state_file.read_text())["phases"]["discovery"]["artifacts"][0]
        assert artifact["approved"] is True
        assert artifact["metadata"] == {"pages": 3}

    def test_artifact_type_rejected(self, cli_runner: CliRunner, workspace: Path) -> None:
        _run(cli_runner, "new", "Add login")

        result = _run(
            cli_runner, "artifact", "add", "notes.md", "--type", "notes", "--phase", "review", code=1
        )

        assert "not allowed in phase review" in result.output

    def test_artifact_bad_meta(self, cli_runner: CliRunner, workspace: Path) -> None:
        _run(cli_runner, "new", "Add login")

        result = cli_runner.invoke(app, ["artifact", "add", "a.md", "--type", "notes", "-m", "novalue"])

        assert result.exit_code != 0

    def test_approve_missing_artifact(self, cli_runner: CliRunner, workspace: Path) -> None:
        _run(cli_runner, "new", "Add login")

        result = _run(cli_runner, "artifact", "approve", "missing.md", code=1)

        assert "Artifact missing.md not found in phase discovery" in result.output

    def test_tasks(self, cli_runner: CliRunner, state_file: Path) -> None:
        _run(cli_runner, "new", "Add login")

        first = _run(cli_runner, "task", "add", "Write middleware", "--agent", "coder")
        _run(cli_runner, "task", "add", "Write tests", "--id", "tests")
        updated = _run(cli_runner, "task", "update", "010", "--status", "in_progress")
        listing = _run(cli_runner, "task", "list")

        assert "Added task 010 to implementation: Write middleware" in first.output
        assert "Task 010 is now in_progress" in updated.output
        assert "Write middleware" in listing.output
        assert "tests" in listing.output
        assert "coder" in listing.output
        tasks = yaml.safe_load(state_file.read_text())["phases"]["implementation"]["tasks"]
        assert [(t["id"], t["status"]) for t in tasks] == [("010", "in_progress"), ("tests", "pending")]

    def test_task_update_unknown(self, cli_runner: CliRunner, workspace: Path) -> None:
        _run(cli_runner, "new", "Add login")

        result = _run(cli_runner, "task", "update", "999", "--status", "completed", code=1)

        assert "Task 999 not found in phase implementation" in result.output

    def test_task_list_empty(self, cli_runner: CliRunner, workspace: Path) -> None:
        _run(cli_runner, "new", "Add login")

        result = _run(cli_runner, "task", "list")

        assert "No tasks in implementation" in result.output

    def test_phase_set_and_show(self, cli_runner: CliRunner, state_file: Path) -> None:
        _run(cli_runner, "new", "Add login")

        result = _run(cli_runner, "phase", "set", "implementation", "tasks_approved", "true")
        shown = _run(cli_runner, "phase", "show", "implementation")

        assert "Set implementation.tasks_approved = True" in result.output
        assert "tasks_approved" in shown.output
        metadata = yaml.safe_load(state_file.read_text())["phases"]["implementation"]["metadata"]
        assert metadata == {"tasks_approved": True}

    def test_phase_set_invalid_metadata(self, cli_runner: CliRunner, state_file: Path) -> None:
        _run(cli_runner, "new", "Add login")
        before = state_file.read_text()

        result = _run(cli_runner, "phase", "set", "implementation", "surprise", "1", code=1)

        assert "Invalid metadata for phase implementation" in result.output
        assert state_file.read_text() == before

    def test_phase_show_unknown(self, cli_runner: CliRunner, workspace: Path) -> None:
        _run(cli_runner, "new", "Add login")

        result = _run(cli_runner, "phase", "show", "planning", code=1)

        assert "Phase not found: planning" in result.output


@pytest.mark.integration
class TestLogCommand:
    """Test recording and reading the project log."""

    def test_add_and_show(self, cli_runner: CliRunner, state_file: Path) -> None:
        _run(cli_runner, "new", "Add login")
        _run(cli_runner, "task", "add", "Write middleware")

        added = _run(
            cli_runner,
            "log", "add",
            "--action", "test_run",
            "--result", "success",
            "--agent", "implementer",
            "--task", "010",
            "--file", "src/login.py",
            "--notes", "Middleware passes.",
        )
        shown = _run(cli_runner, "log", "show")

        assert "Logged test_run (success)" in added.output
        log = (state_file.parent / "log.md").read_text()
        assert "agent: implementer\naction: test_run\nresult: success\n" in log
        assert '  - src/login.py' in log
        assert "Middleware passes." in shown.output

    def test_show_empty(self, cli_runner: CliRunner, workspace: Path) -> None:
        _run(cli_runner, "new", "Add login")

        result = _run(cli_runner, "log", "show")

        assert "The project log is empty." in result.output

    def test_invalid_action(self, cli_runner: CliRunner, state_file: Path) -> None:
        _run(cli_runner, "new", "Add login")

        _run(cli_runner, "log", "add", "-a", "deploy", "-r", "success", "-g", "x", code=2)

        assert not (state_file.parent / "log.md").exists()

    def test_unknown_task(self, cli_runner: CliRunner, state_file: Path) -> None:
        _run(cli_runner, "new", "Add login")

        result = _run(
            cli_runner, "log", "add", "-a", "started_task", "-r", "success", "-g", "x", "-t", "999", code=1
        )

        assert "Task 999 not found in phase implementation" in result.output
        assert not (state_file.parent / "log.md").exists()

    def test_new_replaces_finished_project(self, cli_runner: CliRunner, state_file: Path) -> None:
        _run(cli_runner, "new", "Add login")
        _run(cli_runner, "log", "add", "-a", "research", "-r", "success", "-g", "x")
        data = yaml.safe_load(state_file.read_text())
        data["statechart"]["current_state"] = "NoProject"
        state_file.write_text(yaml.safe_dump(data))

        _run(cli_runner, "new", "Add signup")

        assert yaml.safe_load(state_file.read_text())["name"] == "add-signup"
        assert not (state_file.parent / "log.md").exists()


@pytest.mark.integration
class TestPromptAndConfig:
    def test_prompt(self, cli_runner: CliRunner, workspace: Path) -> None:
        _run(cli_runner, "new", "Add login", "--branch", "feat/add-login")

        result = _run(cli_runner, "prompt")

        assert "# add-login (standard)" in result.output
        assert "## Discovery" in result.output
        assert "`skip_discovery` -> DesignDecision" in result.output

    def test_orchestrator_prompt(self, cli_runner: CliRunner, workspace: Path) -> None:
        _run(cli_runner, "new", "Add login")

        result = _run(cli_runner, "prompt", "--orchestrator")

        assert "## Project overview" in result.output
        assert "| discovery | in_progress |" in result.output

    def test_malformed_config(self, cli_runner: CliRunner, workspace: Path) -> None:
        (workspace / "phasekeeper.toml").write_text("[project\n")

        result = _run(cli_runner, "status", code=1)

        assert "Error loading configuration" in result.output

    def test_config_file_option(self, cli_runner: CliRunner, workspace: Path) -> None:
        config = workspace / "custom.toml"
        config.write_text('[project]\nstate_dir = ".custom"\ndefault_type = "exploration"\n')

        _run(cli_runner, "--config", str(config), "new", "Caching")

        document = yaml.safe_load((workspace / ".custom" / "project" / "state.yaml").read_text())
        assert document["type"] == "exploration"

    def test_verbose_logs_to_output(self, cli_runner: CliRunner, workspace: Path) -> None:
        result = _run(cli_runner, "--verbose", "new", "Add login")

        assert "project_created" in result.output
