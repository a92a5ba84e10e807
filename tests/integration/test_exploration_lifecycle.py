"""Integration tests for the exploration project type."""

from __future__ import annotations

from pathlib import Path

import pytest

from phasekeeper.engine.advance import advance
from phasekeeper.engine.errors import GuardFailedError, IntentRequiredError
from phasekeeper.engine.registry import ProjectTypeRegistry
from phasekeeper.state.backend import YAMLBackend
from phasekeeper.state.loader import create, detect_project_type, load
from phasekeeper.state.models import PhaseStatus, TaskStatus


@pytest.mark.integration
class TestExplorationLifecycle:
    def test_research_rounds_then_finalize(self, tmp_path: Path, registry: ProjectTypeRegistry) -> None:
        backend = YAMLBackend(tmp_path / "state.yaml")
        branch = "explore/cache-options"
        create(backend, detect_project_type(branch), branch=branch, registry=registry)

        project = load(backend, registry)
        assert project.name == "cache-options"
        assert project.type == "exploration"
        assert project.current_state == "ExplorationActive"

        # Research is blocked until every topic is resolved
        with pytest.raises(GuardFailedError, match="all research topics"):
            advance(project)
        topic = project.add_task("Compare Redis and Memcached")
        project.save()
        with pytest.raises(GuardFailedError):
            advance(load(backend, registry))

        project = load(backend, registry)
        project.set_task_status("exploration", topic.id, TaskStatus.completed)
        project.save()
        advance(load(backend, registry))

        project = load(backend, registry)
        assert project.current_state == "Summarizing"
        assert project.phase("exploration").metadata["stage"] == "summarizing"

        # Summarizing is intent-based
        with pytest.raises(IntentRequiredError) as exc_info:
            advance(project)
        assert {o.event for o in exc_info.value.options} == {"finalize", "add_more_research"}

        advance(project, "add_more_research")
        project = load(backend, registry)
        record = project.phase("exploration")
        assert project.current_state == "ExplorationActive"
        assert record.iteration == 2
        assert record.metadata["stage"] == "researching"
        assert record.status == PhaseStatus.in_progress

        # Second round
        extra = project.add_task("Benchmark eviction policies")
        assert extra.iteration == 2
        project.set_task_status("exploration", extra.id, TaskStatus.abandoned)
        project.save()
        advance(load(backend, registry))

        project = load(backend, registry)
        project.add_artifact("exploration", "summaries/cache.md", "summary")
        project.save()
        with pytest.raises(GuardFailedError, match="all summaries approved"):
            advance(load(backend, registry), "finalize")

        project = load(backend, registry)
        project.approve_artifact("exploration", "summaries/cache.md")
        project.save()
        advance(load(backend, registry), "finalize")

        project = load(backend, registry)
        assert project.current_state == "FinalizeDocumentation"
        assert project.phase("exploration").status == PhaseStatus.completed
        assert project.phase("finalize").status == PhaseStatus.in_progress
