"""The Project aggregate.

A Project ties together the persisted ProjectState, the ProjectTypeConfig
describing its lifecycle, a state machine bound to this very instance, and
the backend it is saved to. Guards and actions receive the Project and use
the query and mutation helpers below.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog

from phasekeeper.engine.errors import (
    ArtifactNotFoundError,
    PhaseNotFoundError,
    StateValidationError,
    TaskNotFoundError,
)
from phasekeeper.engine.machine import StateMachine
from phasekeeper.engine.project_type import ProjectTypeConfig
from phasekeeper.engine.types import State
from phasekeeper.state.backend import Backend
from phasekeeper.state.log import LogAction, LogEntry, LogResult
from phasekeeper.state.models import (
    ArtifactState,
    PhaseState,
    PhaseStatus,
    ProjectState,
    TaskState,
    TaskStatus,
    utcnow,
)
from phasekeeper.state.validate import validate_log_entry, validate_structure

logger = structlog.get_logger(__name__)


def _next_task_id(tasks: list[TaskState]) -> str:
    """Next id in the ``010``, ``020``, ... sequence, after the highest numeric id."""
    highest = max((int(t.id) for t in tasks if t.id.isdigit()), default=0)
    return f"{highest + 10:03d}"


class Project:
    """A loaded project bound to its lifecycle configuration.

    Attributes:
        state: Persisted project document.
        config: Project type configuration.
        backend: Where the project is saved.
        machine: State machine bound to this project.
    """

    def __init__(self, state: ProjectState, config: ProjectTypeConfig, backend: Backend) -> None:
        self.state = state
        self.config = config
        self.backend = backend
        self.machine: StateMachine = config.build_machine(self, State(state.statechart.current_state))
        self.logger = logger.bind(component="Project", project=state.name)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.state.name

    @property
    def type(self) -> str:
        return self.state.type

    @property
    def branch(self) -> str:
        return self.state.branch

    @property
    def description(self) -> str:
        return self.state.description

    @property
    def current_state(self) -> State:
        return self.machine.state

    @property
    def phases(self) -> dict[str, PhaseState]:
        return self.state.phases

    def __repr__(self) -> str:
        return f"Project(name={self.name!r}, type={self.type!r}, state={str(self.current_state)!r})"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_document(self) -> dict[str, Any]:
        """Serialise the project to a plain document, syncing the machine state."""
        self.state.statechart.current_state = str(self.machine.state)
        return self.state.model_dump(mode="json", exclude_none=True)

    def save(self) -> None:
        """Validate and persist the project.

        Refreshes timestamps, copies the machine's state into the document,
        revalidates structure and per-phase metadata, then hands the
        document to the backend.

        Raises:
            StateValidationError: If the state is invalid. Nothing is written.
            PersistenceError: If the backend fails.
        """
        now = utcnow()
        self.state.updated_at = now
        self.state.statechart.updated_at = now
        data = self.to_document()
        validate_structure(data)
        self.config.validate(self)
        self.backend.save(data)
        self.logger.info(
            "project_saved",
            state=str(self.current_state),
            location=self.backend.describe(),
        )

    # ------------------------------------------------------------------
    # Queries used by guards
    # ------------------------------------------------------------------

    def phase(self, name: str) -> PhaseState:
        """Return the record for ``name``.

        Raises:
            PhaseNotFoundError: If the project has no such phase record.
        """
        record = self.state.phases.get(name)
        if record is None:
            raise PhaseNotFoundError(name)
        return record

    def has_phase(self, name: str) -> bool:
        return name in self.state.phases

    def ensure_phase(self, name: str) -> PhaseState:
        """Return the record for ``name``, creating a pending one if missing."""
        record = self.state.phases.get(name)
        if record is None:
            record = PhaseState()
            self.state.phases[name] = record
        return record

    def phase_artifacts_approved(self, name: str, artifact_type: str | None = None) -> bool:
        """True if every artifact (optionally of one type) in the phase is approved.

        A phase with no matching artifacts counts as approved.
        """
        record = self.state.phases.get(name)
        if record is None:
            return False
        return all(
            a.approved
            for a in record.artifacts
            if artifact_type is None or a.type == artifact_type
        )

    def phase_output_approved(self, name: str, artifact_type: str) -> bool:
        """True if the phase has at least one approved artifact of ``artifact_type``."""
        record = self.state.phases.get(name)
        if record is None:
            return False
        return any(a.type == artifact_type and a.approved for a in record.artifacts)

    def all_outputs_approved(self, name: str, artifact_type: str) -> bool:
        """True if at least one artifact of the type exists and all of them are approved."""
        record = self.state.phases.get(name)
        if record is None:
            return False
        matching = [a for a in record.artifacts if a.type == artifact_type]
        return bool(matching) and all(a.approved for a in matching)

    def phase_metadata_bool(self, name: str, key: str) -> bool:
        record = self.state.phases.get(name)
        if record is None:
            return False
        return record.metadata.get(key) is True

    def all_tasks_resolved(self, name: str) -> bool:
        """True if the phase has tasks and each is completed or abandoned."""
        record = self.state.phases.get(name)
        if record is None or not record.tasks:
            return False
        return all(t.status.is_resolved for t in record.tasks)

    def all_tasks_complete(self, name: str) -> bool:
        """Like all_tasks_resolved, but at least one task must be completed."""
        if not self.all_tasks_resolved(name):
            return False
        return any(t.status == TaskStatus.completed for t in self.phase(name).tasks)

    def latest_artifact(
        self,
        name: str,
        artifact_type: str,
        *,
        approved_only: bool = False,
    ) -> ArtifactState | None:
        """Most recently recorded artifact of a type in the phase."""
        record = self.state.phases.get(name)
        if record is None:
            return None
        for artifact in reversed(record.artifacts):
            if artifact.type == artifact_type and (artifact.approved or not approved_only):
                return artifact
        return None

    def task(self, name: str, task_id: str) -> TaskState:
        """Return a task by id.

        Raises:
            PhaseNotFoundError: If the phase has no record.
            TaskNotFoundError: If the task is not in the phase.
        """
        for task in self.phase(name).tasks:
            if task.id == task_id:
                return task
        raise TaskNotFoundError(task_id, name)

    # ------------------------------------------------------------------
    # Data mutations
    # ------------------------------------------------------------------

    def add_artifact(
        self,
        phase: str,
        path: str,
        artifact_type: str,
        *,
        approved: bool = False,
        metadata: dict[str, Any] | None = None,
    ) -> ArtifactState:
        """Record an artifact against a phase.

        Raises:
            PhaseNotFoundError: If the phase has no record.
            StateValidationError: If the phase does not accept artifacts or
                this artifact type.
        """
        record = self.phase(phase)
        phase_config = self.config.phases.get(phase)
        if phase_config is not None:
            if not phase_config.supports_artifacts:
                raise StateValidationError(f"Phase {phase} does not support artifacts")
            if phase_config.artifact_types and artifact_type not in phase_config.artifact_types:
                raise StateValidationError(
                    f"Artifact type {artifact_type!r} not allowed in phase {phase}",
                    [f"allowed: {', '.join(phase_config.artifact_types)}"],
                )
        artifact = ArtifactState(
            path=path,
            type=artifact_type,
            approved=approved,
            metadata=dict(metadata or {}),
        )
        record.artifacts.append(artifact)
        self.logger.debug("artifact_added", phase=phase, path=path, artifact_type=artifact_type)
        return artifact

    def approve_artifact(self, phase: str, path: str) -> ArtifactState:
        """Mark the most recent artifact at ``path`` approved.

        Raises:
            PhaseNotFoundError: If the phase has no record.
            ArtifactNotFoundError: If no artifact has that path.
        """
        record = self.phase(phase)
        for artifact in reversed(record.artifacts):
            if artifact.path == path:
                artifact.approved = True
                self.logger.debug("artifact_approved", phase=phase, path=path)
                return artifact
        raise ArtifactNotFoundError(path, phase)

    def add_task(
        self,
        name: str,
        *,
        phase: str | None = None,
        task_id: str | None = None,
        assigned_agent: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> TaskState:
        """Record a new pending task.

        Without an explicit ``phase``, the task goes to the current phase if
        it tracks tasks, otherwise the first task-tracking phase. Ids default
        to ten past the highest numeric id, zero-padded (``010``, ``020``, ...).

        Raises:
            StateValidationError: If no phase tracks tasks, the phase does not
                support tasks, or the id is already taken.
        """
        phase = phase or self.config.default_task_phase(self.current_state)
        if phase is None or not self.config.phase_supports_tasks(phase):
            raise StateValidationError(f"Phase {phase} does not support tasks")
        record = self.ensure_phase(phase)
        if task_id is None:
            task_id = _next_task_id(record.tasks)
        if any(t.id == task_id for t in record.tasks):
            raise StateValidationError(f"Task id {task_id} already exists in phase {phase}")
        task = TaskState(
            id=task_id,
            name=name,
            phase=phase,
            iteration=record.iteration,
            assigned_agent=assigned_agent,
            metadata=dict(metadata or {}),
        )
        record.tasks.append(task)
        self.logger.debug("task_added", phase=phase, task_id=task_id)
        return task

    def set_task_status(self, phase: str, task_id: str, status: TaskStatus | str) -> TaskState:
        task = self.task(phase, task_id)
        task.status = TaskStatus(status)
        task.updated_at = utcnow()
        self.logger.debug("task_status_changed", phase=phase, task_id=task_id, status=task.status.value)
        return task

    def set_phase_metadata(self, phase: str, key: str, value: Any) -> None:
        self.phase(phase).metadata[key] = value

    def log(
        self,
        action: LogAction | str,
        result: LogResult | str,
        *,
        agent: str,
        task_id: str | None = None,
        files: Sequence[str] = (),
        notes: str = "",
    ) -> LogEntry:
        """Append an entry to the project log.

        The entry goes straight to the backend; it does not wait for ``save``.
        A ``task_id`` must name a task of the current task phase.

        Raises:
            StateValidationError: If the action, result or agent is invalid.
            TaskNotFoundError: If the task does not exist.
            PersistenceError: If the log cannot be written.
        """
        entry = validate_log_entry(
            {
                "agent": agent,
                "action": action,
                "result": result,
                "task_id": task_id,
                "files": list(files),
                "notes": notes,
            }
        )
        if task_id is not None:
            phase = self.config.default_task_phase(self.current_state)
            if phase is None:
                raise StateValidationError(
                    f"Project type {self.type} has no phase that tracks tasks"
                )
            self.task(phase, task_id)
        self.backend.append_log(entry.format())
        self.logger.debug("log_entry_added", action=entry.action.value, result=entry.result.value)
        return entry

    def read_log(self) -> str:
        return self.backend.read_log()

    # ------------------------------------------------------------------
    # Phase status bookkeeping
    # ------------------------------------------------------------------

    def mark_phase_in_progress(self, name: str) -> None:
        record = self.ensure_phase(name)
        record.status = PhaseStatus.in_progress
        record.enabled = True
        if record.started_at is None:
            record.started_at = utcnow()
        record.completed_at = None
        record.failed_at = None

    def mark_phase_completed(self, name: str) -> None:
        record = self.ensure_phase(name)
        record.status = PhaseStatus.completed
        record.completed_at = utcnow()

    def mark_phase_failed(self, name: str) -> None:
        record = self.ensure_phase(name)
        record.status = PhaseStatus.failed
        record.failed_at = utcnow()

    def mark_phase_skipped(self, name: str) -> None:
        record = self.ensure_phase(name)
        record.status = PhaseStatus.skipped
        record.enabled = False

    def increment_phase_iteration(self, name: str) -> int:
        record = self.ensure_phase(name)
        record.iteration += 1
        return record.iteration
