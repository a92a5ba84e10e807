"""Persisted project state models.

These Pydantic models define the on-disk shape of ``state.yaml``. They
carry data only; lifecycle behaviour lives on the Project aggregate and in
the engine.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(str, enum.Enum):
    """Lifecycle of a task within a phase.

    States:
        pending: Task recorded but not started.
        in_progress: Work on the task has started.
        completed: Task finished successfully.
        abandoned: Task dropped; counts as resolved.
    """

    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    abandoned = "abandoned"

    @property
    def is_resolved(self) -> bool:
        return self in (TaskStatus.completed, TaskStatus.abandoned)


class PhaseStatus(str, enum.Enum):
    """Lifecycle of a phase record."""

    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    failed = "failed"
    skipped = "skipped"


class ArtifactState(BaseModel):
    """A file produced or consumed by a phase.

    Attributes:
        path: Path relative to the project state directory.
        type: Artifact type tag (e.g. ``review``, ``design``).
        approved: Whether a human approved the artifact.
        created_at: When the artifact was recorded.
        metadata: Free-form key/value data (e.g. a review ``assessment``).
    """

    path: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    approved: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    metadata: dict[str, Any] = Field(default_factory=dict)


class TaskState(BaseModel):
    """A unit of work tracked by a task-supporting phase.

    Attributes:
        id: Identifier, unique within its phase.
        name: Short description.
        phase: Owning phase name.
        status: Current task status.
        iteration: Phase iteration the task belongs to.
        assigned_agent: Free-form assignee label.
        inputs: Artifacts the task consumes.
        outputs: Artifacts the task produced.
        metadata: Free-form key/value data.
        created_at: When the task was recorded.
        updated_at: When the task last changed.
    """

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    phase: str
    status: TaskStatus = TaskStatus.pending
    iteration: int = Field(default=1, ge=1)
    assigned_agent: str | None = None
    inputs: list[ArtifactState] = Field(default_factory=list)
    outputs: list[ArtifactState] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class PhaseState(BaseModel):
    """Persisted record of one phase.

    Attributes:
        status: Phase status.
        enabled: False for optional phases the user skipped.
        created_at: When the record was created.
        started_at: When the phase was entered.
        completed_at: When the phase was left successfully.
        failed_at: When the phase was left through a failure transition.
        iteration: Number of times the phase has been (re-)entered for rework.
        artifacts: Artifacts recorded against the phase.
        tasks: Tasks recorded against the phase.
        metadata: Phase-specific key/value data, validated per phase schema.
    """

    status: PhaseStatus = PhaseStatus.pending
    enabled: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    iteration: int = Field(default=1, ge=1)
    artifacts: list[ArtifactState] = Field(default_factory=list)
    tasks: list[TaskState] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("tasks")
    @classmethod
    def validate_unique_task_ids(cls, v: list[TaskState]) -> list[TaskState]:
        """Reject duplicate task ids within a phase.

        Raises:
            ValueError: If two tasks share an id.
        """
        seen: set[str] = set()
        for task in v:
            if task.id in seen:
                raise ValueError(f"Duplicate task id: {task.id}")
            seen.add(task.id)
        return v


class StatechartState(BaseModel):
    """Position of the project in its state machine."""

    current_state: str
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("current_state", mode="before")
    @classmethod
    def coerce_plain_str(cls, v: Any) -> Any:
        # State is a str subclass; YAML safe_dump only accepts exact str.
        return str(v) if isinstance(v, str) else v


class ProjectState(BaseModel):
    """Root of the persisted project document.

    Attributes:
        name: Project name (kebab-case).
        type: Registered project type name.
        branch: Git branch the project lives on.
        description: Free-form description.
        created_at: Creation time.
        updated_at: Time of the last save.
        phases: Phase name -> phase record.
        statechart: Current machine position.
    """

    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    branch: str = ""
    description: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    phases: dict[str, PhaseState] = Field(default_factory=dict)
    statechart: StatechartState

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Require a kebab-case name.

        Raises:
            ValueError: If the name contains anything but a-z, 0-9 and '-'.
        """
        allowed = set("abcdefghijklmnopqrstuvwxyz0123456789-")
        if not set(v) <= allowed or v.startswith("-") or v.endswith("-"):
            raise ValueError(f"Invalid project name: {v!r}. Use lowercase letters, digits and '-'")
        return v
