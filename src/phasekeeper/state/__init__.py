"""Persisted project state, the Project aggregate and its storage."""

from phasekeeper.state.backend import Backend, MemoryBackend, YAMLBackend
from phasekeeper.state.loader import (
    create,
    detect_project_type,
    generate_project_name,
    load,
    save,
)
from phasekeeper.state.log import LogAction, LogEntry, LogResult
from phasekeeper.state.models import (
    ArtifactState,
    PhaseState,
    PhaseStatus,
    ProjectState,
    StatechartState,
    TaskState,
    TaskStatus,
)
from phasekeeper.state.project import Project

__all__ = [
    "ArtifactState",
    "Backend",
    "LogAction",
    "LogEntry",
    "LogResult",
    "MemoryBackend",
    "PhaseState",
    "PhaseStatus",
    "Project",
    "ProjectState",
    "StatechartState",
    "TaskState",
    "TaskStatus",
    "YAMLBackend",
    "create",
    "detect_project_type",
    "generate_project_name",
    "load",
    "save",
]
