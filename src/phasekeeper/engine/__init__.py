"""Lifecycle state-machine engine."""

from phasekeeper.engine.advance import (
    DryRunResult,
    TransitionReport,
    advance,
    dry_run,
    list_transitions,
)
from phasekeeper.engine.branching import BranchConfig, branch_on, when
from phasekeeper.engine.errors import (
    ActionError,
    ArtifactNotFoundError,
    ConfigurationError,
    DeterminerError,
    GuardEvaluationError,
    GuardFailedError,
    IntentRequiredError,
    NoBranchError,
    PersistenceError,
    PhaseNotFoundError,
    PhasekeeperError,
    ProjectExistsError,
    ProjectNotFoundError,
    StateValidationError,
    TaskNotFoundError,
    TransitionError,
    UnknownEventError,
    UnknownProjectTypeError,
)
from phasekeeper.engine.machine import Guard, StateMachine, bind_action, bind_guard
from phasekeeper.engine.phases import FieldDef, FieldType, Phase, PhaseMetadata, build_phase_chain
from phasekeeper.engine.project_type import (
    PhaseConfig,
    ProjectTypeConfig,
    ProjectTypeConfigBuilder,
)
from phasekeeper.engine.registry import ProjectTypeRegistry, register_builtin_types, registry
from phasekeeper.engine.transitions import TransitionConfig, guard
from phasekeeper.engine.types import (
    NO_PROJECT,
    PROJECT_INIT,
    Event,
    GuardTemplate,
    State,
    TransitionInfo,
)

__all__ = [
    "NO_PROJECT",
    "PROJECT_INIT",
    "ActionError",
    "ArtifactNotFoundError",
    "BranchConfig",
    "ConfigurationError",
    "DeterminerError",
    "DryRunResult",
    "Event",
    "FieldDef",
    "FieldType",
    "Guard",
    "GuardEvaluationError",
    "GuardFailedError",
    "GuardTemplate",
    "IntentRequiredError",
    "NoBranchError",
    "PersistenceError",
    "Phase",
    "PhaseConfig",
    "PhaseMetadata",
    "PhaseNotFoundError",
    "PhasekeeperError",
    "ProjectExistsError",
    "ProjectNotFoundError",
    "ProjectTypeConfig",
    "ProjectTypeConfigBuilder",
    "ProjectTypeRegistry",
    "State",
    "StateMachine",
    "StateValidationError",
    "TaskNotFoundError",
    "TransitionConfig",
    "TransitionError",
    "TransitionInfo",
    "TransitionReport",
    "UnknownEventError",
    "UnknownProjectTypeError",
    "advance",
    "bind_action",
    "bind_guard",
    "branch_on",
    "build_phase_chain",
    "dry_run",
    "guard",
    "list_transitions",
    "register_builtin_types",
    "registry",
    "when",
]
