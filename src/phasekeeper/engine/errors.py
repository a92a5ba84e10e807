"""Error taxonomy for the lifecycle engine.

Every error carries enough structured detail (state, event, guard
description, alternatives) for a caller to report it without querying the
machine again.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from phasekeeper.engine.types import TransitionInfo


class PhasekeeperError(Exception):
    """Base class for all errors raised by phasekeeper."""


class ConfigurationError(PhasekeeperError):
    """Raised when a machine or project type is misconfigured at build time."""


# ---------------------------------------------------------------------------
# Transition errors
# ---------------------------------------------------------------------------


class TransitionError(PhasekeeperError):
    """Base class for failures while firing an event.

    Attributes:
        state: State the machine was in.
        event: Event that was fired.
    """

    def __init__(self, state: str, event: str, message: str) -> None:
        self.state = state
        self.event = event
        super().__init__(message)


class UnknownEventError(TransitionError):
    """Raised when an event is not configured from the current state.

    Attributes:
        valid_events: Events that are configured from the current state.
    """

    def __init__(self, state: str, event: str, valid_events: Iterable[str]) -> None:
        self.valid_events = sorted(str(e) for e in valid_events)
        valid = ", ".join(self.valid_events) or "none"
        super().__init__(
            state,
            event,
            f"Event {event!r} is not configured from state {state} (valid events: {valid})",
        )


class GuardFailedError(TransitionError):
    """Raised when a guard returned False for the requested transition.

    Attributes:
        guard_description: Description of the guard that blocked the transition.
    """

    def __init__(self, state: str, event: str, guard_description: str) -> None:
        self.guard_description = guard_description
        super().__init__(
            state,
            event,
            f"Cannot fire {event} from {state}: guard not met: {guard_description}",
        )


class GuardEvaluationError(TransitionError):
    """Raised when evaluating a guard raised instead of returning a bool.

    Distinct from GuardFailedError: the condition could not be evaluated at
    all, which usually points at corrupt state or a bug in the guard.

    Attributes:
        guard_description: Description of the guard that raised.
        cause: The underlying exception.
    """

    def __init__(
        self,
        state: str,
        event: str,
        guard_description: str,
        cause: BaseException,
    ) -> None:
        self.guard_description = guard_description
        self.cause = cause
        super().__init__(
            state,
            event,
            f"Guard {guard_description!r} for {event} from {state} raised: {cause}",
        )


class ActionError(TransitionError):
    """Raised when an entry or exit action failed during a transition.

    Attributes:
        action_description: Description of the failing action.
        cause: The underlying exception.
    """

    def __init__(
        self,
        state: str,
        event: str,
        action_description: str,
        cause: BaseException,
    ) -> None:
        self.action_description = action_description
        self.cause = cause
        super().__init__(
            state,
            event,
            f"Action {action_description!r} failed during {event} from {state}: {cause}",
        )


# ---------------------------------------------------------------------------
# Determiner errors
# ---------------------------------------------------------------------------


class DeterminerError(PhasekeeperError):
    """Raised when Advance cannot work out which event to fire.

    Attributes:
        state: Current state.
        options: Valid alternatives the caller can choose from explicitly.
    """

    def __init__(
        self,
        state: str,
        message: str,
        options: Sequence[TransitionInfo] = (),
    ) -> None:
        self.state = state
        self.options = list(options)
        super().__init__(message)


class NoBranchError(DeterminerError):
    """Raised when a discriminator returns a value absent from the branch table.

    Attributes:
        value: The value the discriminator returned.
        known_values: Values present in the branch table, in declaration order.
    """

    def __init__(
        self,
        state: str,
        value: str,
        known_values: Iterable[str],
        options: Sequence[TransitionInfo] = (),
    ) -> None:
        self.value = value
        self.known_values = list(known_values)
        known = ", ".join(f'"{v}"' for v in self.known_values)
        super().__init__(
            state,
            f"No branch for discriminator value {value!r} from state {state}, "
            f"known values: [{known}]",
            options,
        )


class IntentRequiredError(DeterminerError):
    """Raised when a state needs an explicit event choice from the caller."""

    def __init__(self, state: str, options: Sequence[TransitionInfo]) -> None:
        listing = "; ".join(
            f"{o.event} -> {o.to_state}" + (f" ({o.description})" if o.description else "")
            for o in options
        )
        super().__init__(
            state,
            f"State {state} requires an explicit event (options: {listing or 'none'})",
            options,
        )


# ---------------------------------------------------------------------------
# State and persistence errors
# ---------------------------------------------------------------------------


class StateValidationError(PhasekeeperError):
    """Raised when project state violates its structural or metadata schema.

    Attributes:
        errors: Individual validation messages.
    """

    def __init__(self, message: str, errors: Sequence[str] = ()) -> None:
        self.errors = list(errors)
        if self.errors:
            message = f"{message}: " + "; ".join(self.errors)
        super().__init__(message)


class PersistenceError(PhasekeeperError):
    """Raised when reading or writing the state file fails.

    Attributes:
        path: File that was being read or written.
        operation: Short name of the failed operation.
        cause: The underlying exception.
    """

    def __init__(self, path: Path, operation: str, cause: BaseException) -> None:
        self.path = path
        self.operation = operation
        self.cause = cause
        super().__init__(f"Failed to {operation} {path}: {cause}")


class ProjectNotFoundError(PhasekeeperError):
    """Raised when no persisted project exists at the expected location."""

    def __init__(self, path: Path | str) -> None:
        self.path = path
        super().__init__(f"No project found at {path}")


class UnknownProjectTypeError(PhasekeeperError):
    """Raised when a project type is not registered.

    Attributes:
        type_name: Requested type.
        known: Registered types.
    """

    def __init__(self, type_name: str, known: Iterable[str]) -> None:
        self.type_name = type_name
        self.known = sorted(known)
        super().__init__(
            f"Unknown project type {type_name!r} (registered: {', '.join(self.known) or 'none'})"
        )


class PhaseNotFoundError(PhasekeeperError):
    """Raised when a project has no record for the named phase."""

    def __init__(self, phase: str) -> None:
        self.phase = phase
        super().__init__(f"Phase not found: {phase}")


class TaskNotFoundError(PhasekeeperError):
    """Raised when a task id is not present in a phase."""

    def __init__(self, task_id: str, phase: str) -> None:
        self.task_id = task_id
        self.phase = phase
        super().__init__(f"Task {task_id} not found in phase {phase}")


class ArtifactNotFoundError(PhasekeeperError):
    """Raised when an artifact path is not present in a phase."""

    def __init__(self, path: str, phase: str) -> None:
        self.path = path
        self.phase = phase
        super().__init__(f"Artifact {path} not found in phase {phase}")


class ProjectExistsError(PhasekeeperError):
    """Raised when creating a project where one is already persisted."""

    def __init__(self, path: Path | str) -> None:
        self.path = path
        super().__init__(f"A project already exists at {path}")
