"""The Advance protocol, transition discovery and dry runs.

``advance`` is the single entry point for moving a project forward:

1. If an event was given, it is fired as-is.
2. Otherwise the current state's determiner picks the event. States with no
   determiner need an explicit intent; the caller gets every option back.
3. The machine fires the event (guards, then actions).
4. On success the project is persisted; on any failure nothing is written.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel

from phasekeeper.engine.errors import (
    DeterminerError,
    GuardEvaluationError,
    IntentRequiredError,
    PhasekeeperError,
    UnknownEventError,
)
from phasekeeper.engine.types import Event, TransitionInfo

if TYPE_CHECKING:
    from phasekeeper.state.project import Project

logger = structlog.get_logger(__name__)


class TransitionReport(BaseModel):
    """Outcome of a successful advance.

    Attributes:
        event: Event that fired.
        from_state: State before the transition.
        to_state: State after the transition.
        determined: True if the event was chosen by the state's determiner.
    """

    event: str
    from_state: str
    to_state: str
    determined: bool = False


class DryRunResult(BaseModel):
    """Outcome of validating a transition without firing it.

    Attributes:
        event: Event that was checked.
        from_state: Current state.
        to_state: Target state ("" if the event is not configured).
        valid: Whether the event is configured from the current state.
        permitted: Whether the guard currently holds.
        reason: Why the transition would fail ("" if it would succeed).
    """

    event: str
    from_state: str
    to_state: str = ""
    valid: bool
    permitted: bool
    reason: str = ""


def list_transitions(project: Project) -> list[TransitionInfo]:
    """List every transition from the current state with its guard evaluated.

    Read-only. A guard that raises is reported as not permitted, with the
    error text in ``guard_error``.
    """
    machine = project.machine
    infos = {i.event: i for i in project.config.transitions_from(project.current_state)}
    result: list[TransitionInfo] = []
    for permission in machine.transitions_from():
        info = infos.get(str(permission.event)) or TransitionInfo(
            event=str(permission.event),
            from_state=str(permission.source),
            to_state=str(permission.target),
            description=permission.description,
            guard_description=permission.guard.description if permission.guard else "",
        )
        try:
            permitted = machine.evaluate_guard(permission)
            result.append(info.model_copy(update={"permitted": permitted}))
        except GuardEvaluationError as e:
            result.append(
                info.model_copy(update={"permitted": False, "guard_error": str(e.cause)})
            )
    return result


def advance(project: Project, event: Event | str | None = None, *, save: bool = True) -> TransitionReport:
    """Move the project forward by one transition.

    Args:
        project: Loaded project.
        event: Explicit event to fire. When omitted, the current state's
            determiner chooses one.
        save: Persist the project after a successful transition.

    Returns:
        Report of the transition that fired.

    Raises:
        IntentRequiredError: No event was given and the state has no determiner.
        DeterminerError: The determiner could not pick an event.
        UnknownEventError: The event is not configured from the current state.
        GuardFailedError: The transition's guard does not hold.
        GuardEvaluationError: The guard raised.
        ActionError: An entry or exit action raised.
        PersistenceError: Saving failed after the transition.
    """
    log = logger.bind(project=project.name, state=str(project.current_state))
    determined = False

    if event is None:
        determiner = project.config.determiner_for(project.current_state)
        if determiner is None:
            raise IntentRequiredError(project.current_state, list_transitions(project))
        try:
            event = determiner(project)
        except PhasekeeperError:
            raise
        except Exception as e:
            raise DeterminerError(
                project.current_state,
                f"Determiner for state {project.current_state} raised: {e}",
                list_transitions(project),
            ) from e
        determined = True
        log.debug("event_determined", trigger=str(event))

    transition = project.machine.fire(Event(event))
    if save:
        project.save()

    log.info(
        "project_advanced",
        trigger=str(transition.event),
        to_state=str(transition.target),
        determined=determined,
    )
    return TransitionReport(
        event=str(transition.event),
        from_state=str(transition.source),
        to_state=str(transition.target),
        determined=determined,
    )


def dry_run(project: Project, event: Event | str) -> DryRunResult:
    """Check whether ``event`` would fire from the current state.

    Never mutates or persists the project.
    """
    machine = project.machine
    current = str(project.current_state)
    try:
        permission = machine.permission(Event(event))
    except UnknownEventError as e:
        return DryRunResult(
            event=str(event),
            from_state=current,
            valid=False,
            permitted=False,
            reason=str(e),
        )

    reason = ""
    try:
        permitted = machine.evaluate_guard(permission)
    except GuardEvaluationError as e:
        permitted = False
        reason = str(e)
    else:
        if not permitted and permission.guard is not None:
            reason = f"guard not met: {permission.guard.description}"

    return DryRunResult(
        event=str(event),
        from_state=current,
        to_state=str(permission.target),
        valid=True,
        permitted=permitted,
        reason=reason,
    )
