"""Generic state machine runtime for the project lifecycle.

This module implements a small synchronous state machine: states are
configured with permitted events, each permission may carry a guard and
per-transition entry/exit actions, and states may carry their own entry/exit
actions. Guards and actions here are zero-argument callables that were
already bound to a concrete project (see ``bind_guard``/``bind_action``), so
the runtime knows nothing about projects at all.

Firing order for one transition:
    transition exit actions -> state exit actions -> state change
    -> state entry actions -> transition entry actions

If any action raises, the machine is put back in its previous state and an
ActionError is raised. Side effects already performed by actions are not
undone; callers must not persist the project after a failed fire.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from phasekeeper.engine.errors import (
    ActionError,
    ConfigurationError,
    GuardEvaluationError,
    GuardFailedError,
    UnknownEventError,
)
from phasekeeper.engine.types import Event, GuardTemplate, State

if TYPE_CHECKING:
    from phasekeeper.state.project import Project

logger = structlog.get_logger(__name__)


class Guard:
    """A named predicate bound to a concrete project.

    Attributes:
        description: Human-readable condition.
    """

    def __init__(self, description: str, predicate: Callable[[], bool]) -> None:
        self.description = description
        self._predicate = predicate

    def check(self) -> bool:
        """Evaluate the predicate.

        Returns:
            The predicate result.

        Raises:
            Exception: Whatever the predicate raised, unchanged. The machine
                wraps it in GuardEvaluationError with transition context.
            TypeError: If the predicate returned something other than a bool.
        """
        result = self._predicate()
        if not isinstance(result, bool):
            raise TypeError(
                f"guard {self.description!r} returned {type(result).__name__}, expected bool"
            )
        return result

    def __repr__(self) -> str:
        return f"Guard({self.description!r})"


class BoundAction:
    """A named side-effecting procedure bound to a concrete project."""

    def __init__(self, description: str, procedure: Callable[[], None]) -> None:
        self.description = description
        self._procedure = procedure

    def __call__(self) -> None:
        self._procedure()

    def __repr__(self) -> str:
        return f"BoundAction({self.description!r})"


def bind_guard(template: GuardTemplate, project: Project) -> Guard:
    """Close a guard template over a project instance."""
    return Guard(template.description, lambda: template.func(project))


def bind_action(
    action: Callable[[Project], None],
    project: Project,
    description: str | None = None,
) -> BoundAction:
    """Close an action template over a project instance."""
    name = description or getattr(action, "__name__", "action")
    return BoundAction(name, lambda: action(project))


@dataclass
class Permission:
    """One permitted (state, event) -> target transition.

    Attributes:
        source: State the transition leaves.
        event: Triggering event.
        target: State the transition enters.
        guard: Optional bound guard.
        description: Human-readable description.
        on_exit: Actions run when leaving ``source`` through this transition.
        on_entry: Actions run after entering ``target`` through this transition.
    """

    source: State
    event: Event
    target: State
    guard: Guard | None = None
    description: str = ""
    on_exit: list[BoundAction] = field(default_factory=list)
    on_entry: list[BoundAction] = field(default_factory=list)


@dataclass(frozen=True)
class Transition:
    """Record of a completed transition."""

    source: State
    event: Event
    target: State


class StateConfiguration:
    """Fluent configuration handle for a single state."""

    def __init__(self, machine: StateMachine, state: State) -> None:
        self._machine = machine
        self.state = state
        self.permissions: dict[Event, Permission] = {}
        self.entry_actions: list[BoundAction] = []
        self.exit_actions: list[BoundAction] = []

    def permit(
        self,
        event: Event,
        target: State,
        guard: Guard | None = None,
        *,
        description: str = "",
        on_exit: Iterable[BoundAction] = (),
        on_entry: Iterable[BoundAction] = (),
    ) -> StateConfiguration:
        """Permit ``event`` to move this state to ``target``.

        Raises:
            ConfigurationError: If the event is already permitted from this state.
        """
        event = Event(event)
        if event in self.permissions:
            raise ConfigurationError(
                f"Event {event} is already permitted from state {self.state} "
                f"(to {self.permissions[event].target})"
            )
        self.permissions[event] = Permission(
            source=self.state,
            event=event,
            target=State(target),
            guard=guard,
            description=description,
            on_exit=list(on_exit),
            on_entry=list(on_entry),
        )
        # Make sure the target exists so state entry hooks can attach to it.
        self._machine.configure(target)
        return self

    def on_entry(self, action: BoundAction) -> StateConfiguration:
        self.entry_actions.append(action)
        return self

    def on_exit(self, action: BoundAction) -> StateConfiguration:
        self.exit_actions.append(action)
        return self


class StateMachine:
    """Synchronous state machine with guarded, described transitions.

    Attributes:
        state: The current state.
    """

    def __init__(self, initial_state: State) -> None:
        self.state = State(initial_state)
        self._states: dict[State, StateConfiguration] = {}
        self.logger = logger.bind(component="StateMachine")

    def configure(self, state: State) -> StateConfiguration:
        """Return the configuration handle for ``state``, creating it if needed."""
        state = State(state)
        config = self._states.get(state)
        if config is None:
            config = StateConfiguration(self, state)
            self._states[state] = config
        return config

    def is_configured(self, state: State) -> bool:
        return state in self._states

    def states(self) -> list[State]:
        return sorted(self._states)

    def transitions_from(self, state: State | None = None) -> list[Permission]:
        """List permissions leaving ``state`` (default: current), ordered by event."""
        config = self._states.get(State(state if state is not None else self.state))
        if config is None:
            return []
        return [config.permissions[e] for e in sorted(config.permissions)]

    def permission(self, event: Event) -> Permission:
        """Look up the permission for ``event`` from the current state.

        Raises:
            UnknownEventError: If the event is not configured from here.
        """
        config = self._states.get(self.state)
        permission = config.permissions.get(Event(event)) if config is not None else None
        if permission is None:
            raise UnknownEventError(
                self.state,
                event,
                config.permissions.keys() if config is not None else (),
            )
        return permission

    def evaluate_guard(self, permission: Permission) -> bool:
        """Evaluate a permission's guard in the current context.

        Raises:
            GuardEvaluationError: If the guard raised or returned a non-bool.
        """
        if permission.guard is None:
            return True
        try:
            return permission.guard.check()
        except Exception as e:
            raise GuardEvaluationError(
                permission.source, permission.event, permission.guard.description, e
            ) from e

    def can_fire(self, event: Event) -> bool:
        """Check whether ``event`` would currently succeed.

        Unknown events return False. Guard evaluation errors propagate.
        """
        try:
            permission = self.permission(event)
        except UnknownEventError:
            return False
        return self.evaluate_guard(permission)

    def permitted_events(self) -> list[Event]:
        """Events from the current state whose guards currently hold."""
        return [p.event for p in self.transitions_from() if self.evaluate_guard(p)]

    def fire(self, event: Event) -> Transition:
        """Fire ``event`` from the current state.

        Returns:
            The completed transition.

        Raises:
            UnknownEventError: If the event is not configured from here.
            GuardFailedError: If the transition's guard returned False.
            GuardEvaluationError: If the guard raised.
            ActionError: If an entry or exit action raised. The machine is
                left in the state it was in before firing.
        """
        permission = self.permission(event)
        guard = permission.guard
        if guard is not None and not self.evaluate_guard(permission):
            self.logger.info(
                "transition_blocked",
                state=str(permission.source),
                trigger=str(permission.event),
                guard=guard.description,
            )
            raise GuardFailedError(permission.source, permission.event, guard.description)

        source = self.state
        source_config = self._states[source]
        target_config = self.configure(permission.target)

        self._run_actions(permission, [*permission.on_exit, *source_config.exit_actions])
        self.state = permission.target
        try:
            self._run_actions(
                permission, [*target_config.entry_actions, *permission.on_entry]
            )
        except ActionError:
            self.state = source
            raise

        self.logger.info(
            "state_transition",
            from_state=str(source),
            to_state=str(permission.target),
            trigger=str(permission.event),
        )
        return Transition(source=source, event=permission.event, target=permission.target)

    def _run_actions(self, permission: Permission, actions: list[BoundAction]) -> None:
        for action in actions:
            try:
                action()
            except Exception as e:
                self.logger.warning(
                    "transition_action_failed",
                    state=str(permission.source),
                    trigger=str(permission.event),
                    action=action.description,
                    error=str(e),
                )
                raise ActionError(
                    permission.source, permission.event, action.description, e
                ) from e
