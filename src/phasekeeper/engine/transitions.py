"""Declarative transition configuration.

A TransitionConfig is the static, per-project-type description of one edge.
It holds guard and action *templates* (functions of the project); they are
only bound to a live project when a machine is built.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from phasekeeper.engine.types import (
    ActionTemplate,
    Event,
    GuardTemplate,
    State,
    TransitionInfo,
)

if TYPE_CHECKING:
    from phasekeeper.state.project import Project


def guard(description: str) -> Callable[[Callable[[Project], bool]], GuardTemplate]:
    """Decorator turning a predicate into a described GuardTemplate.

    Example:
        >>> @guard("all tasks resolved")
        ... def tasks_resolved(project):
        ...     return project.all_tasks_resolved("implementation")
    """

    def decorator(func: Callable[[Project], bool]) -> GuardTemplate:
        return GuardTemplate(description=description, func=func)

    return decorator


@dataclass
class TransitionConfig:
    """Static configuration of one transition.

    Attributes:
        from_state: Source state.
        to_state: Target state.
        event: Triggering event.
        guard: Optional guard template.
        on_entry: Optional action run after entering ``to_state``.
        on_exit: Optional action run before leaving ``from_state``.
        description: Human-readable description for discovery.
        failed_phase: Phase to mark failed (instead of completed) when this
            transition leaves that phase.
    """

    from_state: State
    to_state: State
    event: Event
    guard: GuardTemplate | None = None
    on_entry: ActionTemplate | None = None
    on_exit: ActionTemplate | None = None
    description: str = ""
    failed_phase: str | None = None

    def __post_init__(self) -> None:
        self.from_state = State(self.from_state)
        self.to_state = State(self.to_state)
        self.event = Event(self.event)

    @property
    def guard_description(self) -> str:
        return self.guard.description if self.guard is not None else ""

    def info(self) -> TransitionInfo:
        return TransitionInfo(
            event=str(self.event),
            from_state=str(self.from_state),
            to_state=str(self.to_state),
            description=self.description,
            guard_description=self.guard_description,
        )
