"""State/event vocabulary and callable shapes for the lifecycle engine.

States and events are plain strings underneath so they compare, hash and
serialise without ceremony, but they are distinct types so that a state is
never passed where an event is expected.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from phasekeeper.state.project import Project


class State(str):
    """Name of a machine state."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"State({str.__repr__(self)})"

    def __str__(self) -> str:
        return str.__str__(self)


class Event(str):
    """Name of a trigger moving the machine between states."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Event({str.__repr__(self)})"

    def __str__(self) -> str:
        return str.__str__(self)


# Distinguished sentinel: no project is active (also the end of every chain).
NO_PROJECT = State("NoProject")

# Fired from NO_PROJECT to enter the first phase of a chain.
PROJECT_INIT = Event("project_init")


ActionTemplate = Callable[["Project"], None]
EventDeterminer = Callable[["Project"], Event]
PromptGenerator = Callable[["Project"], str]
Initializer = Callable[["Project", "dict[str, list] | None"], None]


@dataclass(frozen=True)
class GuardTemplate:
    """A named predicate over project state, not yet bound to a project.

    Attributes:
        description: Human-readable condition, quoted in guard failures.
        func: Pure predicate taking the live project.
    """

    description: str
    func: Callable[["Project"], bool]


class TransitionInfo(BaseModel):
    """Introspection record for one configured transition.

    Attributes:
        event: Event that triggers the transition.
        from_state: Source state.
        to_state: Target state.
        description: Human-readable description (empty if not provided).
        guard_description: Guard description (empty if unguarded).
        permitted: Whether the guard currently holds. None when the guard
            was not evaluated (static configuration introspection).
        guard_error: Error text if evaluating the guard raised.
    """

    event: str
    from_state: str
    to_state: str
    description: str = ""
    guard_description: str = ""
    permitted: bool | None = None
    guard_error: str | None = Field(default=None)
