"""State-determined branching.

A branch attaches a discriminator to one state and maps each discriminator
value to a transition. The discriminator decides *which way* to go; guards on
individual paths still decide whether it is safe to go that way right now.

States that need an external decision (intent-based branching) simply have
several transitions and no determiner; they need nothing from this module.

Example:
    >>> builder.add_branch(
    ...     REVIEW_ACTIVE,
    ...     branch_on(lambda p: p.latest_artifact("review", "review").metadata["assessment"]),
    ...     when("pass", REVIEW_PASS, FINALIZE_DOCUMENTATION, description="Review passed"),
    ...     when("fail", REVIEW_FAIL, IMPLEMENTATION_PLANNING, failed_phase="review"),
    ... )
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from phasekeeper.engine.errors import (
    ConfigurationError,
    DeterminerError,
    NoBranchError,
    PhasekeeperError,
)
from phasekeeper.engine.transitions import TransitionConfig
from phasekeeper.engine.types import ActionTemplate, Event, GuardTemplate, State

if TYPE_CHECKING:
    from phasekeeper.state.project import Project

Discriminator = Callable[["Project"], str]


@dataclass
class BranchPath:
    """One row of a branch table: discriminator value -> transition."""

    value: str
    transition: TransitionConfig


@dataclass
class BranchConfig:
    """Branch table for a single state.

    Attributes:
        from_state: The branching state.
        discriminator: Function reading project state and returning a value.
        paths: Discriminator value -> branch path.
    """

    from_state: State
    discriminator: Discriminator | None = None
    paths: dict[str, BranchPath] = field(default_factory=dict)

    def set_discriminator(self, discriminator: Discriminator) -> None:
        if self.discriminator is not None and self.discriminator is not discriminator:
            raise ConfigurationError(
                f"Branch for state {self.from_state} already has a discriminator"
            )
        self.discriminator = discriminator

    def add_path(self, path: BranchPath) -> None:
        if not path.value:
            raise ConfigurationError(
                f"Branch for state {self.from_state}: empty discriminator value is not allowed"
            )
        if path.value in self.paths:
            raise ConfigurationError(
                f"Branch for state {self.from_state}: value {path.value!r} defined twice"
            )
        for existing in self.paths.values():
            if existing.transition.event == path.transition.event:
                raise ConfigurationError(
                    f"Branch for state {self.from_state}: event {path.transition.event} "
                    f"used by values {existing.value!r} and {path.value!r}"
                )
        self.paths[path.value] = path

    def known_values(self) -> list[str]:
        return list(self.paths)

    def transitions(self) -> list[TransitionConfig]:
        """Transitions generated by this branch, in declaration order."""
        return [self.paths[v].transition for v in self.known_values()]

    def validate(self) -> None:
        if self.discriminator is None:
            raise ConfigurationError(
                f"Branch for state {self.from_state}: no discriminator; use branch_on()"
            )
        if not self.paths:
            raise ConfigurationError(
                f"Branch for state {self.from_state}: no branch paths; use when()"
            )

    def determine(self, project: Project) -> Event:
        """Select the event for the project's current discriminator value.

        Raises:
            NoBranchError: If the value has no entry in the table.
            DeterminerError: If the discriminator itself raised.
            ConfigurationError: If no discriminator was set.
        """
        discriminator = self.discriminator
        if discriminator is None:
            raise ConfigurationError(f"Branch for state {self.from_state}: no discriminator")
        try:
            value = discriminator(project)
        except PhasekeeperError:
            raise
        except Exception as e:
            raise DeterminerError(
                self.from_state,
                f"Discriminator for state {self.from_state} raised: {e}",
                [t.info() for t in self.transitions()],
            ) from e

        path = self.paths.get(value)
        if path is None:
            raise NoBranchError(
                self.from_state,
                str(value),
                self.paths,
                [t.info() for t in self.transitions()],
            )
        return path.transition.event


BranchOption = Callable[[BranchConfig], None]


def branch_on(discriminator: Discriminator) -> BranchOption:
    """Set the discriminator of a branch."""

    def apply(config: BranchConfig) -> None:
        config.set_discriminator(discriminator)

    return apply


def when(
    value: str,
    event: Event | str,
    to: State | str,
    *,
    guard: GuardTemplate | None = None,
    on_entry: ActionTemplate | None = None,
    on_exit: ActionTemplate | None = None,
    description: str = "",
    failed_phase: str | None = None,
) -> BranchOption:
    """Add a path taken when the discriminator returns ``value``."""

    def apply(config: BranchConfig) -> None:
        config.add_path(
            BranchPath(
                value=value,
                transition=TransitionConfig(
                    from_state=config.from_state,
                    to_state=State(to),
                    event=Event(event),
                    guard=guard,
                    on_entry=on_entry,
                    on_exit=on_exit,
                    description=description,
                    failed_phase=failed_phase,
                ),
            )
        )

    return apply
