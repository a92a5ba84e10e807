"""Phase abstraction and the phase chain builder.

A phase is a self-contained slice of the lifecycle: it owns a handful of
states, wires its internal transitions, and hands control to whatever phase
comes next through a single exit transition. Phases never know which phase
follows them; the chain builder passes the successor's entry state in.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict, Field

from phasekeeper.engine.errors import ConfigurationError
from phasekeeper.engine.types import NO_PROJECT, PROJECT_INIT, State

if TYPE_CHECKING:
    from phasekeeper.engine.project_type import ProjectTypeConfigBuilder

logger = structlog.get_logger(__name__)


class FieldType(str, Enum):
    """Type of a custom metadata field declared by a phase."""

    STRING = "string"
    INT = "int"
    BOOL = "bool"
    LIST = "list"


class FieldDef(BaseModel):
    """Declaration of one custom metadata field.

    Attributes:
        name: Key in the phase metadata bag.
        type: Value type.
        description: What the field records.
    """

    name: str
    type: FieldType
    description: str = ""


class PhaseMetadata(BaseModel):
    """Static description of a phase.

    Attributes:
        name: Phase name, unique within a project type.
        states: States owned by the phase, in lifecycle order. The first is
            the entry state and the last is the end state.
        supports_tasks: Whether the phase tracks tasks.
        supports_artifacts: Whether the phase records artifacts.
        custom_fields: Metadata fields the phase reads or writes.
        artifact_types: Allowed artifact type tags (empty allows any).
        metadata_schema: Pydantic model validating the metadata bag.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    states: list[str] = Field(min_length=1)
    supports_tasks: bool = False
    supports_artifacts: bool = True
    custom_fields: list[FieldDef] = Field(default_factory=list)
    artifact_types: list[str] = Field(default_factory=list)
    metadata_schema: type[BaseModel] | None = None


class Phase(ABC):
    """Base class for lifecycle phases.

    Subclasses implement ``entry_state``, ``metadata`` and ``configure``.
    ``add_to_machine`` enforces that each instance is wired into exactly
    one chain.
    """

    def __init__(self) -> None:
        self._attached = False

    @abstractmethod
    def entry_state(self) -> State:
        """State entered when the chain moves into this phase."""

    @abstractmethod
    def metadata(self) -> PhaseMetadata:
        """Static description of this phase."""

    @abstractmethod
    def configure(self, builder: ProjectTypeConfigBuilder, next_phase_entry: State) -> None:
        """Add this phase's transitions, hooks and prompts to ``builder``.

        Args:
            builder: Project type builder being assembled.
            next_phase_entry: State the phase exits into (``NO_PROJECT`` for
                the last phase of a chain).
        """

    def add_to_machine(self, builder: ProjectTypeConfigBuilder, next_phase_entry: State) -> None:
        """Wire the phase into ``builder``.

        Raises:
            ConfigurationError: If this instance was already wired into a chain.
        """
        if self._attached:
            raise ConfigurationError(
                f"Phase {self.metadata().name} has already been added to a machine"
            )
        self._attached = True
        self.configure(builder, State(next_phase_entry))

    @property
    def name(self) -> str:
        return self.metadata().name

    def end_state(self) -> State:
        return State(self.metadata().states[-1])


def build_phase_chain(
    builder: ProjectTypeConfigBuilder,
    phases: Sequence[Phase],
) -> dict[str, Phase]:
    """Link phases into a circular chain starting and ending at ``NO_PROJECT``.

    Adds ``NO_PROJECT --project_init--> phases[0].entry_state()``, declares
    each phase on the builder, and lets each phase wire itself with the
    entry state of its successor. The last phase exits to ``NO_PROJECT``.

    Args:
        builder: Project type builder to populate.
        phases: Phases in lifecycle order.

    Returns:
        Map of phase name to phase, for post-chain customisation.

    Raises:
        ConfigurationError: On duplicate phase names or a reused phase instance.
    """
    if not phases:
        return {}

    by_name: dict[str, Phase] = {}
    for phase in phases:
        name = phase.metadata().name
        if name in by_name:
            raise ConfigurationError(f"Duplicate phase name in chain: {name}")
        by_name[name] = phase

    builder.add_transition(
        NO_PROJECT,
        phases[0].entry_state(),
        PROJECT_INIT,
        description="Initialise the project",
    )

    for index, phase in enumerate(phases):
        meta = phase.metadata()
        next_entry = phases[index + 1].entry_state() if index + 1 < len(phases) else NO_PROJECT
        builder.with_phase(
            meta.name,
            start_state=phase.entry_state(),
            end_state=phase.end_state(),
            states=meta.states,
            artifact_types=meta.artifact_types,
            supports_tasks=meta.supports_tasks,
            supports_artifacts=meta.supports_artifacts,
            metadata_schema=meta.metadata_schema,
        )
        phase.add_to_machine(builder, next_entry)

    logger.debug(
        "phase_chain_built",
        project_type=builder.name,
        phases=list(by_name),
    )
    return by_name
