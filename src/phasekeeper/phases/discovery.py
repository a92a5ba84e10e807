"""Discovery phase: optional context gathering before design or implementation.

States:
    DiscoveryDecision: decide whether discovery is needed (intent-based
        when optional: ``enable_discovery`` or ``skip_discovery``).
    DiscoveryActive: research is under way; ``complete_discovery`` leaves
        once every recorded artifact is approved.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict

from phasekeeper.engine.phases import FieldDef, FieldType, Phase, PhaseMetadata
from phasekeeper.engine.project_type import fixed_event
from phasekeeper.engine.transitions import guard
from phasekeeper.engine.types import Event, State
from phasekeeper.prompts.renderer import template_prompt

if TYPE_CHECKING:
    from phasekeeper.engine.project_type import ProjectTypeConfigBuilder
    from phasekeeper.state.project import Project

PHASE_NAME = "discovery"

DISCOVERY_DECISION = State("DiscoveryDecision")
DISCOVERY_ACTIVE = State("DiscoveryActive")

ENABLE_DISCOVERY = Event("enable_discovery")
SKIP_DISCOVERY = Event("skip_discovery")
COMPLETE_DISCOVERY = Event("complete_discovery")


class DiscoveryMetadata(BaseModel):
    """Metadata stored on the discovery phase record."""

    model_config = ConfigDict(extra="forbid")

    discovery_type: Literal["bug", "feature", "docs", "refactor", "general"] | None = None


@guard("all discovery artifacts approved (or none recorded)")
def discovery_artifacts_approved(project: Project) -> bool:
    return project.phase_artifacts_approved(PHASE_NAME)


def mark_discovery_skipped(project: Project) -> None:
    project.mark_phase_skipped(PHASE_NAME)


class DiscoveryPhase(Phase):
    """Optional research phase.

    Args:
        optional: When True the decision state is intent-based and may skip
            straight to the next phase. When False discovery always runs.
    """

    def __init__(self, optional: bool = True) -> None:
        super().__init__()
        self.optional = optional

    def entry_state(self) -> State:
        return DISCOVERY_DECISION

    def metadata(self) -> PhaseMetadata:
        return PhaseMetadata(
            name=PHASE_NAME,
            states=[DISCOVERY_DECISION, DISCOVERY_ACTIVE],
            supports_tasks=False,
            supports_artifacts=True,
            custom_fields=[
                FieldDef(
                    name="discovery_type",
                    type=FieldType.STRING,
                    description="Type of discovery work (bug, feature, docs, refactor, general)",
                ),
            ],
            metadata_schema=DiscoveryMetadata,
        )

    def configure(self, builder: ProjectTypeConfigBuilder, next_phase_entry: State) -> None:
        builder.add_transition(
            DISCOVERY_DECISION,
            DISCOVERY_ACTIVE,
            ENABLE_DISCOVERY,
            description="Gather context before moving on",
        )
        if self.optional:
            builder.add_transition(
                DISCOVERY_DECISION,
                next_phase_entry,
                SKIP_DISCOVERY,
                on_exit=mark_discovery_skipped,
                description="Skip discovery",
            )
        else:
            builder.on_advance(DISCOVERY_DECISION, fixed_event(ENABLE_DISCOVERY))

        builder.add_transition(
            DISCOVERY_ACTIVE,
            next_phase_entry,
            COMPLETE_DISCOVERY,
            guard=discovery_artifacts_approved,
            description="Discovery finished",
        )
        builder.on_advance(DISCOVERY_ACTIVE, fixed_event(COMPLETE_DISCOVERY))

        builder.with_prompt(DISCOVERY_DECISION, template_prompt("discovery_decision.md.j2"))
        builder.with_prompt(DISCOVERY_ACTIVE, template_prompt("discovery_active.md.j2"))
