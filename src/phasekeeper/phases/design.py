"""Design phase: optional design documents before implementation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from phasekeeper.engine.phases import FieldDef, FieldType, Phase, PhaseMetadata
from phasekeeper.engine.project_type import fixed_event
from phasekeeper.engine.transitions import guard
from phasekeeper.engine.types import Event, State
from phasekeeper.prompts.renderer import template_prompt

if TYPE_CHECKING:
    from phasekeeper.engine.project_type import ProjectTypeConfigBuilder
    from phasekeeper.state.project import Project

PHASE_NAME = "design"

DESIGN_DECISION = State("DesignDecision")
DESIGN_ACTIVE = State("DesignActive")

ENABLE_DESIGN = Event("enable_design")
SKIP_DESIGN = Event("skip_design")
COMPLETE_DESIGN = Event("complete_design")


class DesignMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid")

    architect_used: bool | None = None


@guard("all design artifacts approved (or none recorded)")
def design_artifacts_approved(project: Project) -> bool:
    return project.phase_artifacts_approved(PHASE_NAME)


def mark_design_skipped(project: Project) -> None:
    project.mark_phase_skipped(PHASE_NAME)


class DesignPhase(Phase):
    """Optional design phase; same shape as discovery."""

    def __init__(self, optional: bool = True) -> None:
        super().__init__()
        self.optional = optional

    def entry_state(self) -> State:
        return DESIGN_DECISION

    def metadata(self) -> PhaseMetadata:
        return PhaseMetadata(
            name=PHASE_NAME,
            states=[DESIGN_DECISION, DESIGN_ACTIVE],
            supports_tasks=False,
            supports_artifacts=True,
            custom_fields=[
                FieldDef(
                    name="architect_used",
                    type=FieldType.BOOL,
                    description="Whether an architect produced the design",
                ),
            ],
            metadata_schema=DesignMetadata,
        )

    def configure(self, builder: ProjectTypeConfigBuilder, next_phase_entry: State) -> None:
        builder.add_transition(
            DESIGN_DECISION,
            DESIGN_ACTIVE,
            ENABLE_DESIGN,
            description="Write design documents",
        )
        if self.optional:
            builder.add_transition(
                DESIGN_DECISION,
                next_phase_entry,
                SKIP_DESIGN,
                on_exit=mark_design_skipped,
                description="Skip design",
            )
        else:
            builder.on_advance(DESIGN_DECISION, fixed_event(ENABLE_DESIGN))

        builder.add_transition(
            DESIGN_ACTIVE,
            next_phase_entry,
            COMPLETE_DESIGN,
            guard=design_artifacts_approved,
            description="Design approved",
        )
        builder.on_advance(DESIGN_ACTIVE, fixed_event(COMPLETE_DESIGN))

        builder.with_prompt(DESIGN_DECISION, template_prompt("design_decision.md.j2"))
        builder.with_prompt(DESIGN_ACTIVE, template_prompt("design_active.md.j2"))
