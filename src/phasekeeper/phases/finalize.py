"""Finalize phase: documentation, final checks, then remove the project state."""

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

PHASE_NAME = "finalize"

FINALIZE_DOCUMENTATION = State("FinalizeDocumentation")
FINALIZE_CHECKS = State("FinalizeChecks")
FINALIZE_DELETE = State("FinalizeDelete")

DOCUMENTATION_DONE = Event("documentation_done")
CHECKS_DONE = Event("checks_done")
PROJECT_DELETE = Event("project_delete")


class FinalizeMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid")

    project_deleted: bool = False
    pr_url: str | None = None


@guard("project state deleted")
def project_deleted(project: Project) -> bool:
    return project.phase_metadata_bool(PHASE_NAME, "project_deleted")


class FinalizePhase(Phase):
    """Closing phase.

    Documentation and checks are confirmed by firing their events; only the
    last step is gated, on ``project_deleted`` being recorded.
    """

    def entry_state(self) -> State:
        return FINALIZE_DOCUMENTATION

    def metadata(self) -> PhaseMetadata:
        return PhaseMetadata(
            name=PHASE_NAME,
            states=[FINALIZE_DOCUMENTATION, FINALIZE_CHECKS, FINALIZE_DELETE],
            supports_tasks=False,
            supports_artifacts=False,
            custom_fields=[
                FieldDef(
                    name="project_deleted",
                    type=FieldType.BOOL,
                    description="Must be true before the phase completes",
                ),
                FieldDef(
                    name="pr_url",
                    type=FieldType.STRING,
                    description="Pull request opened during finalization",
                ),
            ],
            metadata_schema=FinalizeMetadata,
        )

    def configure(self, builder: ProjectTypeConfigBuilder, next_phase_entry: State) -> None:
        builder.add_transition(
            FINALIZE_DOCUMENTATION,
            FINALIZE_CHECKS,
            DOCUMENTATION_DONE,
            description="Documentation updated",
        )
        builder.add_transition(
            FINALIZE_CHECKS,
            FINALIZE_DELETE,
            CHECKS_DONE,
            description="Final checks passed",
        )
        builder.add_transition(
            FINALIZE_DELETE,
            next_phase_entry,
            PROJECT_DELETE,
            guard=project_deleted,
            description="Project state removed",
        )
        builder.on_advance(FINALIZE_DOCUMENTATION, fixed_event(DOCUMENTATION_DONE))
        builder.on_advance(FINALIZE_CHECKS, fixed_event(CHECKS_DONE))
        builder.on_advance(FINALIZE_DELETE, fixed_event(PROJECT_DELETE))

        builder.with_prompt(FINALIZE_DOCUMENTATION, template_prompt("finalize_documentation.md.j2"))
        builder.with_prompt(FINALIZE_CHECKS, template_prompt("finalize_checks.md.j2"))
        builder.with_prompt(FINALIZE_DELETE, template_prompt("finalize_delete.md.j2"))
