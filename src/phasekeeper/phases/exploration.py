"""Exploration phase: research topics as tasks, then summarise findings.

``Summarizing`` is intent-based: the caller either finalizes (once every
summary is approved) or goes back for another round of research.
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

PHASE_NAME = "exploration"
SUMMARY_ARTIFACT = "summary"

EXPLORATION_ACTIVE = State("ExplorationActive")
SUMMARIZING = State("Summarizing")

BEGIN_SUMMARIZING = Event("begin_summarizing")
FINALIZE = Event("finalize")
ADD_MORE_RESEARCH = Event("add_more_research")


class ExplorationMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid")

    stage: Literal["researching", "summarizing"] = "researching"


@guard("all research topics completed or abandoned")
def research_resolved(project: Project) -> bool:
    return project.all_tasks_resolved(PHASE_NAME)


@guard("all summaries approved")
def summaries_approved(project: Project) -> bool:
    return project.all_outputs_approved(PHASE_NAME, SUMMARY_ARTIFACT)


def enter_summarizing(project: Project) -> None:
    project.set_phase_metadata(PHASE_NAME, "stage", "summarizing")


def resume_research(project: Project) -> None:
    project.set_phase_metadata(PHASE_NAME, "stage", "researching")
    project.increment_phase_iteration(PHASE_NAME)


class ExplorationPhase(Phase):
    def entry_state(self) -> State:
        return EXPLORATION_ACTIVE

    def metadata(self) -> PhaseMetadata:
        return PhaseMetadata(
            name=PHASE_NAME,
            states=[EXPLORATION_ACTIVE, SUMMARIZING],
            supports_tasks=True,
            supports_artifacts=True,
            custom_fields=[
                FieldDef(
                    name="stage",
                    type=FieldType.STRING,
                    description="researching or summarizing",
                ),
            ],
            metadata_schema=ExplorationMetadata,
        )

    def configure(self, builder: ProjectTypeConfigBuilder, next_phase_entry: State) -> None:
        builder.add_transition(
            EXPLORATION_ACTIVE,
            SUMMARIZING,
            BEGIN_SUMMARIZING,
            guard=research_resolved,
            on_entry=enter_summarizing,
            description="Research done, write summaries",
        )
        builder.on_advance(EXPLORATION_ACTIVE, fixed_event(BEGIN_SUMMARIZING))

        builder.add_transition(
            SUMMARIZING,
            next_phase_entry,
            FINALIZE,
            guard=summaries_approved,
            description="Summaries approved, finalize",
        )
        builder.add_transition(
            SUMMARIZING,
            EXPLORATION_ACTIVE,
            ADD_MORE_RESEARCH,
            on_entry=resume_research,
            description="Research more topics",
        )

        builder.with_prompt(EXPLORATION_ACTIVE, template_prompt("exploration_active.md.j2"))
        builder.with_prompt(SUMMARIZING, template_prompt("exploration_summarizing.md.j2"))
