"""Implementation phase: plan tasks, get them approved, then execute them.

States:
    ImplementationPlanning: tasks are being drafted. ``tasks_approved``
        moves on once a human set ``tasks_approved`` and at least one task
        exists.
    ImplementationExecuting: tasks are worked on. ``all_tasks_complete``
        leaves once every task is completed or abandoned.
"""

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

PHASE_NAME = "implementation"

IMPLEMENTATION_PLANNING = State("ImplementationPlanning")
IMPLEMENTATION_EXECUTING = State("ImplementationExecuting")

TASKS_APPROVED = Event("tasks_approved")
ALL_TASKS_COMPLETE = Event("all_tasks_complete")


class ImplementationMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tasks_approved: bool = False


@guard("tasks approved and at least one task")
def tasks_approved(project: Project) -> bool:
    if not project.phase_metadata_bool(PHASE_NAME, "tasks_approved"):
        return False
    return bool(project.phase(PHASE_NAME).tasks)


@guard("all tasks completed or abandoned")
def all_tasks_resolved(project: Project) -> bool:
    return project.all_tasks_resolved(PHASE_NAME)


def begin_rework(project: Project) -> None:
    """Start another implementation iteration after a failed review.

    The task plan for the new iteration has to be approved again.
    """
    project.increment_phase_iteration(PHASE_NAME)
    project.set_phase_metadata(PHASE_NAME, "tasks_approved", False)


class ImplementationPhase(Phase):
    def entry_state(self) -> State:
        return IMPLEMENTATION_PLANNING

    def metadata(self) -> PhaseMetadata:
        return PhaseMetadata(
            name=PHASE_NAME,
            states=[IMPLEMENTATION_PLANNING, IMPLEMENTATION_EXECUTING],
            supports_tasks=True,
            supports_artifacts=True,
            custom_fields=[
                FieldDef(
                    name="tasks_approved",
                    type=FieldType.BOOL,
                    description="Human approved the task plan",
                ),
            ],
            metadata_schema=ImplementationMetadata,
        )

    def configure(self, builder: ProjectTypeConfigBuilder, next_phase_entry: State) -> None:
        builder.add_transition(
            IMPLEMENTATION_PLANNING,
            IMPLEMENTATION_EXECUTING,
            TASKS_APPROVED,
            guard=tasks_approved,
            description="Task plan approved, start executing",
        )
        builder.add_transition(
            IMPLEMENTATION_EXECUTING,
            next_phase_entry,
            ALL_TASKS_COMPLETE,
            guard=all_tasks_resolved,
            description="All tasks finished",
        )
        builder.on_advance(IMPLEMENTATION_PLANNING, fixed_event(TASKS_APPROVED))
        builder.on_advance(IMPLEMENTATION_EXECUTING, fixed_event(ALL_TASKS_COMPLETE))

        builder.with_prompt(IMPLEMENTATION_PLANNING, template_prompt("implementation_planning.md.j2"))
        builder.with_prompt(IMPLEMENTATION_EXECUTING, template_prompt("implementation_executing.md.j2"))
