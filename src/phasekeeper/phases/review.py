"""Review phase: a reviewer records an assessment of the implementation.

``ReviewActive`` branches on the ``assessment`` metadata of the latest
approved review artifact. The phase itself only declares the ``pass``
path; project types add ``fail`` (and wherever it should lead) by
extending the same branch.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from phasekeeper.engine.branching import branch_on, when
from phasekeeper.engine.phases import FieldDef, FieldType, Phase, PhaseMetadata
from phasekeeper.engine.transitions import guard
from phasekeeper.engine.types import Event, State
from phasekeeper.prompts.renderer import template_prompt

if TYPE_CHECKING:
    from phasekeeper.engine.project_type import ProjectTypeConfigBuilder
    from phasekeeper.state.project import Project

PHASE_NAME = "review"
REVIEW_ARTIFACT = "review"

REVIEW_ACTIVE = State("ReviewActive")

REVIEW_PASS = Event("review_pass")
REVIEW_FAIL = Event("review_fail")


@guard("latest review approved")
def latest_review_approved(project: Project) -> bool:
    latest = project.latest_artifact(PHASE_NAME, REVIEW_ARTIFACT)
    return latest is not None and latest.approved


def review_assessment(project: Project) -> str:
    """Assessment recorded on the latest approved review.

    Raises:
        ValueError: If there is no approved review or it has no assessment.
    """
    latest = project.latest_artifact(PHASE_NAME, REVIEW_ARTIFACT, approved_only=True)
    if latest is None:
        raise ValueError("no approved review found")
    assessment = latest.metadata.get("assessment")
    if not isinstance(assessment, str):
        raise ValueError(f"review {latest.path} has no assessment")
    return assessment


class ReviewPhase(Phase):
    def entry_state(self) -> State:
        return REVIEW_ACTIVE

    def metadata(self) -> PhaseMetadata:
        return PhaseMetadata(
            name=PHASE_NAME,
            states=[REVIEW_ACTIVE],
            supports_tasks=False,
            supports_artifacts=True,
            artifact_types=[REVIEW_ARTIFACT],
            custom_fields=[
                FieldDef(
                    name="assessment",
                    type=FieldType.STRING,
                    description="Set on each review artifact: pass or fail",
                ),
            ],
        )

    def configure(self, builder: ProjectTypeConfigBuilder, next_phase_entry: State) -> None:
        builder.add_branch(
            REVIEW_ACTIVE,
            branch_on(review_assessment),
            when(
                "pass",
                REVIEW_PASS,
                next_phase_entry,
                guard=latest_review_approved,
                description="Review passed",
            ),
        )
        builder.with_prompt(REVIEW_ACTIVE, template_prompt("review_active.md.j2"))
