"""The standard project type.

discovery -> design -> implementation -> review -> finalize

A failed review sends the project back to implementation planning for
another iteration.
"""

from __future__ import annotations

from phasekeeper.engine.branching import when
from phasekeeper.engine.phases import build_phase_chain
from phasekeeper.engine.project_type import ProjectTypeConfig, ProjectTypeConfigBuilder
from phasekeeper.phases.design import DesignPhase
from phasekeeper.phases.discovery import DiscoveryPhase
from phasekeeper.phases.finalize import FinalizePhase
from phasekeeper.phases.implementation import ImplementationPhase, begin_rework
from phasekeeper.phases.review import (
    REVIEW_ACTIVE,
    REVIEW_FAIL,
    ReviewPhase,
    latest_review_approved,
)
from phasekeeper.prompts.renderer import template_prompt

NAME = "standard"


def build_standard_config() -> ProjectTypeConfig:
    builder = ProjectTypeConfigBuilder(NAME)
    phases = build_phase_chain(
        builder,
        [
            DiscoveryPhase(optional=True),
            DesignPhase(optional=True),
            ImplementationPhase(),
            ReviewPhase(),
            FinalizePhase(),
        ],
    )
    builder.add_branch(
        REVIEW_ACTIVE,
        when(
            "fail",
            REVIEW_FAIL,
            phases["implementation"].entry_state(),
            guard=latest_review_approved,
            on_entry=begin_rework,
            failed_phase="review",
            description="Review failed, rework the implementation",
        ),
    )
    builder.with_orchestrator_prompt(template_prompt("orchestrator.md.j2"))
    return builder.build()
