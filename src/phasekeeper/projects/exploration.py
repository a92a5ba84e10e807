"""The exploration project type: research, summarise, finalize."""

from __future__ import annotations

from phasekeeper.engine.phases import build_phase_chain
from phasekeeper.engine.project_type import ProjectTypeConfig, ProjectTypeConfigBuilder
from phasekeeper.phases.exploration import ExplorationPhase
from phasekeeper.phases.finalize import FinalizePhase
from phasekeeper.prompts.renderer import template_prompt

NAME = "exploration"


def build_exploration_config() -> ProjectTypeConfig:
    builder = ProjectTypeConfigBuilder(NAME)
    build_phase_chain(builder, [ExplorationPhase(), FinalizePhase()])
    builder.with_orchestrator_prompt(template_prompt("orchestrator.md.j2"))
    return builder.build()
