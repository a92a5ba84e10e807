"""Prompt rendering for project states.

Each phase registers a prompt generator per state through
``template_prompt``; the generator renders a Jinja2 template with a common
project context. The engine never prints prompts on its own, callers ask
for them (``ProjectTypeConfig.prompt_for``).
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from phasekeeper.prompts.loader import TemplateLoader

if TYPE_CHECKING:
    from phasekeeper.engine.types import PromptGenerator
    from phasekeeper.state.project import Project

logger = structlog.get_logger(__name__)


class PromptRenderer:
    """Renders prompt templates against a live project.

    Attributes:
        loader: TemplateLoader used to resolve template names.
    """

    def __init__(self, override_dir: Path | None = None) -> None:
        self.loader = TemplateLoader(override_dir=override_dir)

    def build_context(self, project: Project) -> dict[str, Any]:
        """Variables available to every prompt template."""
        phases = []
        for name, record in project.phases.items():
            phases.append(
                {
                    "name": name,
                    "status": record.status.value,
                    "enabled": record.enabled,
                    "iteration": record.iteration,
                    "artifacts": record.artifacts,
                    "tasks": record.tasks,
                    "metadata": record.metadata,
                }
            )
        current_phase = project.config.phase_for_state(project.current_state)
        return {
            "project_name": project.name,
            "project_type": project.type,
            "branch": project.branch,
            "description": project.description,
            "state": str(project.current_state),
            "current_phase": current_phase.name if current_phase is not None else None,
            "phases": phases,
            "transitions": project.config.transitions_from(project.current_state),
        }

    def render(self, template_name: str, project: Project, **extra: Any) -> str:
        """Render ``template_name`` for ``project``.

        Args:
            template_name: Template file name (e.g. ``review.md.j2``).
            project: Project to describe.
            **extra: Additional template variables; override the common ones.

        Raises:
            jinja2.TemplateNotFound: If the template does not exist.
            jinja2.UndefinedError: If the template references a missing variable.
        """
        template = self.loader.load_template(template_name)
        context = self.build_context(project)
        context.update(extra)
        logger.debug("prompt_rendered", template=template_name, project=project.name)
        return template.render(**context)


@lru_cache(maxsize=1)
def get_renderer() -> PromptRenderer:
    """Process-wide renderer over the packaged templates."""
    return PromptRenderer()


def template_prompt(template_name: str, **extra: Any) -> PromptGenerator:
    """Prompt generator rendering ``template_name`` with the shared renderer."""

    def generate(project: Project) -> str:
        return get_renderer().render(template_name, project, **extra)

    generate.__name__ = f"prompt_{template_name.split('.', 1)[0]}"
    return generate
