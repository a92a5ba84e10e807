"""Prompt templates and rendering for phase guidance."""

from phasekeeper.prompts.loader import TemplateLoader
from phasekeeper.prompts.renderer import PromptRenderer, get_renderer, template_prompt

__all__ = ["PromptRenderer", "TemplateLoader", "get_renderer", "template_prompt"]
