"""Built-in project types."""

from __future__ import annotations

from collections.abc import Callable

from phasekeeper.engine.project_type import ProjectTypeConfig
from phasekeeper.projects.exploration import build_exploration_config
from phasekeeper.projects.standard import build_standard_config

BUILTIN_TYPES: dict[str, Callable[[], ProjectTypeConfig]] = {
    "standard": build_standard_config,
    "exploration": build_exploration_config,
}

__all__ = ["BUILTIN_TYPES", "build_exploration_config", "build_standard_config"]
