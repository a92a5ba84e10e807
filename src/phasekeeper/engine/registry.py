"""Registry of project types.

Written once at start-up, read many times afterwards. Registration is
serialised with a lock; reads take no lock because the mapping is never
mutated after ``register_builtin_types`` returns.
"""

from __future__ import annotations

import threading

import structlog

from phasekeeper.engine.errors import ConfigurationError, UnknownProjectTypeError
from phasekeeper.engine.project_type import ProjectTypeConfig

logger = structlog.get_logger(__name__)


class ProjectTypeRegistry:
    """Name -> ProjectTypeConfig mapping."""

    def __init__(self) -> None:
        self._types: dict[str, ProjectTypeConfig] = {}
        self._lock = threading.Lock()

    def register(self, name: str, config: ProjectTypeConfig) -> None:
        """Register a project type.

        Raises:
            ConfigurationError: If ``name`` is already registered.
        """
        with self._lock:
            if name in self._types:
                raise ConfigurationError(f"Project type {name!r} is already registered")
            self._types[name] = config
        logger.debug("project_type_registered", project_type=name)

    def get(self, name: str) -> ProjectTypeConfig:
        """Look up a project type.

        Raises:
            UnknownProjectTypeError: If ``name`` is not registered.
        """
        try:
            return self._types[name]
        except KeyError:
            raise UnknownProjectTypeError(name, self._types) from None

    def names(self) -> list[str]:
        return sorted(self._types)

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __len__(self) -> int:
        return len(self._types)


registry = ProjectTypeRegistry()

_builtin_lock = threading.Lock()
_builtins_registered = False


def register_builtin_types(target: ProjectTypeRegistry | None = None) -> ProjectTypeRegistry:
    """Register the built-in project types exactly once on the default registry.

    Passing an explicit ``target`` always registers into it (used by tests
    that want an isolated registry).
    """
    global _builtins_registered

    from phasekeeper.projects import BUILTIN_TYPES

    if target is not None:
        for name, factory in BUILTIN_TYPES.items():
            target.register(name, factory())
        return target

    with _builtin_lock:
        if not _builtins_registered:
            for name, factory in BUILTIN_TYPES.items():
                registry.register(name, factory())
            _builtins_registered = True
    return registry
