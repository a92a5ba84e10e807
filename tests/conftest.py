"""Shared fixtures for Phasekeeper tests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator

import pytest
import structlog

from phasekeeper.engine.phases import Phase, PhaseMetadata
from phasekeeper.engine.project_type import (
    ProjectTypeConfig,
    ProjectTypeConfigBuilder,
    fixed_event,
)
from phasekeeper.engine.registry import ProjectTypeRegistry, register_builtin_types
from phasekeeper.engine.types import Event, GuardTemplate, State
from phasekeeper.logging import set_correlation_id
from phasekeeper.state.backend import MemoryBackend
from phasekeeper.state.loader import create
from phasekeeper.state.project import Project


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Leave logging unconfigured between tests."""
    yield
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    set_correlation_id(None)


class FlagPhase(Phase):
    """Single-state phase whose exit is guarded by a boolean metadata flag.

    The guard reads ``phases[name].metadata[flag]``. Advance always picks
    ``event``.
    """

    def __init__(
        self,
        name: str,
        state: str,
        event: str,
        guard_description: str = "ready",
        flag: str = "ready",
    ) -> None:
        super().__init__()
        self._name = name
        self.state = State(state)
        self.event = Event(event)
        self.guard_description = guard_description
        self.flag = flag

    def entry_state(self) -> State:
        return self.state

    def metadata(self) -> PhaseMetadata:
        return PhaseMetadata(name=self._name, states=[self.state])

    def configure(self, builder: ProjectTypeConfigBuilder, next_phase_entry: State) -> None:
        name, flag = self._name, self.flag
        builder.add_transition(
            self.state,
            next_phase_entry,
            self.event,
            guard=GuardTemplate(self.guard_description, lambda p: p.phase_metadata_bool(name, flag)),
            description=f"Leave {name}",
        )
        builder.on_advance(self.state, fixed_event(self.event))


@pytest.fixture
def registry() -> ProjectTypeRegistry:
    """Isolated registry holding the built-in project types."""
    return register_builtin_types(ProjectTypeRegistry())


@pytest.fixture
def memory_backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def project_factory() -> Callable[..., Project]:
    """Create a persisted project of an arbitrary (test-built) project type."""

    def factory(
        config: ProjectTypeConfig,
        backend: MemoryBackend | None = None,
        name: str = "toy",
    ) -> Project:
        reg = ProjectTypeRegistry()
        reg.register(config.name, config)
        return create(backend or MemoryBackend(), config.name, name=name, registry=reg)

    return factory


@pytest.fixture
def standard_project(registry: ProjectTypeRegistry, memory_backend: MemoryBackend) -> Project:
    return create(
        memory_backend,
        "standard",
        name="add-login",
        branch="feat/add-login",
        description="Add login",
        registry=registry,
    )


@pytest.fixture
def exploration_project(registry: ProjectTypeRegistry, memory_backend: MemoryBackend) -> Project:
    return create(
        memory_backend,
        "exploration",
        name="cache-options",
        branch="explore/cache-options",
        registry=registry,
    )


@pytest.fixture
def flag_phase() -> type[FlagPhase]:
    """The FlagPhase class, for tests that build their own chains."""
    return FlagPhase
