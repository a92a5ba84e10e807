"""Unit tests for the phase abstraction and chain builder."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from phasekeeper.engine.errors import ConfigurationError
from phasekeeper.engine.phases import Phase, PhaseMetadata, build_phase_chain
from phasekeeper.engine.project_type import ProjectTypeConfigBuilder
from phasekeeper.engine.types import NO_PROJECT, PROJECT_INIT, State
from phasekeeper.phases.discovery import (
    DISCOVERY_ACTIVE,
    DISCOVERY_DECISION,
    ENABLE_DISCOVERY,
    DiscoveryPhase,
)


class TestPhaseChain:
    """Test chain integrity."""

    def test_empty_chain_adds_nothing(self) -> None:
        builder = ProjectTypeConfigBuilder("empty")
        assert build_phase_chain(builder, []) == {}
        assert builder.build().transitions == []

    def test_single_phase_loops_back(self, flag_phase: type[Phase]) -> None:
        """Test NoProject -> entry and last phase -> NoProject."""
        builder = ProjectTypeConfigBuilder("one")
        phases = build_phase_chain(builder, [flag_phase("only", "OnlyActive", "done")])
        config = builder.build()

        assert list(phases) == ["only"]
        init = config.transitions_from(NO_PROJECT)
        assert [(i.event, i.to_state) for i in init] == [(PROJECT_INIT, "OnlyActive")]
        assert init[0].description == "Initialise the project"
        assert [i.to_state for i in config.transitions_from(State("OnlyActive"))] == ["NoProject"]

    def test_phases_link_to_successor_entry(self, flag_phase: type[Phase]) -> None:
        builder = ProjectTypeConfigBuilder("three")
        build_phase_chain(
            builder,
            [
                flag_phase("first", "FirstActive", "first_done"),
                flag_phase("second", "SecondActive", "second_done"),
                flag_phase("third", "ThirdActive", "third_done"),
            ],
        )
        config = builder.build()

        edges = {(t.from_state, t.to_state) for t in config.transitions}
        assert edges == {
            ("NoProject", "FirstActive"),
            ("FirstActive", "SecondActive"),
            ("SecondActive", "ThirdActive"),
            ("ThirdActive", "NoProject"),
        }
        assert len(config.transitions_from(NO_PROJECT)) == 1

    def test_phase_configs_declared(self) -> None:
        builder = ProjectTypeConfigBuilder("discovery-only")
        build_phase_chain(builder, [DiscoveryPhase(optional=False)])
        config = builder.build()

        phase = config.phases["discovery"]
        assert phase.start_state == DISCOVERY_DECISION
        assert phase.end_state == DISCOVERY_ACTIVE
        assert phase.owns(DISCOVERY_ACTIVE)
        assert phase.metadata_schema is not None

    def test_mandatory_discovery_is_determined(self) -> None:
        """Test that a non-optional discovery always enables itself."""
        builder = ProjectTypeConfigBuilder("discovery-only")
        build_phase_chain(builder, [DiscoveryPhase(optional=False)])
        config = builder.build()

        determiner = config.determiner_for(DISCOVERY_DECISION)
        assert determiner is not None
        assert determiner(None) == ENABLE_DISCOVERY
        assert [i.event for i in config.transitions_from(DISCOVERY_DECISION)] == [ENABLE_DISCOVERY]

    def test_duplicate_phase_names_rejected(self, flag_phase: type[Phase]) -> None:
        builder = ProjectTypeConfigBuilder("dup")
        with pytest.raises(ConfigurationError, match="Duplicate phase name"):
            build_phase_chain(
                builder,
                [flag_phase("same", "OneActive", "one"), flag_phase("same", "TwoActive", "two")],
            )

    def test_phase_instance_cannot_be_reused(self, flag_phase: type[Phase]) -> None:
        phase = flag_phase("only", "OnlyActive", "done")
        build_phase_chain(ProjectTypeConfigBuilder("first"), [phase])

        with pytest.raises(ConfigurationError, match="already been added"):
            build_phase_chain(ProjectTypeConfigBuilder("second"), [phase])


class TestPhaseMetadata:
    """Test static phase descriptions."""

    def test_requires_at_least_one_state(self) -> None:
        with pytest.raises(ValidationError):
            PhaseMetadata(name="empty", states=[])

    def test_defaults(self) -> None:
        meta = PhaseMetadata(name="p", states=["PActive"])
        assert meta.supports_artifacts
        assert not meta.supports_tasks
        assert meta.artifact_types == []
        assert meta.metadata_schema is None

    def test_end_state_is_last_state(self) -> None:
        phase = DiscoveryPhase()
        assert phase.name == "discovery"
        assert phase.end_state() == DISCOVERY_ACTIVE
