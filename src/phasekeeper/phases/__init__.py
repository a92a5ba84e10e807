"""Concrete lifecycle phases."""

from phasekeeper.phases.design import DesignPhase
from phasekeeper.phases.discovery import DiscoveryPhase
from phasekeeper.phases.exploration import ExplorationPhase
from phasekeeper.phases.finalize import FinalizePhase
from phasekeeper.phases.implementation import ImplementationPhase
from phasekeeper.phases.review import ReviewPhase

__all__ = [
    "DesignPhase",
    "DiscoveryPhase",
    "ExplorationPhase",
    "FinalizePhase",
    "ImplementationPhase",
    "ReviewPhase",
]
