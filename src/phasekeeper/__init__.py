"""Phasekeeper - phase-based project lifecycle tracking.

This package provides a state-machine engine that composes lifecycle phases
into project types, guards each transition with named preconditions, and
persists project state to a YAML file inside the repository.
"""

__version__ = "0.1.0"
