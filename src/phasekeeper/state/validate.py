"""Structural and per-phase validation of project state."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import BaseModel, ValidationError

from phasekeeper.engine.errors import StateValidationError
from phasekeeper.state.log import LogEntry
from phasekeeper.state.models import ArtifactState, ProjectState


def _format_errors(error: ValidationError) -> list[str]:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "<root>"
        messages.append(f"{location}: {item['msg']}")
    return messages


def validate_structure(data: dict[str, Any]) -> ProjectState:
    """Parse a raw state document into a ProjectState.

    Raises:
        StateValidationError: If the document does not match the schema.
    """
    try:
        return ProjectState.model_validate(data)
    except ValidationError as e:
        raise StateValidationError("Invalid project state", _format_errors(e)) from e


def validate_metadata(
    metadata: dict[str, Any],
    schema: type[BaseModel],
    phase: str,
) -> BaseModel:
    """Validate a phase metadata bag against its schema.

    Raises:
        StateValidationError: If the metadata does not match.
    """
    try:
        return schema.model_validate(metadata)
    except ValidationError as e:
        raise StateValidationError(
            f"Invalid metadata for phase {phase}", _format_errors(e)
        ) from e


def validate_artifact_types(
    artifacts: Iterable[ArtifactState],
    allowed: Sequence[str],
    phase: str,
) -> None:
    """Check every artifact type is allowed for the phase (empty allows any).

    Raises:
        StateValidationError: Listing every offending artifact.
    """
    if not allowed:
        return
    errors = [
        f"{a.path}: type {a.type!r} not in {sorted(allowed)}"
        for a in artifacts
        if a.type not in allowed
    ]
    if errors:
        raise StateValidationError(f"Invalid artifact types for phase {phase}", errors)


def validate_log_entry(data: dict[str, Any]) -> LogEntry:
    """Build a log entry, checking action, result and agent.

    Raises:
        StateValidationError: If the entry does not match the schema.
    """
    try:
        return LogEntry.model_validate(data)
    except ValidationError as e:
        raise StateValidationError("Invalid log entry", _format_errors(e)) from e
