"""Helpers shared by the CLI command modules."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import typer
import yaml
from rich.console import Console
from rich.table import Table

from phasekeeper.engine.errors import (
    DeterminerError,
    GuardFailedError,
    PhasekeeperError,
    ProjectNotFoundError,
    StateValidationError,
    UnknownEventError,
)
from phasekeeper.engine.types import TransitionInfo
from phasekeeper.logging import bind_project_context
from phasekeeper.state.loader import load
from phasekeeper.state.project import Project

console = Console()


def load_project() -> Project:
    """Load the project of the current repository and bind it to the log context."""
    from phasekeeper.main import get_app_context

    ctx = get_app_context()
    project = load(ctx.backend(), ctx.registry)
    bind_project_context(project.name, str(project.current_state))
    return project


def transitions_table(options: Sequence[TransitionInfo], title: str = "Transitions") -> Table:
    table = Table(title=title)
    table.add_column("Event", style="cyan", no_wrap=True)
    table.add_column("Target")
    table.add_column("Description")
    table.add_column("Requires")
    table.add_column("Permitted")
    for option in options:
        if option.permitted is None:
            permitted = "-"
        elif option.guard_error:
            permitted = f"[red]error: {option.guard_error}[/red]"
        else:
            permitted = "[green]yes[/green]" if option.permitted else "[yellow]no[/yellow]"
        table.add_row(
            option.event,
            option.to_state,
            option.description,
            option.guard_description,
            permitted,
        )
    return table


def report_error(error: PhasekeeperError) -> None:
    """Print a typed error with whatever alternatives it carries."""
    if isinstance(error, ProjectNotFoundError):
        console.print(f"[red]Error:[/red] {error}")
        console.print("[dim]Run 'phasekeeper new' to start a project.[/dim]")
        return

    console.print(f"[red]Error:[/red] {error}")
    if isinstance(error, GuardFailedError):
        console.print(f"[dim]Blocked by:[/dim] {error.guard_description}")
    elif isinstance(error, UnknownEventError) and error.valid_events:
        console.print(f"[dim]Valid events:[/dim] {', '.join(error.valid_events)}")
    elif isinstance(error, DeterminerError) and error.options:
        console.print(transitions_table(error.options, title="Available transitions"))
    elif isinstance(error, StateValidationError) and error.errors:
        for message in error.errors:
            console.print(f"  [dim]-[/dim] {message}")


@contextmanager
def reporting_errors() -> Iterator[None]:
    """Turn typed errors into a printed message and exit code 1."""
    try:
        yield
    except PhasekeeperError as e:
        report_error(e)
        raise typer.Exit(code=1) from e


def parse_key_values(pairs: Sequence[str] | None) -> dict[str, Any]:
    """Parse ``key=value`` options; values are read as YAML scalars.

    Raises:
        typer.BadParameter: If an item has no ``=`` or an empty key.
    """
    result: dict[str, Any] = {}
    for pair in pairs or ():
        key, sep, raw = pair.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected key=value, got {pair!r}")
        result[key.strip()] = parse_value(raw)
    return result


def parse_value(raw: str) -> Any:
    """Read a command-line value as a YAML scalar (``true`` -> True, ``3`` -> 3)."""
    try:
        return yaml.safe_load(raw) if raw else ""
    except yaml.YAMLError:
        return raw


def resolve_phase(project: Project, phase: str | None) -> str:
    """Explicit phase, or the phase owning the current state.

    Raises:
        typer.BadParameter: If no phase was given and the current state has none.
    """
    if phase is not None:
        return phase
    current = project.config.phase_for_state(project.current_state)
    if current is None:
        raise typer.BadParameter(
            f"No active phase in state {project.current_state}; pass --phase"
        )
    return current.name
