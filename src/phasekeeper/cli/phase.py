"""Phase commands."""

from __future__ import annotations

from typing import Annotated

import typer

from phasekeeper.cli.common import console, load_project, parse_value, reporting_errors

app = typer.Typer(help="Phase commands", no_args_is_help=True)


@app.command("set")
def set_metadata(
    phase: Annotated[str, typer.Argument(help="Phase name")],
    key: Annotated[str, typer.Argument(help="Metadata key")],
    value: Annotated[str, typer.Argument(help="Value, read as YAML (true, 3, text)")],
) -> None:
    """Set a metadata field on a phase (e.g. tasks_approved, project_deleted)."""
    parsed = parse_value(value)
    with reporting_errors():
        project = load_project()
        project.set_phase_metadata(phase, key, parsed)
        project.save()
    console.print(f"[green]Set[/green] {phase}.{key} = {parsed!r}")


@app.command()
def show(phase: Annotated[str, typer.Argument(help="Phase name")]) -> None:
    """Show a phase record."""
    with reporting_errors():
        project = load_project()
        record = project.phase(phase)
    console.print(record.model_dump(mode="json", exclude_none=True))
