"""Project log commands."""

from __future__ import annotations

from typing import Annotated, Optional

import typer

from phasekeeper.cli.common import console, load_project, reporting_errors
from phasekeeper.state.log import LogAction, LogResult

app = typer.Typer(help="Project log commands", no_args_is_help=True)


@app.command()
def add(
    action: Annotated[LogAction, typer.Option("--action", "-a", help="Action performed")],
    result: Annotated[LogResult, typer.Option("--result", "-r", help="Result of the action")],
    agent: Annotated[str, typer.Option("--agent", "-g", help="Who performed the action")],
    task_id: Annotated[
        Optional[str],
        typer.Option("--task", "-t", help="Task the entry belongs to"),
    ] = None,
    files: Annotated[
        Optional[list[str]],
        typer.Option("--file", "-f", help="File touched (repeatable)"),
    ] = None,
    notes: Annotated[str, typer.Option("--notes", "-n", help="Free-form notes")] = "",
) -> None:
    """Append an entry to the project log."""
    with reporting_errors():
        project = load_project()
        project.log(action, result, agent=agent, task_id=task_id, files=files or (), notes=notes)
    console.print(f"[green]Logged[/green] {action.value} ({result.value})")


@app.command()
def show() -> None:
    """Print the project log."""
    with reporting_errors():
        project = load_project()
        text = project.read_log()
    if not text:
        console.print("[dim]The project log is empty.[/dim]")
        return
    console.print(text, markup=False, highlight=False)
