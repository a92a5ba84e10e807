"""Task commands."""

from __future__ import annotations

from typing import Annotated, Optional

import typer
from rich.table import Table

from phasekeeper.cli.common import console, load_project, reporting_errors
from phasekeeper.state.models import TaskStatus

app = typer.Typer(help="Task commands", no_args_is_help=True)


def _task_phase(project, phase: str | None) -> str:
    if phase is not None:
        return phase
    default = project.config.default_task_phase(project.current_state)
    if default is None:
        raise typer.BadParameter(f"Project type {project.type} has no phase that tracks tasks")
    return default


@app.command()
def add(
    name: Annotated[str, typer.Argument(help="Task description")],
    phase: Annotated[
        Optional[str],
        typer.Option("--phase", "-p", help="Phase (default: current task phase)"),
    ] = None,
    task_id: Annotated[
        Optional[str],
        typer.Option("--id", help="Task id (default: next in sequence)"),
    ] = None,
    agent: Annotated[
        Optional[str],
        typer.Option("--agent", "-a", help="Assignee"),
    ] = None,
) -> None:
    """Add a pending task."""
    with reporting_errors():
        project = load_project()
        task = project.add_task(
            name,
            phase=_task_phase(project, phase),
            task_id=task_id,
            assigned_agent=agent,
        )
        project.save()
    console.print(f"[green]Added task[/green] {task.id} to {task.phase}: {task.name}")


@app.command()
def update(
    task_id: Annotated[str, typer.Argument(help="Task id")],
    status: Annotated[TaskStatus, typer.Option("--status", "-s", help="New status")],
    phase: Annotated[
        Optional[str],
        typer.Option("--phase", "-p", help="Phase (default: current task phase)"),
    ] = None,
) -> None:
    """Change a task's status."""
    with reporting_errors():
        project = load_project()
        task = project.set_task_status(_task_phase(project, phase), task_id, status)
        project.save()
    console.print(f"[green]Task {task.id}[/green] is now {task.status.value}")


@app.command("list")
def list_tasks(
    phase: Annotated[
        Optional[str],
        typer.Option("--phase", "-p", help="Phase (default: current task phase)"),
    ] = None,
) -> None:
    """List tasks of a phase."""
    with reporting_errors():
        project = load_project()
        phase_name = _task_phase(project, phase)
        tasks = project.phase(phase_name).tasks

    if not tasks:
        console.print(f"[dim]No tasks in {phase_name}.[/dim]")
        return
    table = Table(title=f"Tasks ({phase_name})")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Iteration", justify="right")
    table.add_column("Agent")
    for task in tasks:
        table.add_row(task.id, task.name, task.status.value, str(task.iteration), task.assigned_agent or "-")
    console.print(table)
