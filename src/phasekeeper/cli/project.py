"""Project lifecycle commands: new, status, advance, prompt."""

from __future__ import annotations

from typing import Annotated, Optional

import typer
from rich.panel import Panel
from rich.table import Table

from phasekeeper.cli.common import (
    console,
    load_project,
    reporting_errors,
    transitions_table,
)
from phasekeeper.engine.advance import advance as advance_project
from phasekeeper.engine.advance import dry_run, list_transitions
from phasekeeper.state.loader import create, detect_project_type


def new(
    description: Annotated[str, typer.Argument(help="What the project is about")] = "",
    project_type: Annotated[
        Optional[str],
        typer.Option("--type", "-t", help="Project type (default: detected from branch)"),
    ] = None,
    name: Annotated[
        Optional[str],
        typer.Option("--name", "-n", help="Project name (default: derived from description)"),
    ] = None,
    branch: Annotated[
        str,
        typer.Option("--branch", "-b", help="Git branch the project lives on"),
    ] = "",
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Replace an existing project"),
    ] = False,
) -> None:
    """Create a new project and enter its first phase."""
    from phasekeeper.main import get_app_context

    ctx = get_app_context()
    if project_type is None:
        project_type = detect_project_type(branch) if branch else ctx.config.project.default_type

    with reporting_errors():
        project = create(
            ctx.backend(),
            project_type,
            name=name,
            branch=branch,
            description=description,
            registry=ctx.registry,
            overwrite=force,
        )

    console.print(
        Panel(
            f"[green]Project created![/green]\n\n"
            f"[bold]Name:[/bold] {project.name}\n"
            f"[bold]Type:[/bold] {project.type}\n"
            f"[bold]State:[/bold] {project.current_state}\n"
            f"[bold]File:[/bold] {ctx.state_path}",
            title="Project Created",
            border_style="green",
        )
    )


def status() -> None:
    """Show the current state and phase summary."""
    with reporting_errors():
        project = load_project()

    console.print(
        Panel(
            f"[bold]Name:[/bold] {project.name}\n"
            f"[bold]Type:[/bold] {project.type}\n"
            f"[bold]Branch:[/bold] {project.branch or '-'}\n"
            f"[bold]State:[/bold] [cyan]{project.current_state}[/cyan]",
            title="Project",
            border_style="cyan",
        )
    )

    table = Table(title="Phases")
    table.add_column("Phase", style="cyan")
    table.add_column("Status")
    table.add_column("Iteration", justify="right")
    table.add_column("Artifacts", justify="right")
    table.add_column("Tasks", justify="right")
    for phase_name, record in project.phases.items():
        resolved = sum(1 for t in record.tasks if t.status.is_resolved)
        table.add_row(
            phase_name,
            record.status.value if record.enabled else f"{record.status.value} (disabled)",
            str(record.iteration),
            f"{sum(a.approved for a in record.artifacts)}/{len(record.artifacts)}",
            f"{resolved}/{len(record.tasks)}" if record.tasks else "-",
        )
    console.print(table)


def advance(
    event: Annotated[
        Optional[str],
        typer.Argument(help="Event to fire (default: chosen from the project state)"),
    ] = None,
    list_only: Annotated[
        bool,
        typer.Option("--list", "-l", help="List transitions from the current state"),
    ] = False,
    dry: Annotated[
        bool,
        typer.Option("--dry-run", help="Check whether EVENT would fire, without firing it"),
    ] = False,
) -> None:
    """Move the project to its next state."""
    if list_only and event is not None:
        console.print("[red]Error:[/red] cannot specify event argument with --list flag")
        raise typer.Exit(code=1)
    if list_only and dry:
        console.print("[red]Error:[/red] cannot use --list and --dry-run together")
        raise typer.Exit(code=1)
    if dry and event is None:
        console.print("[red]Error:[/red] --dry-run requires an event argument")
        raise typer.Exit(code=1)

    with reporting_errors():
        project = load_project()

        if list_only:
            options = list_transitions(project)
            console.print(f"Current state: [cyan]{project.current_state}[/cyan]")
            if not options:
                console.print("[dim]No transitions from this state.[/dim]")
                return
            console.print(transitions_table(options))
            return

        if dry and event is not None:
            result = dry_run(project, event)
            if result.valid and result.permitted:
                console.print(
                    f"[green]OK:[/green] {result.event} would move "
                    f"{result.from_state} -> {result.to_state}"
                )
                return
            console.print(f"[yellow]Would fail:[/yellow] {result.reason}")
            raise typer.Exit(code=1)

        report = advance_project(project, event)

    how = " (determined)" if report.determined else ""
    console.print(
        f"[green]Advanced[/green] {report.from_state} -> [cyan]{report.to_state}[/cyan] "
        f"via {report.event}{how}"
    )


def prompt(
    orchestrator: Annotated[
        bool,
        typer.Option("--orchestrator", "-o", help="Show the project overview prompt instead"),
    ] = False,
) -> None:
    """Print guidance for the current state."""
    with reporting_errors():
        project = load_project()
        text = (
            project.config.orchestrator_prompt(project)
            if orchestrator
            else project.config.prompt_for(project)
        )

    if not text:
        console.print(f"[dim]No prompt for state {project.current_state}.[/dim]")
        return
    console.print(text, markup=False, highlight=False)
