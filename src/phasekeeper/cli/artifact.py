"""Artifact commands."""

from __future__ import annotations

from typing import Annotated, Optional

import typer

from phasekeeper.cli.common import (
    console,
    load_project,
    parse_key_values,
    reporting_errors,
    resolve_phase,
)

app = typer.Typer(help="Artifact commands", no_args_is_help=True)


@app.command()
def add(
    path: Annotated[str, typer.Argument(help="Artifact path, relative to the state directory")],
    artifact_type: Annotated[str, typer.Option("--type", "-t", help="Artifact type tag")],
    phase: Annotated[
        Optional[str],
        typer.Option("--phase", "-p", help="Phase (default: current phase)"),
    ] = None,
    approved: Annotated[
        bool,
        typer.Option("--approved", help="Record the artifact as already approved"),
    ] = False,
    meta: Annotated[
        Optional[list[str]],
        typer.Option("--meta", "-m", help="Metadata as key=value (repeatable)"),
    ] = None,
) -> None:
    """Record an artifact on a phase."""
    metadata = parse_key_values(meta)
    with reporting_errors():
        project = load_project()
        phase_name = resolve_phase(project, phase)
        project.add_artifact(phase_name, path, artifact_type, approved=approved, metadata=metadata)
        project.save()
    console.print(f"[green]Added[/green] {artifact_type} artifact {path} to {phase_name}")


@app.command()
def approve(
    path: Annotated[str, typer.Argument(help="Artifact path")],
    phase: Annotated[
        Optional[str],
        typer.Option("--phase", "-p", help="Phase (default: current phase)"),
    ] = None,
) -> None:
    """Approve an artifact."""
    with reporting_errors():
        project = load_project()
        phase_name = resolve_phase(project, phase)
        project.approve_artifact(phase_name, path)
        project.save()
    console.print(f"[green]Approved[/green] {path} in {phase_name}")
