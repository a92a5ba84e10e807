"""Main CLI entry point for Phasekeeper.

Every command performs one load -> act -> save cycle against the project
state file of the current repository.

Usage:
    phasekeeper new "Add login rate limiting" --branch feat/rate-limit
    phasekeeper status
    phasekeeper advance --list
    phasekeeper advance enable_discovery
    phasekeeper task add "Write limiter middleware"
    phasekeeper log add --action test_run --result success --agent implementer
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import structlog
import typer
from rich.console import Console

from phasekeeper.cli import artifact as artifact_cli
from phasekeeper.cli import log as log_cli
from phasekeeper.cli import phase as phase_cli
from phasekeeper.cli import project as project_cli
from phasekeeper.cli import task as task_cli
from phasekeeper.config import PhasekeeperConfig, load_config
from phasekeeper.engine.registry import ProjectTypeRegistry, register_builtin_types
from phasekeeper.logging import new_correlation_id, setup_logging
from phasekeeper.state.backend import YAMLBackend

app = typer.Typer(
    name="phasekeeper",
    help="Phasekeeper: phase-based project lifecycle tracking",
    no_args_is_help=True,
)

app.command("new")(project_cli.new)
app.command("status")(project_cli.status)
app.command("advance")(project_cli.advance)
app.command("prompt")(project_cli.prompt)

app.add_typer(artifact_cli.app, name="artifact", help="Record and approve artifacts")
app.add_typer(task_cli.app, name="task", help="Manage tasks")
app.add_typer(phase_cli.app, name="phase", help="Inspect and update phases")
app.add_typer(log_cli.app, name="log", help="Record and read the project log")

console = Console()
logger = structlog.get_logger(__name__)


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded Phasekeeper configuration
        registry: Registry holding the built-in project types
    """

    def __init__(self, config: PhasekeeperConfig, registry: ProjectTypeRegistry | None = None):
        self.config = config
        self.registry = registry if registry is not None else register_builtin_types()

    @property
    def state_path(self) -> Path:
        return self.config.project.state_path

    def backend(self) -> YAMLBackend:
        return YAMLBackend(self.state_path)


_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Get the shared application context.

    Raises:
        RuntimeError: If context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: PhasekeeperConfig) -> AppContext:
    global _app_context
    _app_context = AppContext(config)
    return _app_context


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Load configuration, configure logging and initialize the application context."""
    try:
        config = load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1) from e

    if verbose:
        config.logging.level = "DEBUG"
    setup_logging(config.logging)
    new_correlation_id()

    initialize_context(config)
    logger.debug("cli_started", state_path=str(config.project.state_path))


if __name__ == "__main__":
    app()
