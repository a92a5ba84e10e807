"""Loading, creating and naming projects."""

from __future__ import annotations

import structlog

from phasekeeper.engine.errors import ProjectExistsError, StateValidationError
from phasekeeper.engine.registry import ProjectTypeRegistry, register_builtin_types
from phasekeeper.engine.types import NO_PROJECT, PROJECT_INIT
from phasekeeper.state.backend import Backend
from phasekeeper.state.models import ArtifactState, ProjectState, StatechartState
from phasekeeper.state.project import Project
from phasekeeper.state.validate import validate_structure

logger = structlog.get_logger(__name__)

MAX_NAME_LENGTH = 50

# Branch prefix -> project type. First match wins; anything else is "standard".
BRANCH_TYPE_PREFIXES: tuple[tuple[str, str], ...] = (("explore/", "exploration"),)


def _registry(registry: ProjectTypeRegistry | None) -> ProjectTypeRegistry:
    return registry if registry is not None else register_builtin_types()


def _is_finished(backend: Backend) -> bool:
    """True if the stored project is back at NoProject.

    An unreadable or malformed document counts as unfinished, so it is
    never replaced without ``overwrite``.
    """
    try:
        data = backend.load()
    except StateValidationError:
        return False
    statechart = data.get("statechart")
    if not isinstance(statechart, dict):
        return False
    return statechart.get("current_state") == str(NO_PROJECT)


def load(backend: Backend, registry: ProjectTypeRegistry | None = None) -> Project:
    """Load a project from ``backend``.

    The document is validated structurally, its type resolved in the
    registry, a machine bound to the new Project, and the per-phase
    metadata and current-state invariants checked.

    Raises:
        ProjectNotFoundError: If nothing is stored.
        StateValidationError: If the document is invalid.
        UnknownProjectTypeError: If the project type is not registered.
    """
    data = backend.load()
    state = validate_structure(data)
    config = _registry(registry).get(state.type)
    project = Project(state, config, backend)
    config.validate(project)
    logger.debug(
        "project_loaded",
        project=project.name,
        project_type=project.type,
        state=str(project.current_state),
    )
    return project


def save(project: Project) -> None:
    """Persist ``project``. See Project.save."""
    project.save()


def create(
    backend: Backend,
    project_type: str,
    *,
    name: str | None = None,
    branch: str = "",
    description: str = "",
    initial_inputs: dict[str, list[ArtifactState]] | None = None,
    registry: ProjectTypeRegistry | None = None,
    overwrite: bool = False,
) -> Project:
    """Create, initialise and persist a new project.

    Phase records are created by the type's initializer, then
    ``project_init`` is fired to enter the first phase. A stored project
    that has finished its cycle (back at ``NoProject``) is replaced along
    with its log, so one repository can host projects one after another.

    Args:
        backend: Where to store the project.
        project_type: Registered type name.
        name: Project name; derived from the description (or branch) if omitted.
        branch: Git branch the project belongs to.
        description: Free-form description.
        initial_inputs: Phase name -> artifacts to seed.
        registry: Registry to resolve ``project_type`` in.
        overwrite: Replace an existing project even if it is still active.

    Raises:
        ProjectExistsError: If an active project is stored and not overwriting.
        UnknownProjectTypeError: If ``project_type`` is not registered.
    """
    replacing = backend.exists()
    if replacing and not overwrite and not _is_finished(backend):
        raise ProjectExistsError(backend.describe())

    config = _registry(registry).get(project_type)
    project_name = name or generate_project_name(description) or generate_project_name(
        branch.rsplit("/", 1)[-1]
    ) or "project"

    state = ProjectState(
        name=project_name,
        type=project_type,
        branch=branch,
        description=description,
        statechart=StatechartState(current_state=str(NO_PROJECT)),
    )
    project = Project(state, config, backend)
    config.initialize(project, initial_inputs)
    project.machine.fire(PROJECT_INIT)
    if replacing:
        backend.delete()
        logger.info("project_replaced", project=project.name, location=backend.describe())
    project.save()

    logger.info(
        "project_created",
        project=project.name,
        project_type=project_type,
        state=str(project.current_state),
    )
    return project


def detect_project_type(branch: str) -> str:
    """Guess the project type from a branch name."""
    for prefix, project_type in BRANCH_TYPE_PREFIXES:
        if branch.startswith(prefix):
            return project_type
    return "standard"


def generate_project_name(description: str) -> str:
    """Convert a description into a kebab-case project name.

    Truncates to 50 characters first, lowercases, turns runs of spaces and
    underscores into a single hyphen, drops every other character and strips
    leading/trailing hyphens.
    """
    result: list[str] = []
    for char in description[:MAX_NAME_LENGTH]:
        if char in " _":
            if result and result[-1] != "-":
                result.append("-")
        elif "a" <= char <= "z" or "0" <= char <= "9":
            result.append(char)
        elif "A" <= char <= "Z":
            result.append(char.lower())
    return "".join(result).rstrip("-")
