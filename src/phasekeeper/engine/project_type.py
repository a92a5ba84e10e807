"""Project type configuration and its builder.

A ProjectTypeConfig is the compiled, immutable description of one project
type: which phases it has, which states each phase owns, every transition
with its guard/action templates, the per-state event determiners used by
Advance, and the per-state prompt generators.

It is built once per process (see ``phasekeeper.engine.registry``) and then
bound to any number of projects via ``build_machine``; the templates are
closed over the project at that point and nowhere else.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel

from phasekeeper.engine.branching import BranchConfig, BranchOption
from phasekeeper.engine.errors import ConfigurationError, StateValidationError
from phasekeeper.engine.machine import BoundAction, StateMachine, bind_action, bind_guard
from phasekeeper.engine.transitions import TransitionConfig
from phasekeeper.engine.types import (
    NO_PROJECT,
    ActionTemplate,
    Event,
    EventDeterminer,
    GuardTemplate,
    Initializer,
    PromptGenerator,
    State,
    TransitionInfo,
)

if TYPE_CHECKING:
    from phasekeeper.state.models import ArtifactState
    from phasekeeper.state.project import Project

logger = structlog.get_logger(__name__)


@dataclass
class PhaseConfig:
    """Static configuration of a phase within a project type.

    Attributes:
        name: Phase name; also the key of its record in the project state.
        start_state: State whose entry marks the phase in progress.
        end_state: State whose exit marks the phase completed (or failed).
        states: Every state owned by the phase.
        artifact_types: Allowed artifact type tags (empty allows any).
        supports_tasks: Whether tasks may be recorded on this phase.
        supports_artifacts: Whether artifacts may be recorded on this phase.
        metadata_schema: Pydantic model validating the metadata bag.
    """

    name: str
    start_state: State
    end_state: State
    states: tuple[State, ...] = ()
    artifact_types: tuple[str, ...] = ()
    supports_tasks: bool = False
    supports_artifacts: bool = True
    metadata_schema: type[BaseModel] | None = None

    def owns(self, state: State) -> bool:
        return state in self.states


@dataclass
class ProjectTypeConfig:
    """Compiled configuration for one project type. Build with ProjectTypeConfigBuilder."""

    name: str
    initial_state: State
    phases: dict[str, PhaseConfig]
    transitions: list[TransitionConfig]
    determiners: dict[State, EventDeterminer]
    branches: dict[State, BranchConfig]
    prompts: dict[State, PromptGenerator] = field(default_factory=dict)
    orchestrator_prompt_generator: PromptGenerator | None = None
    initializer: Initializer | None = None

    # ------------------------------------------------------------------
    # Machine construction
    # ------------------------------------------------------------------

    def build_machine(self, project: Project, state: State | None = None) -> StateMachine:
        """Build a state machine bound to ``project``, positioned at ``state``.

        Every guard and action template is closed over ``project`` here.
        Phase bookkeeping actions are attached to transitions that cross a
        phase boundary: leaving a phase's end state marks it completed (or
        failed), entering a phase's start state marks it in progress.
        """
        machine = StateMachine(state if state is not None else self.initial_state)
        for tc in self.transitions:
            on_exit: list[BoundAction] = []
            on_entry: list[BoundAction] = []
            if tc.on_exit is not None:
                on_exit.append(bind_action(tc.on_exit, project))
            on_exit.extend(self._exit_bookkeeping(tc, project))
            on_entry.extend(self._entry_bookkeeping(tc, project))
            if tc.on_entry is not None:
                on_entry.append(bind_action(tc.on_entry, project))

            machine.configure(tc.from_state).permit(
                tc.event,
                tc.to_state,
                bind_guard(tc.guard, project) if tc.guard is not None else None,
                description=tc.description,
                on_exit=on_exit,
                on_entry=on_entry,
            )
        return machine

    def _exit_bookkeeping(self, tc: TransitionConfig, project: Project) -> list[BoundAction]:
        phase = self.phase_for_state(tc.from_state)
        if phase is None or phase.end_state != tc.from_state or phase.owns(tc.to_state):
            return []
        name = phase.name
        if tc.failed_phase == name:
            return [BoundAction(f"mark {name} failed", lambda: project.mark_phase_failed(name))]
        return [BoundAction(f"mark {name} completed", lambda: project.mark_phase_completed(name))]

    def _entry_bookkeeping(self, tc: TransitionConfig, project: Project) -> list[BoundAction]:
        phase = self.phase_for_state(tc.to_state)
        if phase is None or phase.start_state != tc.to_state or phase.owns(tc.from_state):
            return []
        name = phase.name
        return [BoundAction(f"mark {name} in_progress", lambda: project.mark_phase_in_progress(name))]

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def determiner_for(self, state: State) -> EventDeterminer | None:
        return self.determiners.get(State(state))

    def is_branching_state(self, state: State) -> bool:
        return State(state) in self.branches

    def transitions_from(self, state: State) -> list[TransitionInfo]:
        """Static info for every transition leaving ``state``, ordered by event."""
        infos = [tc.info() for tc in self.transitions if tc.from_state == state]
        return sorted(infos, key=lambda i: i.event)

    def get_transition(self, from_state: State, event: Event) -> TransitionConfig | None:
        for tc in self.transitions:
            if tc.from_state == from_state and tc.event == event:
                return tc
        return None

    def phase_for_state(self, state: State) -> PhaseConfig | None:
        for phase in self.phases.values():
            if phase.owns(state):
                return phase
        return None

    def is_phase_start_state(self, phase_name: str, state: State) -> bool:
        phase = self.phases.get(phase_name)
        return phase is not None and phase.start_state == state

    def is_phase_end_state(self, phase_name: str, state: State) -> bool:
        phase = self.phases.get(phase_name)
        return phase is not None and phase.end_state == state

    def task_phases(self) -> list[str]:
        return sorted(name for name, phase in self.phases.items() if phase.supports_tasks)

    def phase_supports_tasks(self, phase_name: str) -> bool:
        phase = self.phases.get(phase_name)
        return phase is not None and phase.supports_tasks

    def default_task_phase(self, state: State) -> str | None:
        """Phase to attach new tasks to when the caller did not name one."""
        phase = self.phase_for_state(state)
        if phase is not None and phase.supports_tasks:
            return phase.name
        candidates = self.task_phases()
        return candidates[0] if candidates else None

    def states(self) -> list[State]:
        seen: set[State] = {self.initial_state}
        for tc in self.transitions:
            seen.update((tc.from_state, tc.to_state))
        return sorted(seen)

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    def prompt_for(self, project: Project, state: State | None = None) -> str:
        """Render the guidance prompt registered for ``state`` (default: current)."""
        generator = self.prompts.get(State(state if state is not None else project.current_state))
        if generator is None:
            return ""
        return generator(project)

    def orchestrator_prompt(self, project: Project) -> str:
        if self.orchestrator_prompt_generator is None:
            return ""
        return self.orchestrator_prompt_generator(project)

    # ------------------------------------------------------------------
    # Initialisation and validation
    # ------------------------------------------------------------------

    def initialize(
        self,
        project: Project,
        initial_inputs: dict[str, list[ArtifactState]] | None = None,
    ) -> None:
        """Create phase records for a new project.

        Without a custom initializer, every configured phase gets a pending
        record, and ``initial_inputs`` are attached as its first artifacts.
        """
        if self.initializer is not None:
            self.initializer(project, initial_inputs)
            return
        for name in self.phases:
            record = project.ensure_phase(name)
            for artifact in (initial_inputs or {}).get(name, []):
                record.artifacts.append(artifact)

    def validate(self, project: Project) -> None:
        """Validate per-phase artifact types, metadata schemas and the current state.

        Raises:
            StateValidationError: On the first violating phase.
        """
        # Imported here: the state layer depends on the engine, not the reverse.
        from phasekeeper.state.validate import validate_artifact_types, validate_metadata

        current = project.current_state
        if current != NO_PROJECT and self.phase_for_state(current) is None:
            raise StateValidationError(
                f"State {current} is not owned by any phase of project type {self.name}"
            )

        for name, phase_config in self.phases.items():
            record = project.phases.get(name)
            if record is None:
                continue
            validate_artifact_types(record.artifacts, phase_config.artifact_types, name)
            if record.tasks and not phase_config.supports_tasks:
                raise StateValidationError(f"Phase {name} does not support tasks")
            if phase_config.metadata_schema is not None:
                validate_metadata(record.metadata, phase_config.metadata_schema, name)


class ProjectTypeConfigBuilder:
    """Fluent builder for ProjectTypeConfig.

    Example:
        >>> config = (
        ...     ProjectTypeConfigBuilder("standard")
        ...     .with_phase("review", start_state=REVIEW_ACTIVE)
        ...     .add_transition(REVIEW_ACTIVE, NO_PROJECT, REVIEW_PASS)
        ...     .on_advance(REVIEW_ACTIVE, lambda p: REVIEW_PASS)
        ...     .build()
        ... )
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._phases: dict[str, PhaseConfig] = {}
        self._initial_state = NO_PROJECT
        self._transitions: list[TransitionConfig] = []
        self._determiners: dict[State, EventDeterminer] = {}
        self._branches: dict[State, BranchConfig] = {}
        self._prompts: dict[State, PromptGenerator] = {}
        self._orchestrator_prompt: PromptGenerator | None = None
        self._initializer: Initializer | None = None

    def with_phase(
        self,
        name: str,
        *,
        start_state: State | str,
        end_state: State | str | None = None,
        states: Iterable[State | str] = (),
        artifact_types: Iterable[str] = (),
        supports_tasks: bool = False,
        supports_artifacts: bool = True,
        metadata_schema: type[BaseModel] | None = None,
    ) -> ProjectTypeConfigBuilder:
        """Declare a phase and the states it owns."""
        if name in self._phases:
            raise ConfigurationError(f"Phase {name} declared twice in project type {self.name}")
        start = State(start_state)
        end = State(end_state) if end_state is not None else start
        owned = [State(s) for s in states]
        for s in (start, end):
            if s not in owned:
                owned.append(s)
        self._phases[name] = PhaseConfig(
            name=name,
            start_state=start,
            end_state=end,
            states=tuple(owned),
            artifact_types=tuple(artifact_types),
            supports_tasks=supports_tasks,
            supports_artifacts=supports_artifacts,
            metadata_schema=metadata_schema,
        )
        return self

    def set_initial_state(self, state: State | str) -> ProjectTypeConfigBuilder:
        self._initial_state = State(state)
        return self

    def add_transition(
        self,
        from_state: State | str,
        to_state: State | str,
        event: Event | str,
        *,
        guard: GuardTemplate | None = None,
        on_entry: ActionTemplate | None = None,
        on_exit: ActionTemplate | None = None,
        description: str = "",
        failed_phase: str | None = None,
    ) -> ProjectTypeConfigBuilder:
        self._transitions.append(
            TransitionConfig(
                from_state=State(from_state),
                to_state=State(to_state),
                event=Event(event),
                guard=guard,
                on_entry=on_entry,
                on_exit=on_exit,
                description=description,
                failed_phase=failed_phase,
            )
        )
        return self

    def on_advance(
        self,
        state: State | str,
        determiner: EventDeterminer,
    ) -> ProjectTypeConfigBuilder:
        """Register the function Advance uses to pick the event in ``state``."""
        state = State(state)
        if state in self._branches:
            raise ConfigurationError(
                f"State {state} already has a branch; cannot also register an OnAdvance determiner"
            )
        if state in self._determiners:
            raise ConfigurationError(f"State {state} already has an OnAdvance determiner")
        self._determiners[state] = determiner
        return self

    def add_branch(self, from_state: State | str, *options: BranchOption) -> ProjectTypeConfigBuilder:
        """Add (or extend) a state-determined branch on ``from_state``.

        Calling this again for the same state appends paths to the existing
        table; the discriminator may be omitted on later calls.
        """
        from_state = State(from_state)
        if from_state in self._determiners:
            raise ConfigurationError(
                f"State {from_state} already has an OnAdvance determiner; cannot also branch"
            )
        config = self._branches.get(from_state)
        if config is None:
            config = BranchConfig(from_state=from_state)
            self._branches[from_state] = config
        for option in options:
            option(config)
        return self

    def with_prompt(self, state: State | str, generator: PromptGenerator) -> ProjectTypeConfigBuilder:
        self._prompts[State(state)] = generator
        return self

    def with_orchestrator_prompt(self, generator: PromptGenerator) -> ProjectTypeConfigBuilder:
        self._orchestrator_prompt = generator
        return self

    def with_initializer(self, initializer: Initializer) -> ProjectTypeConfigBuilder:
        self._initializer = initializer
        return self

    def phase(self, name: str) -> PhaseConfig:
        try:
            return self._phases[name]
        except KeyError:
            raise ConfigurationError(f"Phase {name} not declared in project type {self.name}") from None

    def build(self) -> ProjectTypeConfig:
        """Validate the configuration and compile it.

        Raises:
            ConfigurationError: If the configuration is inconsistent.
        """
        transitions = list(self._transitions)
        determiners = dict(self._determiners)

        for state, branch in self._branches.items():
            branch.validate()
            manual = [tc.event for tc in transitions if tc.from_state == state]
            if manual:
                raise ConfigurationError(
                    f"State {state} has a branch table and manually added transitions "
                    f"({', '.join(sorted(manual))}); declare them as branch paths instead"
                )
        for state, branch in self._branches.items():
            transitions.extend(branch.transitions())
            determiners[state] = branch.determine

        seen: dict[tuple[State, Event], TransitionConfig] = {}
        for tc in transitions:
            key = (tc.from_state, tc.event)
            if key in seen:
                raise ConfigurationError(
                    f"Event {tc.event} from state {tc.from_state} is configured twice "
                    f"(to {seen[key].to_state} and {tc.to_state})"
                )
            seen[key] = tc

        sources = {tc.from_state for tc in transitions}
        for state in self._determiners:
            if state not in sources:
                raise ConfigurationError(
                    f"OnAdvance determiner registered for state {state}, which has no transitions"
                )

        self._check_phase_ownership(transitions)

        logger.debug(
            "project_type_built",
            project_type=self.name,
            phases=list(self._phases),
            transitions=len(transitions),
            branches=[str(s) for s in self._branches],
        )
        return ProjectTypeConfig(
            name=self.name,
            initial_state=self._initial_state,
            phases=dict(self._phases),
            transitions=transitions,
            determiners=determiners,
            branches=dict(self._branches),
            prompts=dict(self._prompts),
            orchestrator_prompt_generator=self._orchestrator_prompt,
            initializer=self._initializer,
        )

    def _check_phase_ownership(self, transitions: list[TransitionConfig]) -> None:
        owner: dict[State, str] = {}
        for phase in self._phases.values():
            for state in phase.states:
                if state == NO_PROJECT:
                    raise ConfigurationError(f"Phase {phase.name} cannot own {NO_PROJECT}")
                if state in owner:
                    raise ConfigurationError(
                        f"State {state} owned by both {owner[state]} and {phase.name}"
                    )
                owner[state] = phase.name
        if not self._phases:
            return
        for tc in transitions:
            for state in (tc.from_state, tc.to_state):
                if state != NO_PROJECT and state not in owner:
                    raise ConfigurationError(
                        f"State {state} (event {tc.event}) is not owned by any phase "
                        f"of project type {self.name}"
                    )


def fixed_event(event: Event | str) -> Callable[[Any], Event]:
    """Determiner that always selects ``event``."""
    selected = Event(event)

    def determiner(_project: Any) -> Event:
        return selected

    return determiner
