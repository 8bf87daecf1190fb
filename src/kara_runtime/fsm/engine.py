"""Single-step execution of state machine programs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from kara_runtime.errors import ExecutionError, InvalidState, KaraError, NoTransition, StepLimitExceeded
from kara_runtime.fsm.model import FSMProgram, Transition
from kara_runtime.vocabulary import Command, apply_command, read_sensor
from kara_runtime.world.model import World
from kara_runtime.world.sensors import describe_surroundings

DEFAULT_FSM_MAX_STEPS = 10_000

logger = logging.getLogger("kara_runtime.fsm")


@dataclass(frozen=True, slots=True)
class FSMStepResult:
    world: World
    next_state_id: str
    stopped: bool = False
    matched_transition_id: str | None = None
    error: KaraError | None = None


def transition_matches(world: World, transition: Transition) -> bool:
    """True when every checked sensor reads the value the transition requires."""
    for sensor, expected in transition.condition.items():
        if expected is None:
            continue
        if read_sensor(world, sensor) != expected:
            return False
    return True


def find_matching_transition(world: World, program: FSMProgram, state_id: str) -> Transition | None:
    """First transition of ``state_id`` in declaration order that matches ``world``."""
    state = program.get_state(state_id)
    if state is None or state_id == program.stop_state_id:
        return None
    for transition in state.transitions:
        if transition_matches(world, transition):
            return transition
    return None


def apply_actions(world: World, actions: tuple[Command, ...], *, push_mushrooms: bool = False) -> World:
    """Apply every action or none; the first failure propagates."""
    result = world
    for command in actions:
        result = apply_command(result, command, push_mushrooms=push_mushrooms)
    return result


def step(
    world: World,
    program: FSMProgram,
    current_state_id: str,
    *,
    push_mushrooms: bool = False,
) -> FSMStepResult:
    """Take one transition from ``current_state_id``.

    Errors are returned, never raised. On any error the world in the result is
    the world that was passed in.
    """
    state = program.get_state(current_state_id)
    if state is None:
        error = InvalidState(
            "Cannot find the current state. This might happen if you deleted a state while the "
            "program was running. Try resetting the program.",
            state_id=current_state_id,
        )
        return FSMStepResult(world=world, next_state_id=current_state_id, error=error)

    if current_state_id == program.stop_state_id:
        return FSMStepResult(world=world, next_state_id=current_state_id, stopped=True)

    transition = find_matching_transition(world, program, current_state_id)
    if transition is None:
        situation = describe_surroundings(world)
        state_name = program.state_name(current_state_id)
        error = NoTransition(
            f'Kara is stuck in state "{state_name}"! No transition matches the current situation: '
            f"{situation}.\n\nTip: Add a transition that handles this case, or use \"yes or no\" "
            "(wildcard) for sensor conditions you don't care about.",
            state_id=current_state_id,
            state_name=state_name,
            situation=situation,
        )
        logger.warning("fsm_stuck", extra={"state_id": current_state_id, "situation": situation})
        return FSMStepResult(world=world, next_state_id=current_state_id, error=error)

    if program.get_state(transition.target_state_id) is None:
        error = InvalidState(
            f'Transition "{transition.id}" points to a missing state. Reconnect it to an existing state.',
            state_id=current_state_id,
            transition_id=transition.id,
            target_state_id=transition.target_state_id,
        )
        return FSMStepResult(
            world=world,
            next_state_id=current_state_id,
            matched_transition_id=transition.id,
            error=error,
        )

    try:
        new_world = apply_actions(world, transition.actions, push_mushrooms=push_mushrooms)
    except ExecutionError as exc:
        exc.context.setdefault("state_id", current_state_id)
        exc.context.setdefault("transition_id", transition.id)
        return FSMStepResult(
            world=world,
            next_state_id=current_state_id,
            matched_transition_id=transition.id,
            error=exc,
        )

    stopped = transition.target_state_id == program.stop_state_id
    logger.debug(
        "fsm_step",
        extra={
            "state_id": current_state_id,
            "transition_id": transition.id,
            "next_state_id": transition.target_state_id,
            "stopped": stopped,
        },
    )
    return FSMStepResult(
        world=new_world,
        next_state_id=transition.target_state_id,
        stopped=stopped,
        matched_transition_id=transition.id,
    )


def validate_fsm_program(program: FSMProgram) -> None:
    """Raise ``InvalidState`` when ``program`` cannot be started."""
    ids = [state.id for state in program.states]
    duplicates = sorted({state_id for state_id in ids if ids.count(state_id) > 1})
    if duplicates:
        raise InvalidState(f"State ids must be unique: {', '.join(duplicates)}", state_ids=duplicates)

    if not program.start_state_id:
        raise InvalidState('No start state set. Click "Set as Start" on a state to begin.')
    if program.get_state(program.start_state_id) is None:
        raise InvalidState("Start state not found", state_id=program.start_state_id)

    stop_state = program.get_state(program.stop_state_id)
    if stop_state is None:
        raise InvalidState("Stop state not found", state_id=program.stop_state_id)
    if stop_state.transitions:
        raise InvalidState("The stop state cannot have outgoing transitions.", state_id=program.stop_state_id)

    for state in program.states:
        for transition in state.transitions:
            if program.get_state(transition.target_state_id) is None:
                raise InvalidState(
                    f'Transition "{transition.id}" of state "{state.name}" points to a missing state.',
                    state_id=state.id,
                    transition_id=transition.id,
                    target_state_id=transition.target_state_id,
                )

    if not any(state.transitions for state in program.states if state.id != program.stop_state_id):
        raise InvalidState("No transitions defined. Add at least one transition to a state.")


@dataclass(slots=True)
class FSMRunResult:
    world: World
    state_id: str
    stopped: bool
    steps: int
    transitions: list[str] = field(default_factory=list)
    error: KaraError | None = None


class FSMRun:
    """Caller-driven session over one program, bounded by a step ceiling."""

    def __init__(
        self,
        program: FSMProgram,
        world: World,
        *,
        max_steps: int = DEFAULT_FSM_MAX_STEPS,
        push_mushrooms: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        validate_fsm_program(program)
        self._program = program
        self._world = world
        self._state_id: str = program.start_state_id or program.stop_state_id
        self._max_steps = max_steps
        self._push_mushrooms = push_mushrooms
        self._logger = logger or logging.getLogger("kara_runtime.fsm")
        self._steps = 0
        self._stopped = False
        self._error: KaraError | None = None
        self._transitions: list[str] = []

    @property
    def world(self) -> World:
        return self._world

    @property
    def state_id(self) -> str:
        return self._state_id

    @property
    def steps(self) -> int:
        return self._steps

    @property
    def finished(self) -> bool:
        return self._stopped or self._error is not None

    def step(self) -> FSMStepResult:
        if self.finished:
            return FSMStepResult(
                world=self._world,
                next_state_id=self._state_id,
                stopped=self._stopped,
                error=self._error,
            )

        if self._steps >= self._max_steps:
            self._error = StepLimitExceeded(
                f"The state machine took more than {self._max_steps} steps and was stopped. "
                "Check for transitions that loop forever.",
                max_steps=self._max_steps,
                state_id=self._state_id,
            )
            self._logger.warning("fsm_step_limit", extra={"steps": self._steps, "state_id": self._state_id})
            return FSMStepResult(world=self._world, next_state_id=self._state_id, error=self._error)

        self._steps += 1
        result = step(self._world, self._program, self._state_id, push_mushrooms=self._push_mushrooms)
        self._world = result.world
        self._state_id = result.next_state_id
        self._stopped = result.stopped
        self._error = result.error
        if result.matched_transition_id is not None and result.error is None:
            self._transitions.append(result.matched_transition_id)
        if result.stopped:
            self._logger.info("fsm_stopped", extra={"steps": self._steps})
        return result

    def run(self) -> FSMRunResult:
        while not self.finished:
            self.step()
        return FSMRunResult(
            world=self._world,
            state_id=self._state_id,
            stopped=self._stopped,
            steps=self._steps,
            transitions=list(self._transitions),
            error=self._error,
        )
