"""State machine programs: states, guarded transitions and a designated stop state."""

from __future__ import annotations

from dataclasses import dataclass, field

from kara_runtime.vocabulary import Command, Sensor

STOP_STATE_ID = "stop"


@dataclass(frozen=True, slots=True)
class Transition:
    """Guarded edge. ``None`` in ``condition`` means the sensor is not checked."""

    id: str
    target_state_id: str
    condition: dict[Sensor, bool | None] = field(default_factory=dict)
    actions: tuple[Command, ...] = ()

    def required(self) -> dict[Sensor, bool]:
        return {sensor: value for sensor, value in self.condition.items() if value is not None}


@dataclass(frozen=True, slots=True)
class State:
    id: str
    name: str
    transitions: tuple[Transition, ...] = ()
    active_sensors: tuple[Sensor, ...] = ()
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True, slots=True)
class FSMProgram:
    states: tuple[State, ...]
    start_state_id: str | None = None
    stop_state_id: str = STOP_STATE_ID

    def get_state(self, state_id: str | None) -> State | None:
        for state in self.states:
            if state.id == state_id:
                return state
        return None

    def state_name(self, state_id: str) -> str:
        state = self.get_state(state_id)
        if state is None:
            return f"unknown state ({state_id})"
        if state_id == self.stop_state_id:
            return "STOP"
        if state_id == self.start_state_id:
            return f"{state.name} (Start)"
        return state.name


def create_empty_fsm() -> FSMProgram:
    """A program holding only the stop state and no start state yet."""
    return FSMProgram(states=(State(id=STOP_STATE_ID, name="Stop", x=300.0, y=100.0),))
