"""JSON state machine documents and the structural checks every importer runs."""

from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from kara_runtime.dialects.base import CAMEL_CASE_SENSORS
from kara_runtime.errors import FileInvalidFormat
from kara_runtime.formats.common import parse_json, validation_problem
from kara_runtime.fsm.model import STOP_STATE_ID, FSMProgram, State, Transition
from kara_runtime.vocabulary import Command, Sensor

ACTION_TYPES: dict[str, Command] = {
    "move": Command.MOVE_FORWARD,
    "turnLeft": Command.TURN_LEFT,
    "turnRight": Command.TURN_RIGHT,
    "pickClover": Command.PICK_UP,
    "placeClover": Command.PLACE_DOWN,
    # KaraX spellings
    "removeLeaf": Command.PICK_UP,
    "putLeaf": Command.PLACE_DOWN,
}
COMMAND_TO_ACTION_TYPE: dict[Command, str] = {
    Command.MOVE_FORWARD: "move",
    Command.TURN_LEFT: "turnLeft",
    Command.TURN_RIGHT: "turnRight",
    Command.PICK_UP: "pickClover",
    Command.PLACE_DOWN: "placeClover",
}
SENSOR_NAMES: dict[Sensor, str] = {sensor: name for name, sensor in CAMEL_CASE_SENSORS.items()}


class ActionDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str


class TransitionDocument(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    target_state_id: str = Field(alias="targetStateId")
    detector_conditions: dict[str, Optional[bool]] = Field(default_factory=dict, alias="detectorConditions")
    actions: list[ActionDocument] = Field(default_factory=list)


class StateDocument(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: str
    x: float = 0.0
    y: float = 0.0
    transitions: list[TransitionDocument] = Field(default_factory=list)
    active_detectors: list[str] = Field(default_factory=list, alias="activeDetectors")


class FSMDocument(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    states: list[StateDocument]
    start_state_id: Optional[str] = Field(default=None, alias="startStateId")
    stop_state_id: str = Field(default=STOP_STATE_ID, alias="stopStateId")


def sensor_from_name(name: str) -> Sensor:
    if name not in CAMEL_CASE_SENSORS:
        raise FileInvalidFormat(f'Unknown sensor "{name}".', reason="sensor", sensor=name)
    return CAMEL_CASE_SENSORS[name]


def command_from_name(name: str) -> Command:
    if name not in ACTION_TYPES:
        raise FileInvalidFormat(f'Unknown command "{name}".', reason="command", command=name)
    return ACTION_TYPES[name]


def check_fsm_structure(program: FSMProgram) -> None:
    """Reject programs whose references do not resolve or whose stop state is not terminal."""
    ids = [state.id for state in program.states]
    if len(ids) != len(set(ids)):
        raise FileInvalidFormat("State ids must be unique.", reason="duplicate_state")

    stop_states = [state for state in program.states if state.id == program.stop_state_id]
    if len(stop_states) != 1:
        raise FileInvalidFormat(
            f'The stop state "{program.stop_state_id}" is missing.',
            reason="stop_state",
            stop_state_id=program.stop_state_id,
        )
    if stop_states[0].transitions:
        raise FileInvalidFormat(
            "The stop state cannot have outgoing transitions.",
            reason="stop_state",
            stop_state_id=program.stop_state_id,
        )

    if program.start_state_id is not None and program.start_state_id not in ids:
        raise FileInvalidFormat(
            f'The start state "{program.start_state_id}" does not exist.',
            reason="start_state",
            start_state_id=program.start_state_id,
        )

    for state in program.states:
        for transition in state.transitions:
            if transition.target_state_id not in ids:
                raise FileInvalidFormat(
                    f'Transition "{transition.id}" in state "{state.name}" points to the missing state '
                    f'"{transition.target_state_id}".',
                    reason="target_state",
                    state_id=state.id,
                    transition_id=transition.id,
                    target_state_id=transition.target_state_id,
                )


def fsm_from_dict(payload: Any) -> FSMProgram:
    try:
        document = FSMDocument.model_validate(payload)
    except PydanticValidationError as exc:
        raise validation_problem(exc, "state machine") from exc

    states = tuple(
        State(
            id=state.id,
            name=state.name,
            x=state.x,
            y=state.y,
            active_sensors=tuple(sensor_from_name(name) for name in state.active_detectors),
            transitions=tuple(
                Transition(
                    id=transition.id,
                    target_state_id=transition.target_state_id,
                    condition={
                        sensor_from_name(name): value for name, value in transition.detector_conditions.items()
                    },
                    actions=tuple(command_from_name(action.type) for action in transition.actions),
                )
                for transition in state.transitions
            ),
        )
        for state in document.states
    )
    program = FSMProgram(
        states=states,
        start_state_id=document.start_state_id,
        stop_state_id=document.stop_state_id,
    )
    check_fsm_structure(program)
    return program


def fsm_from_json(content: str) -> FSMProgram:
    return fsm_from_dict(parse_json(content, "state machine"))


def fsm_to_dict(program: FSMProgram) -> dict[str, Any]:
    return {
        "states": [
            {
                "id": state.id,
                "name": state.name,
                "x": state.x,
                "y": state.y,
                "activeDetectors": [SENSOR_NAMES[sensor] for sensor in state.active_sensors],
                "transitions": [
                    {
                        "id": transition.id,
                        "targetStateId": transition.target_state_id,
                        "detectorConditions": {
                            SENSOR_NAMES[sensor]: value for sensor, value in transition.condition.items()
                        },
                        "actions": [{"type": COMMAND_TO_ACTION_TYPE[command]} for command in transition.actions],
                    }
                    for transition in state.transitions
                ],
            }
            for state in program.states
        ],
        "startStateId": program.start_state_id,
        "stopStateId": program.stop_state_id,
    }


def fsm_to_json(program: FSMProgram, *, indent: int | None = 2) -> str:
    return json.dumps(fsm_to_dict(program), indent=indent)
