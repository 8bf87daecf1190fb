"""KaraX ``.kara`` state machine documents.

States and transitions refer to each other by name. Sensor values are
``1`` for yes and ``2`` for no; anything else means the sensor is not checked.
"""

from __future__ import annotations

import re

from kara_runtime.dialects.base import CAMEL_CASE_SENSORS
from kara_runtime.errors import FileInvalidFormat
from kara_runtime.formats.common import escape_attribute, find_element, float_attribute, parse_xml
from kara_runtime.formats.fsm_json import SENSOR_NAMES, check_fsm_structure, command_from_name
from kara_runtime.fsm.model import STOP_STATE_ID, FSMProgram, State, Transition
from kara_runtime.vocabulary import Command

KARAX_COMMANDS: dict[Command, str] = {
    Command.MOVE_FORWARD: "move",
    Command.TURN_LEFT: "turnLeft",
    Command.TURN_RIGHT: "turnRight",
    Command.PLACE_DOWN: "putLeaf",
    Command.PICK_UP: "removeLeaf",
}

_SENSOR_DESCRIPTIONS = (
    ("treeFront", "tree in front?"),
    ("treeLeft", "tree to the left?"),
    ("treeRight", "tree to the right?"),
    ("mushroomFront", "mushroom in front?"),
    ("onLeaf", "leaf on the ground?"),
)


def _sensor_value(raw: str | None) -> bool | None:
    if raw == "1":
        return True
    if raw == "2":
        return False
    return None


def _state_id(name: str, taken: set[str]) -> str:
    slug = re.sub(r"\s+", "-", name.strip()).lower() or "state"
    candidate = f"state-{slug}"
    suffix = 2
    while candidate in taken:
        candidate = f"state-{slug}-{suffix}"
        suffix += 1
    return candidate


def fsm_from_xml(content: str) -> FSMProgram:
    root = parse_xml(content, ".kara")
    machine = find_element(root, "XmlStateMachine", ".kara")
    start_name = machine.get("startState", "")

    name_to_id: dict[str, str] = {}
    taken: set[str] = set()
    stop_state_id: str | None = None
    start_state_id: str | None = None
    states: list[dict] = []

    for xml_state in machine.iter("XmlState"):
        name = xml_state.get("name") or "Unnamed"
        if name in name_to_id:
            raise FileInvalidFormat(f'Two states are named "{name}".', reason="duplicate_state", state=name)
        final = xml_state.get("finalstate") == "true"
        if final and stop_state_id is not None:
            raise FileInvalidFormat("The file declares more than one final state.", reason="stop_state")
        state_id = STOP_STATE_ID if final else _state_id(name, taken | {STOP_STATE_ID})
        taken.add(state_id)
        name_to_id[name] = state_id
        if final:
            stop_state_id = state_id
        if name == start_name:
            start_state_id = state_id

        sensors = []
        for sensor in xml_state.iter("XmlSensor"):
            sensor_name = sensor.get("name", "")
            if sensor_name in CAMEL_CASE_SENSORS:
                sensors.append(CAMEL_CASE_SENSORS[sensor_name])
        states.append(
            {
                "id": state_id,
                "name": name,
                "x": max(0.0, float_attribute(xml_state, "x", 100.0) + 100.0),
                "y": max(0.0, float_attribute(xml_state, "y", 100.0) + 50.0),
                "active_sensors": tuple(sensors),
                "transitions": [],
            }
        )

    by_id = {state["id"]: state for state in states}
    for index, xml_transition in enumerate(machine.iter("XmlTransition"), start=1):
        from_name = xml_transition.get("from", "")
        to_name = xml_transition.get("to", "")
        for label, state_name in (("from", from_name), ("to", to_name)):
            if state_name not in name_to_id:
                raise FileInvalidFormat(
                    f'A transition refers to the unknown state "{state_name}".',
                    reason="target_state",
                    attribute=label,
                    state=state_name,
                )

        condition = {}
        for value in xml_transition.iter("XmlSensorValue"):
            sensor_name = value.get("name", "")
            if sensor_name in CAMEL_CASE_SENSORS:
                condition[CAMEL_CASE_SENSORS[sensor_name]] = _sensor_value(value.get("value"))

        actions = tuple(command_from_name(command.get("name", "")) for command in xml_transition.iter("XmlCommand"))
        by_id[name_to_id[from_name]]["transitions"].append(
            Transition(
                id=f"transition-{index}",
                target_state_id=name_to_id[to_name],
                condition=condition,
                actions=actions,
            )
        )

    if stop_state_id is None:
        stop_state_id = STOP_STATE_ID
        states.append(
            {"id": STOP_STATE_ID, "name": "Stop", "x": 300.0, "y": 100.0, "active_sensors": (), "transitions": []}
        )

    program = FSMProgram(
        states=tuple(
            State(
                id=state["id"],
                name=state["name"],
                x=state["x"],
                y=state["y"],
                active_sensors=state["active_sensors"],
                transitions=tuple(state["transitions"]),
            )
            for state in states
        ),
        start_state_id=start_state_id,
        stop_state_id=stop_state_id,
    )
    check_fsm_structure(program)
    return program


def fsm_to_xml(program: FSMProgram) -> str:
    start = program.get_state(program.start_state_id)
    lines = [
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>',
        '<XmlStateMachines version="KaraX 1.0 kara">',
        f'    <XmlStateMachine actor="Kara" startState="{escape_attribute(start.name if start else "")}">',
    ]
    for state in program.states:
        final = "true" if state.id == program.stop_state_id else "false"
        lines.append(
            f'        <XmlState finalstate="{final}" name="{escape_attribute(state.name)}" '
            f'x="{state.x:.1f}" y="{state.y:.1f}">'
        )
        lines.append("            <XmlSensors>")
        for sensor in state.active_sensors:
            lines.append(f'                <XmlSensor name="{SENSOR_NAMES[sensor]}"/>')
        lines.append("            </XmlSensors>")
        lines.append("        </XmlState>")

    for state in program.states:
        for transition in state.transitions:
            target = program.get_state(transition.target_state_id)
            if target is None:
                continue
            lines.append(
                f'        <XmlTransition from="{escape_attribute(state.name)}" to="{escape_attribute(target.name)}">'
            )
            lines.append("            <XmlSensorValues>")
            for sensor, value in transition.condition.items():
                if value is None:
                    continue
                lines.append(
                    f'                <XmlSensorValue name="{SENSOR_NAMES[sensor]}" value="{"1" if value else "2"}"/>'
                )
            lines.append("            </XmlSensorValues>")
            lines.append("            <XmlCommands>")
            for command in transition.actions:
                lines.append(f'                <XmlCommand name="{KARAX_COMMANDS[command]}"/>')
            lines.append("            </XmlCommands>")
            lines.append("        </XmlTransition>")

    lines.append("    </XmlStateMachine>")
    for identifier, description in _SENSOR_DESCRIPTIONS:
        lines.append(
            f'    <XmlSensorDefinition description="{description}" identifier="{identifier}" name="{identifier}"/>'
        )
    lines.append("</XmlStateMachines>")
    return "\n".join(lines)
