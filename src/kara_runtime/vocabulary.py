"""Closed vocabulary of commands and sensors shared by every program form.

Dialects and the FSM engine can only affect a world through
:func:`apply_command` and only observe it through :func:`read_sensor`.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable

from kara_runtime.world import primitives, sensors
from kara_runtime.world.model import World


class Command(str, Enum):
    MOVE_FORWARD = "MOVE_FORWARD"
    TURN_LEFT = "TURN_LEFT"
    TURN_RIGHT = "TURN_RIGHT"
    PICK_UP = "PICK_UP"
    PLACE_DOWN = "PLACE_DOWN"


class Sensor(str, Enum):
    TREE_AHEAD = "TREE_AHEAD"
    TREE_LEFT = "TREE_LEFT"
    TREE_RIGHT = "TREE_RIGHT"
    MUSHROOM_AHEAD = "MUSHROOM_AHEAD"
    OBSTACLE_AHEAD = "OBSTACLE_AHEAD"
    ON_CLOVER = "ON_CLOVER"


_SENSOR_FUNCTIONS: dict[Sensor, Callable[[World], bool]] = {
    Sensor.TREE_AHEAD: sensors.tree_ahead,
    Sensor.TREE_LEFT: sensors.tree_left,
    Sensor.TREE_RIGHT: sensors.tree_right,
    Sensor.MUSHROOM_AHEAD: sensors.mushroom_ahead,
    Sensor.OBSTACLE_AHEAD: sensors.obstacle_ahead,
    Sensor.ON_CLOVER: sensors.on_clover,
}


def apply_command(world: World, command: Command, *, push_mushrooms: bool = False) -> World:
    """Apply one primitive, raising ``ExecutionError`` when it cannot be done."""
    if command == Command.MOVE_FORWARD:
        return primitives.move_forward(world, push_mushrooms=push_mushrooms)
    if command == Command.TURN_LEFT:
        return primitives.turn_left(world)
    if command == Command.TURN_RIGHT:
        return primitives.turn_right(world)
    if command == Command.PICK_UP:
        return primitives.pick_up(world)
    if command == Command.PLACE_DOWN:
        return primitives.place_down(world)
    raise ValueError(f"Unsupported command: {command!r}")


def read_sensor(world: World, sensor: Sensor) -> bool:
    return _SENSOR_FUNCTIONS[sensor](world)
