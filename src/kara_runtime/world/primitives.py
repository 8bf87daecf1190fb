"""The five state transitions the character can perform.

Every primitive takes a ``World`` and returns a new one. On failure it raises
an :class:`~kara_runtime.errors.ExecutionError`; since worlds are immutable the
caller's snapshot is untouched. A character that is not placed on the grid is
inert: it cannot move, turn, pick or place.
"""

from __future__ import annotations

from kara_runtime.errors import Blocked, EmptyInventory, NoClover, Occupied
from kara_runtime.world.model import CellType, World


def move_forward(world: World, *, push_mushrooms: bool = False) -> World:
    character = world.character
    if not character.placed:
        raise Blocked("Kara is not placed in the world", command="MOVE_FORWARD")

    target = character.position.step(character.direction)
    if not world.in_bounds(target):
        raise Blocked(
            "Cannot move forward - the edge of the world is in the way",
            command="MOVE_FORWARD",
            x=target.x,
            y=target.y,
        )

    cell = world.cell(target)
    if cell == CellType.TREE:
        raise Blocked("Cannot move forward - a tree is in the way", command="MOVE_FORWARD", x=target.x, y=target.y)

    if cell == CellType.MUSHROOM:
        if not push_mushrooms:
            raise Blocked(
                "Cannot move forward - a mushroom is in the way",
                command="MOVE_FORWARD",
                x=target.x,
                y=target.y,
            )
        beyond = target.step(character.direction)
        if not world.in_bounds(beyond) or world.cell(beyond) != CellType.EMPTY:
            raise Blocked(
                "Cannot push the mushroom - something is behind it",
                command="MOVE_FORWARD",
                x=target.x,
                y=target.y,
            )
        world = world.with_cell(beyond, CellType.MUSHROOM).with_cell(target, CellType.EMPTY)

    return world.with_character(position=target)


def turn_left(world: World) -> World:
    if not world.character.placed:
        return world
    return world.with_character(direction=world.character.direction.left())


def turn_right(world: World) -> World:
    if not world.character.placed:
        return world
    return world.with_character(direction=world.character.direction.right())


def pick_up(world: World) -> World:
    character = world.character
    if not character.placed or world.cell(character.position) != CellType.CLOVER:
        raise NoClover("No clover here to pick!", command="PICK_UP", **_where(world))

    return world.with_cell(character.position, CellType.EMPTY).with_character(
        inventory=character.inventory + 1
    )


def place_down(world: World) -> World:
    character = world.character
    if character.inventory == 0:
        raise EmptyInventory("No clovers in inventory!", command="PLACE_DOWN", **_where(world))
    if not character.placed or world.cell(character.position) != CellType.EMPTY:
        raise Occupied("Cannot place clover here!", command="PLACE_DOWN", **_where(world))

    return world.with_cell(character.position, CellType.CLOVER).with_character(
        inventory=character.inventory - 1
    )


def _where(world: World) -> dict[str, int]:
    position = world.character.position
    return {"x": position.x, "y": position.y}
