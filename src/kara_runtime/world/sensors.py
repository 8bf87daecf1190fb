"""Read-only queries about the character's surroundings.

The world edge counts as a tree for the tree sensors, so a character walking
``while not tree_front`` stops at the border instead of failing.
"""

from __future__ import annotations

from kara_runtime.world.model import CellType, Direction, Position, World


def _neighbour(world: World, facing: Direction) -> Position:
    return world.character.position.step(facing)


def _tree_at(world: World, position: Position) -> bool:
    if not world.in_bounds(position):
        return True
    return world.cell(position) == CellType.TREE


def tree_ahead(world: World) -> bool:
    if not world.character.placed:
        return False
    return _tree_at(world, _neighbour(world, world.character.direction))


def tree_left(world: World) -> bool:
    if not world.character.placed:
        return False
    return _tree_at(world, _neighbour(world, world.character.direction.left()))


def tree_right(world: World) -> bool:
    if not world.character.placed:
        return False
    return _tree_at(world, _neighbour(world, world.character.direction.right()))


def mushroom_ahead(world: World) -> bool:
    if not world.character.placed:
        return False
    target = _neighbour(world, world.character.direction)
    return world.in_bounds(target) and world.cell(target) == CellType.MUSHROOM


def obstacle_ahead(world: World) -> bool:
    """Edge, tree or mushroom directly in front."""
    return tree_ahead(world) or mushroom_ahead(world)


def on_clover(world: World) -> bool:
    if not world.character.placed:
        return False
    return world.cell(world.character.position) == CellType.CLOVER


def describe_surroundings(world: World) -> str:
    conditions: list[str] = []
    if tree_ahead(world):
        conditions.append("tree in front")
    if tree_left(world):
        conditions.append("tree to the left")
    if tree_right(world):
        conditions.append("tree to the right")
    if mushroom_ahead(world):
        conditions.append("mushroom in front")
    if on_clover(world):
        conditions.append("standing on a clover")

    if not conditions:
        return "no obstacles detected, not on a clover"
    return ", ".join(conditions)
