"""Immutable grid world: cells, the character and the rules that keep them consistent."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Iterator


class CellType(str, Enum):
    EMPTY = "EMPTY"
    TREE = "TREE"
    MUSHROOM = "MUSHROOM"
    CLOVER = "CLOVER"


class Direction(str, Enum):
    """Facing of the character; ``left``/``right`` rotate by 90 degrees."""

    NORTH = "NORTH"
    EAST = "EAST"
    SOUTH = "SOUTH"
    WEST = "WEST"

    def left(self) -> Direction:
        return _LEFT_OF[self]

    def right(self) -> Direction:
        return _RIGHT_OF[self]

    @property
    def delta(self) -> tuple[int, int]:
        return _DELTAS[self]


_LEFT_OF = {
    Direction.NORTH: Direction.WEST,
    Direction.WEST: Direction.SOUTH,
    Direction.SOUTH: Direction.EAST,
    Direction.EAST: Direction.NORTH,
}
_RIGHT_OF = {value: key for key, value in _LEFT_OF.items()}
# y grows downwards: row 0 is the northern edge.
_DELTAS = {
    Direction.NORTH: (0, -1),
    Direction.EAST: (1, 0),
    Direction.SOUTH: (0, 1),
    Direction.WEST: (-1, 0),
}


@dataclass(frozen=True, slots=True)
class Position:
    x: int
    y: int

    def step(self, direction: Direction) -> Position:
        dx, dy = direction.delta
        return Position(self.x + dx, self.y + dy)


OFF_GRID = Position(-1, -1)


@dataclass(frozen=True, slots=True)
class Character:
    position: Position
    direction: Direction = Direction.NORTH
    inventory: int = 0

    @property
    def placed(self) -> bool:
        return self.position != OFF_GRID


@dataclass(frozen=True, slots=True)
class World:
    """A snapshot of the grid; every change produces a new ``World``."""

    width: int
    height: int
    grid: tuple[tuple[CellType, ...], ...]
    character: Character

    def in_bounds(self, position: Position) -> bool:
        return 0 <= position.x < self.width and 0 <= position.y < self.height

    def cell(self, position: Position) -> CellType:
        return self.grid[position.y][position.x]

    def with_cell(self, position: Position, cell: CellType) -> World:
        row = self.grid[position.y]
        new_row = row[: position.x] + (cell,) + row[position.x + 1 :]
        grid = self.grid[: position.y] + (new_row,) + self.grid[position.y + 1 :]
        return replace(self, grid=grid)

    def with_character(self, **changes) -> World:
        return replace(self, character=replace(self.character, **changes))

    def cells(self) -> Iterator[tuple[Position, CellType]]:
        for y, row in enumerate(self.grid):
            for x, cell in enumerate(row):
                yield Position(x, y), cell

    def count(self, cell_type: CellType) -> int:
        return sum(1 for _, cell in self.cells() if cell == cell_type)


def create_world(
    width: int,
    height: int,
    *,
    position: Position | None = None,
    direction: Direction = Direction.NORTH,
    inventory: int = 0,
    trees: Iterable[tuple[int, int]] = (),
    mushrooms: Iterable[tuple[int, int]] = (),
    clovers: Iterable[tuple[int, int]] = (),
) -> World:
    """Build a world from coordinate lists; the character defaults to the centre."""
    if width <= 0 or height <= 0:
        raise ValueError(f"World size must be positive, got {width}x{height}")

    rows = [[CellType.EMPTY] * width for _ in range(height)]
    for cell_type, points in (
        (CellType.TREE, trees),
        (CellType.MUSHROOM, mushrooms),
        (CellType.CLOVER, clovers),
    ):
        for x, y in points:
            if not (0 <= x < width and 0 <= y < height):
                raise ValueError(f"{cell_type.value} at ({x}, {y}) is outside a {width}x{height} world")
            rows[y][x] = cell_type

    start = position if position is not None else Position(width // 2, height // 2)
    if start != OFF_GRID and not (0 <= start.x < width and 0 <= start.y < height):
        raise ValueError(f"Kara at ({start.x}, {start.y}) is outside a {width}x{height} world")
    if inventory < 0:
        raise ValueError(f"Inventory cannot be negative, got {inventory}")
    return World(
        width=width,
        height=height,
        grid=tuple(tuple(row) for row in rows),
        character=Character(position=start, direction=direction, inventory=inventory),
    )
