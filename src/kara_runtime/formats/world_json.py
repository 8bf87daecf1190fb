"""JSON world documents: ``width``, ``height``, row-major ``grid`` and ``character``."""

from __future__ import annotations

import json
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from kara_runtime.errors import FileInvalidFormat, WorldInvalidState
from kara_runtime.formats.common import parse_json, validation_problem
from kara_runtime.world.model import OFF_GRID, CellType, Character, Direction, Position, World

# Older documents spell trees as walls.
_CELL_ALIASES = {"WALL": CellType.TREE}


class CellDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str


class PositionDocument(BaseModel):
    x: int
    y: int


class CharacterDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    position: PositionDocument
    direction: Direction = Direction.NORTH
    inventory: int = Field(default=0, ge=0)


class WorldDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    width: int = Field(gt=0)
    height: int = Field(gt=0)
    grid: list[list[Union[str, CellDocument]]]
    character: CharacterDocument


def _cell_type(raw: str | CellDocument, x: int, y: int) -> CellType:
    tag = raw.type if isinstance(raw, CellDocument) else raw
    key = tag.strip().upper()
    if key in _CELL_ALIASES:
        return _CELL_ALIASES[key]
    try:
        return CellType(key)
    except ValueError:
        raise FileInvalidFormat(
            f'Unknown cell type "{tag}" at ({x}, {y}).',
            reason="cell_type",
            tag=tag,
            x=x,
            y=y,
        ) from None


def world_from_dict(payload: Any) -> World:
    try:
        document = WorldDocument.model_validate(payload)
    except PydanticValidationError as exc:
        raise validation_problem(exc, "world") from exc

    if len(document.grid) != document.height or any(len(row) != document.width for row in document.grid):
        widths = sorted({len(row) for row in document.grid})
        raise WorldInvalidState(
            f"The grid does not match the declared size {document.width}x{document.height}.",
            reason="dimensions",
            width=document.width,
            height=document.height,
            rows=len(document.grid),
            row_widths=widths,
        )

    grid = tuple(
        tuple(_cell_type(cell, x, y) for x, cell in enumerate(row)) for y, row in enumerate(document.grid)
    )

    position = Position(document.character.position.x, document.character.position.y)
    world = World(
        width=document.width,
        height=document.height,
        grid=grid,
        character=Character(
            position=position,
            direction=document.character.direction,
            inventory=document.character.inventory,
        ),
    )
    if position != OFF_GRID and not world.in_bounds(position):
        raise WorldInvalidState(
            f"Kara is at ({position.x}, {position.y}), outside the {world.width}x{world.height} world.",
            reason="position",
            x=position.x,
            y=position.y,
        )
    return world


def world_from_json(content: str) -> World:
    return world_from_dict(parse_json(content, "world"))


def world_to_dict(world: World) -> dict[str, Any]:
    character = world.character
    return {
        "width": world.width,
        "height": world.height,
        "grid": [[{"type": cell.value} for cell in row] for row in world.grid],
        "character": {
            "position": {"x": character.position.x, "y": character.position.y},
            "direction": character.direction.value,
            "inventory": character.inventory,
        },
    }


def world_to_json(world: World, *, indent: int | None = 2) -> str:
    return json.dumps(world_to_dict(world), indent=indent)
