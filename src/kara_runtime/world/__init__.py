"""Grid world model, primitives and sensors."""

from .model import OFF_GRID, CellType, Character, Direction, Position, World, create_world
from .templates import TEMPLATES, get_template

__all__ = [
    "OFF_GRID",
    "TEMPLATES",
    "CellType",
    "Character",
    "Direction",
    "Position",
    "World",
    "create_world",
    "get_template",
]
