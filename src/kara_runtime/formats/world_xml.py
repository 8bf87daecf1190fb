"""KaraX ``.world`` XML documents.

Trees are ``XmlWallPoints``, mushrooms ``XmlObstaclePoints`` and clovers
``XmlPaintedfieldPoints``. ``XmlKara direction`` counts clockwise from north.
"""

from __future__ import annotations

from kara_runtime.errors import WorldInvalidState
from kara_runtime.formats.common import find_element, int_attribute, logger, parse_xml
from kara_runtime.world.model import OFF_GRID, CellType, Character, Direction, Position, World

KARAX_DIRECTIONS: dict[int, Direction] = {
    0: Direction.NORTH,
    1: Direction.EAST,
    2: Direction.SOUTH,
    3: Direction.WEST,
}
DIRECTION_TO_KARAX = {direction: number for number, direction in KARAX_DIRECTIONS.items()}

_POINT_GROUPS = (
    ("XmlWallPoints", CellType.TREE),
    ("XmlObstaclePoints", CellType.MUSHROOM),
    ("XmlPaintedfieldPoints", CellType.CLOVER),
)


def world_from_xml(content: str) -> World:
    root = parse_xml(content, ".world")
    xml_world = find_element(root, "XmlWorld", ".world")

    width = int_attribute(xml_world, "sizex", 8)
    height = int_attribute(xml_world, "sizey", 6)
    if width <= 0 or height <= 0:
        raise WorldInvalidState(
            f"The world size {width}x{height} is not valid.",
            reason="dimensions",
            width=width,
            height=height,
        )

    rows = [[CellType.EMPTY] * width for _ in range(height)]
    for group_tag, cell_type in _POINT_GROUPS:
        for point in xml_world.findall(f"{group_tag}/XmlPoint"):
            x = int_attribute(point, "x", 0)
            y = int_attribute(point, "y", 0)
            if not (0 <= x < width and 0 <= y < height):
                logger.warning(
                    "world_point_skipped",
                    extra={"group": group_tag, "x": x, "y": y, "width": width, "height": height},
                )
                continue
            rows[y][x] = cell_type

    position = Position(width // 2, height // 2)
    direction = Direction.NORTH
    kara = xml_world.find("XmlKaraList/XmlKara")
    if kara is not None:
        position = Position(int_attribute(kara, "x", position.x), int_attribute(kara, "y", position.y))
        direction = KARAX_DIRECTIONS.get(int_attribute(kara, "direction", 0), Direction.NORTH)

    world = World(
        width=width,
        height=height,
        grid=tuple(tuple(row) for row in rows),
        character=Character(position=position, direction=direction),
    )
    if position != OFF_GRID and not world.in_bounds(position):
        raise WorldInvalidState(
            f"Kara is at ({position.x}, {position.y}), outside the {width}x{height} world.",
            reason="position",
            x=position.x,
            y=position.y,
        )
    return world


def world_to_xml(world: World) -> str:
    points: dict[CellType, list[Position]] = {CellType.TREE: [], CellType.MUSHROOM: [], CellType.CLOVER: []}
    for position, cell in world.cells():
        if cell in points:
            points[cell].append(position)

    lines = [
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>',
        f'<XmlWorld sizex="{world.width}" sizey="{world.height}" version="KaraX 1.0 kara">',
    ]
    for group_tag, cell_type in _POINT_GROUPS:
        lines.append(f"    <{group_tag}>")
        for point in points[cell_type]:
            type_attribute = ' type="0"' if cell_type == CellType.CLOVER else ""
            lines.append(f'        <XmlPoint{type_attribute} x="{point.x}" y="{point.y}"/>')
        lines.append(f"    </{group_tag}>")

    character = world.character
    lines.append("    <XmlKaraList>")
    lines.append(
        f'        <XmlKara direction="{DIRECTION_TO_KARAX[character.direction]}" name="Kara" '
        f'x="{character.position.x}" y="{character.position.y}"/>'
    )
    lines.append("    </XmlKaraList>")
    lines.append("    <XmlStreetList/>")
    lines.append("</XmlWorld>")
    return "\n".join(lines)
