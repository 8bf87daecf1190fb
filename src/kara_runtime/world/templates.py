"""Ready-made worlds for quick experiments and the CLI."""

from __future__ import annotations

from typing import Callable

from kara_runtime.world.model import Direction, Position, World, create_world


def empty_template(width: int = 8, height: int = 6) -> World:
    return create_world(width, height)


def maze_template() -> World:
    width, height = 9, 7
    border = [(x, 0) for x in range(width)] + [(x, height - 1) for x in range(width)]
    border += [(0, y) for y in range(1, height - 1)] + [(width - 1, y) for y in range(1, height - 1)]
    inner = [(2, 2), (3, 2), (5, 2), (6, 2), (2, 4), (3, 4), (5, 4), (6, 4)]
    return create_world(
        width,
        height,
        position=Position(1, 1),
        direction=Direction.EAST,
        trees=border + inner,
        clovers=[(width - 2, 1)],
    )


def garden_template() -> World:
    width, height = 8, 6
    corners = [(1, 1), (width - 2, 1), (1, height - 2), (width - 2, height - 2)]
    clovers = [
        (x, y)
        for y in range(1, height - 1)
        for x in range(1, width - 1)
        if (x + y) % 2 == 0 and (x, y) not in corners
    ]
    return create_world(width, height, trees=corners, clovers=clovers)


def obstacle_course_template() -> World:
    width, height = 10, 7
    return create_world(
        width,
        height,
        position=Position(0, 0),
        direction=Direction.EAST,
        trees=[(2, 1), (5, 1), (8, 1), (3, 3), (6, 3), (2, 5), (5, 5), (8, 5)],
        mushrooms=[(1, 2), (7, 2), (4, 4)],
        clovers=[(1, 1), (width - 2, 1), (1, height - 2), (width - 2, height - 2)],
    )


TEMPLATES: dict[str, Callable[[], World]] = {
    "empty": empty_template,
    "maze": maze_template,
    "garden": garden_template,
    "obstacle_course": obstacle_course_template,
}


def get_template(name: str) -> World:
    key = name.strip().lower().replace(" ", "_").replace("-", "_")
    if key not in TEMPLATES:
        raise KeyError(f"Unknown world template: {name}")
    return TEMPLATES[key]()
