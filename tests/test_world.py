from __future__ import annotations

import pytest

from kara_runtime.errors import Blocked, EmptyInventory, ErrorCode, NoClover, Occupied
from kara_runtime.vocabulary import Command, Sensor, apply_command, read_sensor
from kara_runtime.world import OFF_GRID, CellType, Direction, Position, create_world, get_template
from kara_runtime.world.primitives import move_forward, pick_up, place_down, turn_left, turn_right
from kara_runtime.world.sensors import describe_surroundings


def test_two_moves_reach_clover_without_picking_it() -> None:
    world = create_world(5, 5, position=Position(2, 4), direction=Direction.NORTH, clovers=[(2, 2)])

    for command in (Command.MOVE_FORWARD, Command.MOVE_FORWARD):
        world = apply_command(world, command)

    assert world.character.position == Position(2, 2)
    assert world.cell(Position(2, 2)) == CellType.CLOVER
    assert world.character.inventory == 0


def test_move_into_edge_is_blocked_and_leaves_world_untouched() -> None:
    world = create_world(3, 3, position=Position(1, 0), direction=Direction.NORTH)

    with pytest.raises(Blocked) as excinfo:
        move_forward(world)

    assert excinfo.value.code == ErrorCode.EXEC_BLOCKED
    assert world.character.position == Position(1, 0)


def test_move_into_tree_is_blocked() -> None:
    world = create_world(3, 3, position=Position(0, 1), direction=Direction.EAST, trees=[(1, 1)])

    with pytest.raises(Blocked):
        move_forward(world)


def test_mushroom_blocks_unless_pushing_enabled() -> None:
    world = create_world(4, 1, position=Position(0, 0), direction=Direction.EAST, mushrooms=[(1, 0)])

    with pytest.raises(Blocked):
        move_forward(world)

    pushed = move_forward(world, push_mushrooms=True)
    assert pushed.character.position == Position(1, 0)
    assert pushed.cell(Position(1, 0)) == CellType.EMPTY
    assert pushed.cell(Position(2, 0)) == CellType.MUSHROOM


def test_mushroom_cannot_be_pushed_against_edge() -> None:
    world = create_world(2, 1, position=Position(0, 0), direction=Direction.EAST, mushrooms=[(1, 0)])

    with pytest.raises(Blocked):
        move_forward(world, push_mushrooms=True)


def test_four_turns_restore_direction() -> None:
    world = create_world(3, 3, direction=Direction.EAST)

    left = world
    right = world
    for _ in range(4):
        left = turn_left(left)
        right = turn_right(right)

    assert left == world
    assert right == world
    assert turn_right(turn_left(world)) == world


def test_turns_rotate_clockwise_and_counterclockwise() -> None:
    world = create_world(3, 3, direction=Direction.NORTH)

    assert turn_left(world).character.direction == Direction.WEST
    assert turn_right(world).character.direction == Direction.EAST


def test_pick_then_place_restores_cell_and_inventory() -> None:
    world = create_world(3, 3, position=Position(1, 1), clovers=[(1, 1)])

    picked = pick_up(world)
    assert picked.cell(Position(1, 1)) == CellType.EMPTY
    assert picked.character.inventory == 1

    assert place_down(picked) == world


def test_pick_on_empty_cell_fails() -> None:
    world = create_world(3, 3)

    with pytest.raises(NoClover):
        pick_up(world)


def test_place_without_inventory_fails() -> None:
    world = create_world(3, 3)

    with pytest.raises(EmptyInventory) as excinfo:
        place_down(world)

    assert excinfo.value.code == ErrorCode.WORLD_NO_INVENTORY


def test_place_on_clover_fails_as_occupied() -> None:
    world = create_world(3, 3, position=Position(1, 1), inventory=1, clovers=[(1, 1)])

    with pytest.raises(Occupied):
        place_down(world)


def test_primitives_never_mutate_input_world() -> None:
    world = create_world(3, 3, position=Position(1, 1), clovers=[(1, 1)])
    snapshot = (world.grid, world.character)

    apply_command(world, Command.PICK_UP)
    apply_command(world, Command.MOVE_FORWARD)
    apply_command(world, Command.TURN_LEFT)

    assert (world.grid, world.character) == snapshot


def test_off_grid_character_is_inert() -> None:
    world = create_world(3, 3, position=OFF_GRID)

    with pytest.raises(Blocked):
        move_forward(world)
    assert turn_left(world) == world
    assert not read_sensor(world, Sensor.TREE_AHEAD)
    assert not read_sensor(world, Sensor.ON_CLOVER)


def test_sensors_read_surroundings() -> None:
    world = create_world(
        3,
        3,
        position=Position(1, 1),
        direction=Direction.NORTH,
        trees=[(0, 1)],
        mushrooms=[(1, 0)],
        clovers=[(1, 1)],
    )

    assert read_sensor(world, Sensor.TREE_LEFT)
    assert not read_sensor(world, Sensor.TREE_RIGHT)
    assert not read_sensor(world, Sensor.TREE_AHEAD)
    assert read_sensor(world, Sensor.MUSHROOM_AHEAD)
    assert read_sensor(world, Sensor.OBSTACLE_AHEAD)
    assert read_sensor(world, Sensor.ON_CLOVER)


def test_world_edge_reads_as_tree() -> None:
    world = create_world(1, 1, position=Position(0, 0))

    assert read_sensor(world, Sensor.TREE_AHEAD)
    assert read_sensor(world, Sensor.TREE_LEFT)
    assert read_sensor(world, Sensor.TREE_RIGHT)
    assert not read_sensor(world, Sensor.MUSHROOM_AHEAD)


def test_describe_surroundings_lists_active_sensors() -> None:
    world = create_world(3, 3, position=Position(1, 0), direction=Direction.NORTH, clovers=[(1, 0)])

    assert describe_surroundings(world) == "tree in front, standing on a clover"
    assert describe_surroundings(create_world(3, 3)) == "no obstacles detected, not on a clover"


def test_create_world_rejects_points_outside_grid() -> None:
    with pytest.raises(ValueError):
        create_world(2, 2, trees=[(2, 0)])


@pytest.mark.parametrize("position", [Position(5, 5), Position(-1, 0), Position(0, -1), Position(3, 0)])
def test_create_world_rejects_character_outside_grid(position: Position) -> None:
    with pytest.raises(ValueError):
        create_world(3, 3, position=position, clovers=[(2, 0)])


def test_create_world_rejects_negative_inventory() -> None:
    with pytest.raises(ValueError):
        create_world(3, 3, inventory=-1)


def test_templates_are_consistent() -> None:
    maze = get_template("maze")
    assert maze.cell(maze.character.position) == CellType.EMPTY
    assert maze.count(CellType.CLOVER) == 1

    course = get_template("Obstacle Course")
    assert course.count(CellType.MUSHROOM) == 3

    with pytest.raises(KeyError):
        get_template("volcano")
