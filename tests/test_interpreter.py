from __future__ import annotations

import logging

import pytest

from kara_runtime.dialects import get_dialect
from kara_runtime.dialects.nodes import count_actions
from kara_runtime.errors import Blocked, ErrorCode, KaraSyntaxError, StepLimitExceeded
from kara_runtime.interpreter import InterpreterState, StreamingInterpreter, collect_commands
from kara_runtime.vocabulary import Command, apply_command
from kara_runtime.world import CellType, Direction, Position, create_world

STRAIGHT_LINE = """void myProgram() {
    kara.move();
    kara.turnLeft();
    kara.turnRight();
    kara.move();
}"""


def test_program_without_loops_yields_each_primitive_then_done() -> None:
    world = create_world(5, 5, position=Position(2, 4), direction=Direction.NORTH)
    interpreter = StreamingInterpreter(STRAIGHT_LINE, world, dialect="JavaKara")

    commands = []
    while True:
        result = interpreter.next()
        if result.command is None:
            break
        commands.append(result.command)

    assert result.done and result.error is None
    assert commands == [Command.MOVE_FORWARD, Command.TURN_LEFT, Command.TURN_RIGHT, Command.MOVE_FORWARD]
    program = get_dialect("JavaKara").parse(STRAIGHT_LINE)
    assert len(commands) == count_actions(program.body)
    assert interpreter.state == InterpreterState.DONE
    assert interpreter.world.character.position == Position(2, 2)


def test_done_is_idempotent() -> None:
    world = create_world(3, 3)
    interpreter = StreamingInterpreter("function myProgram() { kara.turnLeft() }", world, dialect="JavaScriptKara")

    assert interpreter.next().command == Command.TURN_LEFT
    first = interpreter.next()
    second = interpreter.next()

    assert first.done and first.command is None
    assert second.done and second.command is None
    assert interpreter.consumed
    assert interpreter.applied_commands == [Command.TURN_LEFT]


def test_next_does_not_apply_the_command_it_returns() -> None:
    world = create_world(5, 5, position=Position(2, 4))
    interpreter = StreamingInterpreter("def my_program(self):\n    kara.move()\n", world, dialect="PythonKara")

    result = interpreter.next()

    assert result.command == Command.MOVE_FORWARD
    assert interpreter.state == InterpreterState.YIELDING
    assert interpreter.pending == Command.MOVE_FORWARD
    assert interpreter.world.character.position == Position(2, 4)


def test_sync_adopts_caller_world_without_reapplying() -> None:
    world = create_world(5, 5, position=Position(2, 4), direction=Direction.NORTH)
    interpreter = StreamingInterpreter(
        "void myProgram() {\n  kara.move();\n  kara.move();\n}", world, dialect="JavaKara"
    )

    command = interpreter.next().command
    caller_world = apply_command(world, command)
    interpreter.sync(caller_world)
    assert interpreter.state == InterpreterState.APPLYING

    assert interpreter.next().command == Command.MOVE_FORWARD
    assert interpreter.world.character.position == Position(2, 3)

    assert interpreter.next().done
    assert interpreter.world.character.position == Position(2, 2)
    assert interpreter.applied_commands == [Command.MOVE_FORWARD, Command.MOVE_FORWARD]


def test_sensor_reads_observe_synced_world() -> None:
    world = create_world(3, 3, position=Position(1, 1))
    source = "def my_program(self):\n    kara.turn_left()\n    if kara.on_leaf():\n        kara.remove_leaf()\n"
    interpreter = StreamingInterpreter(source, world, dialect="PythonKara")

    command = interpreter.next().command
    caller_world = apply_command(world, command).with_cell(Position(1, 1), CellType.CLOVER)
    interpreter.sync(caller_world)

    assert interpreter.next().command == Command.PICK_UP


def test_infinite_loop_fails_at_ceiling() -> None:
    world = create_world(3, 3)
    interpreter = StreamingInterpreter(
        "function myProgram() {\n  while (true) {\n    kara.turnLeft();\n  }\n}",
        world,
        dialect="JavaScriptKara",
        max_steps=50,
    )

    result = interpreter.run()

    assert isinstance(result.error, StepLimitExceeded)
    assert result.error.code == ErrorCode.EXEC_INFINITE_LOOP
    assert len(result.commands) == 50
    assert result.steps == 51
    assert interpreter.state == InterpreterState.FAILED
    assert interpreter.next().command is None


def test_ruby_loop_do_is_bounded_by_ceiling() -> None:
    world = create_world(3, 3)
    commands, error = collect_commands(
        "def my_program\n  loop do\n    kara.turn_right\n  end\nend\n",
        world,
        dialect="RubyKara",
        max_steps=10,
    )

    assert len(commands) == 10
    assert error.context["max_steps"] == 10


def test_loop_without_primitives_still_hits_ceiling() -> None:
    world = create_world(3, 3, position=Position(1, 1), clovers=[(1, 1)])
    interpreter = StreamingInterpreter(
        "void myProgram() {\n  while (kara.onLeaf()) {\n  }\n}", world, dialect="JavaKara", max_steps=25
    )

    result = interpreter.next()

    assert result.done
    assert isinstance(result.error, StepLimitExceeded)


def test_primitive_failure_keeps_last_valid_world() -> None:
    world = create_world(5, 5, position=Position(2, 1), direction=Direction.NORTH)
    interpreter = StreamingInterpreter(
        "void myProgram() {\n  kara.move();\n  kara.move();\n}", world, dialect="JavaKara"
    )

    result = interpreter.run()

    assert isinstance(result.error, Blocked)
    assert result.world.character.position == Position(2, 0)
    assert result.commands == [Command.MOVE_FORWARD]


def test_parse_failure_is_discovered_lazily() -> None:
    world = create_world(3, 3)
    interpreter = StreamingInterpreter("void myProgram() {\n  kara.move(\n}", world, dialect="JavaKara")

    assert interpreter.state == InterpreterState.READY

    result = interpreter.next()
    assert isinstance(result.error, KaraSyntaxError)
    assert interpreter.state == InterpreterState.FAILED
    assert interpreter.next().error is result.error


def test_reset_discards_progress() -> None:
    world = create_world(3, 3)
    interpreter = StreamingInterpreter(
        "function myProgram() {\n  kara.turnLeft();\n  kara.turnLeft();\n}", world, dialect="JavaScriptKara"
    )
    interpreter.next()

    interpreter.reset()

    assert interpreter.state == InterpreterState.DONE
    assert interpreter.pending is None
    assert interpreter.next().command is None


def test_repeat_loops_count_iterations_as_steps() -> None:
    world = create_world(3, 3)
    commands, error = collect_commands(
        "for i in range(4):\n    pass\ndef my_program(self):\n    for i in range(4):\n        kara.turn_left()\n",
        world,
        dialect="PythonKara",
    )

    assert error is None
    assert commands == [Command.TURN_LEFT] * 4


def test_precompiled_program_is_accepted() -> None:
    program = get_dialect("RubyKara").parse("def my_program\n  2.times { kara.turn_right }\nend\n")
    interpreter = StreamingInterpreter(program, create_world(3, 3))

    result = interpreter.run()

    assert result.ok
    assert result.world.character.direction == Direction.SOUTH


def test_source_without_dialect_is_rejected() -> None:
    with pytest.raises(ValueError):
        StreamingInterpreter("kara.move()", create_world(3, 3))


def test_lifecycle_events_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("tests.interpreter")
    interpreter = StreamingInterpreter(
        "function myProgram() { kara.move() }",
        create_world(3, 3),
        dialect="JavaScriptKara",
        logger=logger,
    )

    with caplog.at_level(logging.INFO, logger="tests.interpreter"):
        interpreter.run()

    messages = [record.getMessage() for record in caplog.records]
    assert messages == ["interpreter_started", "interpreter_done"]
    assert caplog.records[0].actions == 1
    assert caplog.records[0].has_loops is False
