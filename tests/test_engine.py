from __future__ import annotations

import logging
from pathlib import Path

import pytest

from kara_runtime.engine import KaraEngine
from kara_runtime.errors import (
    FileInvalidFormat,
    FileTooLarge,
    InvalidState,
    MissingEntryPoint,
    SandboxViolation,
    StepLimitExceeded,
)
from kara_runtime.fsm import FSMProgram, State, Transition, create_empty_fsm
from kara_runtime.telemetry import LoggingTelemetry, configure_logging
from kara_runtime.vocabulary import Command, Sensor
from kara_runtime.world import Position, create_world


class RecordingTelemetry:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def emit(self, event_name: str, payload: dict) -> None:
        self.events.append((event_name, payload))


def test_validate_returns_tuple() -> None:
    engine = KaraEngine()

    assert engine.validate("function myProgram() { kara.move() }", "js") == (True, None)

    ok, error = engine.validate("function other() {}", "JavaScriptKara")
    assert not ok
    assert isinstance(error, MissingEntryPoint)


def test_run_program_emits_telemetry() -> None:
    telemetry = RecordingTelemetry()
    engine = KaraEngine(max_steps=5, telemetry=telemetry)

    result = engine.run_program(
        "void myProgram() {\n  while (true) {\n    kara.turnLeft();\n  }\n}",
        "JavaKara",
        create_world(3, 3),
    )

    assert isinstance(result.error, StepLimitExceeded)
    assert telemetry.events == [
        ("program_run", {"dialect": "JavaKara", "commands": 5, "steps": 6, "error": "EXEC_INFINITE_LOOP"})
    ]


def test_push_mushrooms_setting_reaches_interpreter() -> None:
    world = create_world(3, 1, position=Position(0, 0), mushrooms=[(1, 0)])
    source = "def my_program(self):\n    kara.turn_right()\n    kara.move()\n"

    blocked = KaraEngine().run_program(source, "PythonKara", world)
    pushed = KaraEngine(push_mushrooms=True).run_program(source, "PythonKara", world)

    assert blocked.error is not None
    assert pushed.ok
    assert pushed.world.character.position == Position(1, 0)


def test_start_interpreter_defers_parsing() -> None:
    interpreter = KaraEngine().start_interpreter("def my_program\n  kara.move\n", "RubyKara", create_world(3, 3))

    assert interpreter.next().error is not None


def test_resolve_dialect_prefers_explicit_choice() -> None:
    engine = KaraEngine()

    assert engine.resolve_dialect("walker.py").name == "PythonKara"
    assert engine.resolve_dialect("walker.py", "ruby").name == "RubyKara"
    with pytest.raises(KeyError):
        engine.resolve_dialect("walker.txt")


def test_run_fsm_reports_invalid_program_as_result() -> None:
    telemetry = RecordingTelemetry()
    engine = KaraEngine(telemetry=telemetry)
    world = create_world(3, 3)

    result = engine.run_fsm(create_empty_fsm(), world)

    assert isinstance(result.error, InvalidState)
    assert result.world is world
    assert result.steps == 0
    assert telemetry.events[0][0] == "fsm_run"
    assert engine.check_fsm(create_empty_fsm())[0] is False


def test_step_fsm_and_run_fsm() -> None:
    program = FSMProgram(
        states=(
            State(
                "s",
                "S",
                transitions=(
                    Transition("turn", "s", {Sensor.TREE_AHEAD: True}, (Command.TURN_LEFT,)),
                    Transition("done", "stop", {Sensor.TREE_AHEAD: False}, ()),
                ),
            ),
            State("stop", "Stop"),
        ),
        start_state_id="s",
    )
    world = create_world(3, 3, position=Position(1, 0))
    engine = KaraEngine(fsm_max_steps=10)

    first = engine.step_fsm(world, program, "s")
    assert first.matched_transition_id == "turn"
    assert not first.stopped

    result = engine.run_fsm(program, world)
    assert result.stopped
    assert result.transitions == ["turn", "done"]


def test_logging_telemetry_writes_event(caplog: pytest.LogCaptureFixture) -> None:
    telemetry = LoggingTelemetry(logging.getLogger("tests.telemetry"))

    with caplog.at_level(logging.INFO, logger="tests.telemetry"):
        telemetry.emit("program_run", {"commands": 3})

    assert caplog.records[0].getMessage() == "program_run"
    assert caplog.records[0].payload == {"commands": 3}


def test_configure_logging_is_idempotent() -> None:
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level

    try:
        configure_logging("debug")
        configure_logging("DEBUG")
        added = [handler for handler in root.handlers if handler not in before]
        assert len(added) <= 1
        assert root.level == logging.DEBUG
    finally:
        for handler in [handler for handler in root.handlers if handler not in before]:
            root.removeHandler(handler)
        root.setLevel(level)


def test_validate_reports_escape_attempts_as_fatal() -> None:
    ok, error = KaraEngine().validate("function myProgram() {\n  kara.constructor();\n}", "JavaScriptKara")

    assert not ok
    assert isinstance(error, SandboxViolation)
    assert error.recoverable is False


def test_default_dialect_settles_unknown_extensions() -> None:
    engine = KaraEngine(default_dialect="PythonKara")

    assert engine.resolve_dialect("walker.txt").name == "PythonKara"
    assert engine.resolve_dialect("walker.rb").name == "RubyKara"


def test_load_source_rejects_binary_and_oversized_files(tmp_path: Path) -> None:
    binary = tmp_path / "walker.js"
    binary.write_bytes(b"\xff\xfe\x00\x81")
    large = tmp_path / "large.js"
    large.write_text("function myProgram() {}\n" + " " * 200, encoding="utf-8")
    engine = KaraEngine(max_file_bytes=100)

    with pytest.raises(FileInvalidFormat):
        engine.load_source(binary)
    with pytest.raises(FileTooLarge):
        engine.load_source(large)
