from __future__ import annotations

import builtins

import pytest

from kara_runtime.dialects.nodes import And, Literal, Not, Or, SensorRead
from kara_runtime.errors import ErrorCode, KaraError, SandboxViolation, UnknownName
from kara_runtime.interpreter import StreamingInterpreter
from kara_runtime.sandbox import COMMON_FORBIDDEN, Sandbox, compile_program, evaluate_condition
from kara_runtime.vocabulary import Command, Sensor
from kara_runtime.world import Position, create_world

ESCAPE_CORPUS = [
    ("JavaScriptKara", "function myProgram() {\n  kara.constructor.constructor('return process')();\n}", "reflection"),
    ("JavaScriptKara", "function myProgram() {\n  ({}).__proto__.move = 1;\n}", "reflection"),
    ("JavaScriptKara", "function myProgram() {\n  Object.prototype.polluted = true;\n}", "host"),
    ("JavaScriptKara", "function myProgram() {\n  Function('return this')();\n}", "reflection"),
    ("JavaScriptKara", "function myProgram() {\n  setTimeout(kara.move, 10);\n}", "timer"),
    ("JavaScriptKara", "function myProgram() {\n  localStorage.setItem('k', 'v');\n}", "storage"),
    ("JavaScriptKara", "function myProgram() {\n  fetch('http://example.com');\n}", "network"),
    ("JavaKara", "void myProgram() {\n  System.exit(0);\n}", "host"),
    ("JavaKara", "void myProgram() {\n  Runtime.getRuntime().exec(\"rm\");\n}", "host"),
    ("PythonKara", "def my_program(self):\n    __import__('os').system('ls')\n", "reflection"),
    ("PythonKara", "def my_program(self):\n    eval('kara.move()')\n", "reflection"),
    ("PythonKara", "def my_program(self):\n    kara.__class__.__bases__\n", "reflection"),
    ("PythonKara", "def my_program(self):\n    open('/etc/passwd')\n", "storage"),
    ("RubyKara", "def my_program\n  `ls`\nend\n", "process"),
    ("RubyKara", "def my_program\n  kara.send(:move)\nend\n", "host"),
    ("RubyKara", "def my_program\n  sleep 1\nend\n", "timer"),
]


@pytest.mark.parametrize(("dialect", "source", "category"), ESCAPE_CORPUS)
def test_escape_attempts_raise_sandbox_violation(dialect: str, source: str, category: str) -> None:
    with pytest.raises(SandboxViolation) as excinfo:
        compile_program(source, dialect)

    error = excinfo.value
    assert error.code == ErrorCode.EXEC_SANDBOX_VIOLATION
    assert error.context["category"] == category
    assert error.context["line"] == 2
    assert error.recoverable is False


def test_escape_attempts_leave_host_environment_unchanged() -> None:
    builtin_names = set(vars(builtins))
    object_attributes = set(dir(object))
    module_names = set(globals())

    for dialect, source, _ in ESCAPE_CORPUS:
        with pytest.raises(KaraError):
            compile_program(source, dialect)

    assert set(vars(builtins)) == builtin_names
    assert set(dir(object)) == object_attributes
    assert set(globals()) == module_names
    assert not hasattr(Command, "polluted")


def test_unknown_names_are_not_silently_ignored() -> None:
    with pytest.raises(UnknownName):
        compile_program("function myProgram() {\n  navigatorx();\n}", "JavaScriptKara")


def test_violation_in_run_never_touches_world() -> None:
    world = create_world(3, 3, position=Position(1, 1))
    source = "function myProgram() {\n  kara.move();\n  globalThis.kara = null;\n}"

    interpreter = StreamingInterpreter(source, world, dialect="JavaScriptKara")
    result = interpreter.next()

    assert result.done
    assert isinstance(result.error, SandboxViolation)
    assert interpreter.world == world
    assert interpreter.applied_commands == []


def test_only_entry_body_is_screened() -> None:
    source = """public class MyProgram extends JavaKaraProgram {
    void helper() {
        System.exit(0);
    }

    void myProgram() {
        kara.move();
    }
}"""

    program = compile_program(source, "JavaKara")

    assert [statement.command for statement in program.body] == [Command.MOVE_FORWARD]


def test_bindings_expose_only_the_vocabulary() -> None:
    bindings = Sandbox("JavaKara").bindings()

    assert bindings["move"] == Command.MOVE_FORWARD
    assert bindings["treeFront"] == Sensor.TREE_AHEAD
    assert set(bindings.values()) <= set(Command) | set(Sensor)
    assert not COMMON_FORBIDDEN & set(bindings)


def test_extra_forbidden_names_are_screened() -> None:
    sandbox = Sandbox("PythonKara", extra_forbidden={"hack"})

    assert sandbox.is_forbidden("hack")
    assert sandbox.is_forbidden("__dict__")
    assert not sandbox.is_forbidden("move")
    with pytest.raises(SandboxViolation):
        sandbox.compile("def my_program(self):\n    hack()\n")


def test_evaluate_condition_combinators() -> None:
    world = create_world(3, 3, position=Position(1, 0), clovers=[(1, 0)])
    tree = SensorRead(Sensor.TREE_AHEAD)
    clover = SensorRead(Sensor.ON_CLOVER)

    assert evaluate_condition(And(tree, clover), world)
    assert not evaluate_condition(And(tree, Not(clover)), world)
    assert evaluate_condition(Or(Literal(False), clover), world)
    assert not evaluate_condition(Not(Or(tree, clover)), world)


@pytest.mark.parametrize(
    ("dialect", "source"),
    [
        ("JavaScriptKara", "function myProgram() {\n  for (let call = 0; call < 2; call++) { kara.move() }\n}"),
        ("PythonKara", "def my_program(self):\n    for open in range(2):\n        kara.move()\n"),
        ("RubyKara", "def my_program\n  2.times do |exit|\n    kara.move\n  end\nend\n"),
    ],
)
def test_loop_counter_may_use_any_plain_name(dialect: str, source: str) -> None:
    program = compile_program(source, dialect)

    assert program.body[0].count == 2


def test_counter_name_is_still_screened_outside_loop_header() -> None:
    source = "function myProgram() {\n  for (let call = 0; call < 2; call++) {\n    call()\n  }\n}"

    with pytest.raises(SandboxViolation) as excinfo:
        compile_program(source, "JavaScriptKara")

    assert excinfo.value.context["line"] == 3
