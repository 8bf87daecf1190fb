"""Containment layer between learner source and the program tree.

Learner code is never evaluated by the host interpreter. The sandbox screens
the entry body for names that would reach host capabilities, hands the
remainder to the dialect grammar, and evaluates conditions over the
resulting tree using only :func:`read_sensor`.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

from kara_runtime.dialects import Dialect, EntryPoint, get_dialect
from kara_runtime.dialects.nodes import And, Condition, Literal, Not, Or, Program, SensorRead
from kara_runtime.errors import SandboxViolation
from kara_runtime.vocabulary import Command, Sensor, read_sensor
from kara_runtime.world.model import World

FORBIDDEN_CATEGORIES: dict[str, frozenset[str]] = {
    "reflection": frozenset(
        {
            "eval",
            "exec",
            "execfile",
            "Function",
            "AsyncFunction",
            "GeneratorFunction",
            "constructor",
            "prototype",
            "__proto__",
            "caller",
            "callee",
            "bind",
            "apply",
            "call",
        }
    ),
    "host": frozenset(
        {
            "globalThis",
            "global",
            "window",
            "process",
            "require",
            "module",
            "exports",
            "Deno",
            "Bun",
            "os",
            "builtins",
            "quit",
            "exit",
        }
    ),
    "timer": frozenset({"setTimeout", "setInterval", "clearTimeout", "clearInterval", "sleep"}),
    "storage": frozenset({"localStorage", "sessionStorage", "indexedDB", "open", "File", "FileReader", "Blob"}),
    "network": frozenset({"fetch", "XMLHttpRequest", "WebSocket", "socket", "urllib", "http", "requests"}),
    "process": frozenset({"subprocess", "system", "popen", "spawn", "fork"}),
}

COMMON_FORBIDDEN: frozenset[str] = frozenset().union(*FORBIDDEN_CATEGORIES.values())

_IDENTIFIER = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
_DUNDER = re.compile(r"^__\w*__$")
_SHELL_LITERAL = re.compile(r"`|%x\{")
# Headers that declare a loop counter; the counter name inside them is not screened.
_COUNTER_HEADERS = (
    re.compile(r"\bfor\s*\(\s*(?:int\s+|let\s+|var\s+)?([A-Za-z_$][A-Za-z0-9_$]*)\s*=[^)]*\)"),
    re.compile(r"\bfor\s+([A-Za-z_]\w*)\s+in\b"),
    re.compile(r"\|\s*([A-Za-z_]\w*)\s*\|"),
)

logger = logging.getLogger("kara_runtime.sandbox")


def _counter_spans(text: str) -> set[tuple[int, int]]:
    spans: set[tuple[int, int]] = set()
    for pattern in _COUNTER_HEADERS:
        for header in pattern.finditer(text):
            counter = header.group(1)
            if _DUNDER.match(counter):
                continue
            for match in _IDENTIFIER.finditer(text, header.start(), header.end()):
                if match.group(0) == counter:
                    spans.add(match.span())
    return spans


def _category(name: str) -> str:
    for category, names in FORBIDDEN_CATEGORIES.items():
        if name in names:
            return category
    if _DUNDER.match(name):
        return "reflection"
    return "host"


class Sandbox:
    """Compiles learner source for one dialect into a closed program tree."""

    def __init__(self, dialect: str | Dialect, *, extra_forbidden: Iterable[str] = ()) -> None:
        self.dialect = get_dialect(dialect)
        self.forbidden = COMMON_FORBIDDEN | self.dialect.forbidden_names | frozenset(extra_forbidden)

    def bindings(self) -> dict[str, Command | Sensor]:
        """Every name a program in this dialect can reach, and what it resolves to."""
        table: dict[str, Command | Sensor] = dict(self.dialect.commands)
        table.update(self.dialect.sensors)
        return table

    def is_forbidden(self, name: str) -> bool:
        return name in self.forbidden or bool(_DUNDER.match(name))

    def screen(self, entry: EntryPoint) -> None:
        """Raise ``SandboxViolation`` for the first host-capable name in the entry body."""
        for offset, text in enumerate(entry.body.split("\n")):
            line = entry.line + offset
            if _SHELL_LITERAL.search(text):
                self._violation("shell command literal", line, "process")
            counters = _counter_spans(text)
            for match in _IDENTIFIER.finditer(text):
                if match.span() in counters:
                    continue
                name = match.group(0)
                if self.is_forbidden(name):
                    self._violation(name, line, _category(name))

    def _violation(self, name: str, line: int, category: str) -> None:
        logger.warning(
            "sandbox_violation",
            extra={"dialect": self.dialect.name, "identifier": name, "line": line, "category": category},
        )
        raise SandboxViolation(
            f'Error on line {line}: "{name}" is not available in Kara programs. '
            "Only kara commands and sensors can be used.",
            name=name,
            line=line,
            category=category,
            dialect=self.dialect.name,
        )

    def compile(self, source: str) -> Program:
        entry = self.dialect.extract_entry(source)
        self.screen(entry)
        return self.dialect.parse_entry(entry)


def compile_program(source: str, dialect: str | Dialect) -> Program:
    return Sandbox(dialect).compile(source)


def evaluate_condition(condition: Condition, world: World) -> bool:
    """Evaluate a condition tree against ``world`` without mutating it."""
    if isinstance(condition, SensorRead):
        return read_sensor(world, condition.sensor)
    if isinstance(condition, Literal):
        return condition.value
    if isinstance(condition, Not):
        return not evaluate_condition(condition.operand, world)
    if isinstance(condition, And):
        return evaluate_condition(condition.left, world) and evaluate_condition(condition.right, world)
    if isinstance(condition, Or):
        return evaluate_condition(condition.left, world) or evaluate_condition(condition.right, world)
    raise TypeError(f"Unsupported condition node: {condition!r}")
