"""Tagged program tree every dialect compiles into.

The tree can only express vocabulary commands, sensor reads, boolean logic,
``if``, ``while`` and counted repetition. There is no node that names
anything else, so an evaluator walking it has nothing to escape through.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from kara_runtime.vocabulary import Command, Sensor


@dataclass(frozen=True, slots=True)
class SensorRead:
    sensor: Sensor


@dataclass(frozen=True, slots=True)
class Literal:
    value: bool


@dataclass(frozen=True, slots=True)
class Not:
    operand: Condition


@dataclass(frozen=True, slots=True)
class And:
    left: Condition
    right: Condition


@dataclass(frozen=True, slots=True)
class Or:
    left: Condition
    right: Condition


Condition = Union[SensorRead, Literal, Not, And, Or]


@dataclass(frozen=True, slots=True)
class Action:
    command: Command
    line: int = 0


@dataclass(frozen=True, slots=True)
class If:
    condition: Condition
    body: tuple[Statement, ...]
    orelse: tuple[Statement, ...] = ()
    line: int = 0


@dataclass(frozen=True, slots=True)
class While:
    condition: Condition
    body: tuple[Statement, ...]
    line: int = 0


@dataclass(frozen=True, slots=True)
class Repeat:
    count: int
    body: tuple[Statement, ...]
    line: int = 0


Statement = Union[Action, If, While, Repeat]


@dataclass(frozen=True, slots=True)
class Program:
    dialect: str
    body: tuple[Statement, ...]


def count_actions(body: tuple[Statement, ...]) -> int:
    """Static number of primitive calls written in the source."""
    total = 0
    for statement in body:
        if isinstance(statement, Action):
            total += 1
        elif isinstance(statement, If):
            total += count_actions(statement.body) + count_actions(statement.orelse)
        elif isinstance(statement, (While, Repeat)):
            total += count_actions(statement.body)
    return total


def has_loops(body: tuple[Statement, ...]) -> bool:
    for statement in body:
        if isinstance(statement, (While, Repeat)):
            return True
        if isinstance(statement, If) and (has_loops(statement.body) or has_loops(statement.orelse)):
            return True
    return False
