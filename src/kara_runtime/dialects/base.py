"""Shared front-end machinery: entry-point extraction, lark parsing and tree building.

Each dialect owns a closed lark grammar and a lexical table mapping its
spellings onto :class:`Command` and :class:`Sensor`. Source is never handed
to a host evaluator; the parse tree is rebuilt into the tagged nodes from
:mod:`kara_runtime.dialects.nodes` and nothing else.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import LarkError, UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken, VisitError

from kara_runtime.dialects.nodes import (
    Action,
    And,
    Condition,
    If,
    Literal,
    Not,
    Or,
    Program,
    SensorRead,
    Statement,
    While,
)
from kara_runtime.errors import EmptySource, KaraError, KaraSyntaxError, MissingEntryPoint, UnknownName
from kara_runtime.vocabulary import Command, Sensor

CAMEL_CASE_COMMANDS: dict[str, Command] = {
    "move": Command.MOVE_FORWARD,
    "turnLeft": Command.TURN_LEFT,
    "turnRight": Command.TURN_RIGHT,
    "putLeaf": Command.PLACE_DOWN,
    "removeLeaf": Command.PICK_UP,
}

CAMEL_CASE_SENSORS: dict[str, Sensor] = {
    "treeFront": Sensor.TREE_AHEAD,
    "treeLeft": Sensor.TREE_LEFT,
    "treeRight": Sensor.TREE_RIGHT,
    "mushroomFront": Sensor.MUSHROOM_AHEAD,
    "obstacleFront": Sensor.OBSTACLE_AHEAD,
    "onLeaf": Sensor.ON_CLOVER,
}

SNAKE_CASE_COMMANDS: dict[str, Command] = {
    "move": Command.MOVE_FORWARD,
    "turn_left": Command.TURN_LEFT,
    "turn_right": Command.TURN_RIGHT,
    "put_leaf": Command.PLACE_DOWN,
    "remove_leaf": Command.PICK_UP,
}

SNAKE_CASE_SENSORS: dict[str, Sensor] = {
    "tree_front": Sensor.TREE_AHEAD,
    "tree_left": Sensor.TREE_LEFT,
    "tree_right": Sensor.TREE_RIGHT,
    "mushroom_front": Sensor.MUSHROOM_AHEAD,
    "obstacle_front": Sensor.OBSTACLE_AHEAD,
    "on_leaf": Sensor.ON_CLOVER,
}


@dataclass(frozen=True, slots=True)
class EntryPoint:
    """Body of the entry procedure and the source line it starts on."""

    body: str
    line: int = 1


def blank_out(match: re.Match[str]) -> str:
    """Replacement that drops a comment but keeps its line breaks."""
    return "\n" * match.group(0).count("\n")


def flatten(children: list[Any]) -> list[Statement]:
    statements: list[Statement] = []
    for child in children:
        if isinstance(child, list):
            statements.extend(child)
        elif child is not None and not isinstance(child, Token):
            statements.append(child)
    return statements


def chain_if(condition: Condition, body: list[Statement], rest: list[Any], line: int) -> If:
    """Fold trailing ``elif`` nodes and an optional ``else`` list into one ``If``."""
    orelse: list[Statement] = []
    clauses = list(rest)
    if clauses and isinstance(clauses[-1], list):
        orelse = clauses.pop()
    for clause in reversed(clauses):
        orelse = [If(clause.condition, clause.body, tuple(orelse), clause.line)]
    return If(condition, tuple(body), tuple(orelse), line)


class ProgramBuilder(Transformer):
    """Turns a dialect parse tree into program nodes, resolving every name."""

    def __init__(self, dialect: Dialect, line_offset: int = 1) -> None:
        super().__init__()
        self.dialect = dialect
        self.line_offset = line_offset

    def absolute_line(self, line: int | None) -> int:
        if not line or line < 1:
            return 0
        return self.line_offset + line - 1

    def meta_line(self, meta: Any) -> int:
        if getattr(meta, "empty", True):
            return 0
        return self.absolute_line(meta.line)

    def name_token(self, children: list[Any]) -> Token:
        return next(child for child in children if isinstance(child, Token) and child.type == "NAME")

    def start(self, children: list[Any]) -> list[Statement]:
        return flatten(children)

    block = start
    body = start
    suite = start
    else_clause = start

    def pass_stmt(self, children: list[Any]) -> list[Statement]:
        return []

    def action(self, children: list[Any]) -> Action:
        token = self.name_token(children)
        return Action(self.dialect.resolve_command(token.value, self.absolute_line(token.line)), self.absolute_line(token.line))

    def bare_call(self, children: list[Any]) -> None:
        token = self.name_token(children)
        line = self.absolute_line(token.line)
        name = self.dialect.normalize_name(token.value)
        if name in self.dialect.commands or name in self.dialect.sensors:
            raise UnknownName(
                f'Error on line {line}: "{token.value}" must be called on kara, for example {self.dialect.call_example(name)}',
                name=token.value,
                line=line,
                dialect=self.dialect.name,
            )
        raise self.dialect.unknown_name(token.value, line)

    def sensor(self, children: list[Any]) -> SensorRead:
        token = self.name_token(children)
        return SensorRead(self.dialect.resolve_sensor(token.value, self.absolute_line(token.line)))

    def or_(self, children: list[Any]) -> Or:
        return Or(children[0], children[1])

    def and_(self, children: list[Any]) -> And:
        return And(children[0], children[1])

    def not_(self, children: list[Any]) -> Not:
        return Not(children[0])

    def true(self, children: list[Any]) -> Literal:
        return Literal(True)

    def false(self, children: list[Any]) -> Literal:
        return Literal(False)

    @v_args(meta=True)
    def if_stmt(self, meta: Any, children: list[Any]) -> If:
        return chain_if(children[0], children[1], children[2:], self.meta_line(meta))

    @v_args(meta=True)
    def elif_clause(self, meta: Any, children: list[Any]) -> If:
        return If(children[0], tuple(children[1]), (), self.meta_line(meta))

    @v_args(meta=True)
    def while_stmt(self, meta: Any, children: list[Any]) -> While:
        return While(children[0], tuple(children[1]), self.meta_line(meta))


class Dialect:
    """One surface syntax for the shared vocabulary."""

    name: str = ""
    extensions: tuple[str, ...] = ()
    entry_name: str = ""
    entry_construct: str = ""
    example: str = ""
    template: str = ""
    grammar: str = ""
    commands: Mapping[str, Command] = {}
    sensors: Mapping[str, Sensor] = {}
    forbidden_names: frozenset[str] = frozenset()
    builder_class: type[ProgramBuilder] = ProgramBuilder

    def __init__(self) -> None:
        self._parser: Lark | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    @property
    def parser(self) -> Lark:
        if self._parser is None:
            self._parser = self.build_parser()
        return self._parser

    def build_parser(self) -> Lark:
        return Lark(self.grammar, parser="lalr", propagate_positions=True)

    # Dialect hooks

    def strip_comments(self, source: str) -> str:
        raise NotImplementedError

    def find_entry(self, source: str) -> EntryPoint | None:
        raise NotImplementedError

    def prepare(self, body: str) -> str:
        return body

    def normalize_name(self, name: str) -> str:
        return name

    def call_example(self, name: str) -> str:
        return f"kara.{name}()"

    # Validation and parsing

    def missing_entry_message(self) -> str:
        return (
            f'Could not find the main program method. Please define a "{self.entry_name}" '
            f"method in your code ({self.entry_construct}).\n\nExample:\n{self.example}"
        )

    def extract_entry(self, source: str) -> EntryPoint:
        if source is None or not source.strip():
            raise EmptySource(
                f"Your {self.name} program is empty. Write a {self.entry_construct} method first.",
                dialect=self.name,
                expected=self.entry_construct,
            )
        entry = self.find_entry(self.strip_comments(source))
        if entry is None:
            raise MissingEntryPoint(
                self.missing_entry_message(),
                dialect=self.name,
                expected=self.entry_construct,
            )
        return entry

    def validate(self, source: str) -> None:
        """Syntactic pre-check; raises a ``ValidationError`` subclass."""
        self.parse(source)

    def parse(self, source: str) -> Program:
        return self.parse_entry(self.extract_entry(source))

    def parse_entry(self, entry: EntryPoint) -> Program:
        text = self.prepare(entry.body)
        builder = self.builder_class(self, entry.line)
        try:
            tree = self.parser.parse(text)
            statements = builder.transform(tree)
        except VisitError as exc:
            if isinstance(exc.orig_exc, KaraError):
                raise exc.orig_exc from None
            if isinstance(exc.orig_exc, RecursionError):
                raise self._too_deep() from None
            raise KaraSyntaxError(f"Syntax error: {exc.orig_exc}", dialect=self.name) from None
        except UnexpectedInput as exc:
            raise self._syntax_error(exc, entry.line) from None
        except LarkError as exc:
            raise KaraSyntaxError(f"Syntax error: {exc}", dialect=self.name) from None
        except RecursionError:
            raise self._too_deep() from None
        return Program(dialect=self.name, body=tuple(statements))

    def _too_deep(self) -> KaraSyntaxError:
        return KaraSyntaxError("Syntax error: the program is nested too deeply.", dialect=self.name)

    def _syntax_error(self, exc: UnexpectedInput, line_offset: int) -> KaraSyntaxError:
        line_no = getattr(exc, "line", -1) or -1
        line = line_offset + line_no - 1 if line_no > 0 else None
        where = f" on line {line}" if line else ""
        if isinstance(exc, UnexpectedEOF):
            detail = "the program ended unexpectedly. You might be missing a closing bracket or keyword."
        elif isinstance(exc, UnexpectedToken):
            found = exc.token.value if exc.token.type != "$END" else "end of program"
            if exc.token.type in {"_NL", "_INDENT", "_DEDENT"}:
                found = {"_NL": "line break", "_INDENT": "indentation", "_DEDENT": "dedent"}[exc.token.type]
            detail = f'unexpected "{found}". You might be missing a semicolon, bracket, or using an incorrect keyword.'
        elif isinstance(exc, UnexpectedCharacters):
            detail = f'unexpected character "{exc.char}".'
        else:
            detail = str(exc)
        return KaraSyntaxError(f"Syntax error{where}: {detail}", dialect=self.name, line=line)

    # Name resolution

    def resolve_command(self, name: str, line: int = 0) -> Command:
        key = self.normalize_name(name)
        if key in self.commands:
            return self.commands[key]
        if key in self.sensors:
            raise UnknownName(
                f'Error on line {line}: "{name}" is a sensor and can only be used in a condition.',
                name=name,
                line=line,
                dialect=self.name,
            )
        raise self.unknown_name(name, line)

    def resolve_sensor(self, name: str, line: int = 0) -> Sensor:
        key = self.normalize_name(name)
        if key in self.sensors:
            return self.sensors[key]
        if key in self.commands:
            raise UnknownName(
                f'Error on line {line}: "{name}" is a command and cannot be used as a condition.',
                name=name,
                line=line,
                dialect=self.name,
            )
        raise self.unknown_name(name, line)

    def unknown_name(self, name: str, line: int = 0) -> UnknownName:
        available = ", ".join(self.commands)
        return UnknownName(
            f'Error on line {line}: "{name}" is not a Kara method. Available Kara methods: {available}',
            name=name,
            line=line,
            dialect=self.name,
        )


def balanced_block(source: str, open_index: int) -> tuple[str, int] | None:
    """Text between the brace at ``open_index`` and its partner, plus the end offset."""
    depth = 0
    for index in range(open_index, len(source)):
        char = source[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return source[open_index + 1 : index], index
    return None
