"""Grammar and builder shared by the curly-brace dialects (JavaKara, JavaScriptKara)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from lark import Token, v_args

from kara_runtime.dialects.base import (
    CAMEL_CASE_COMMANDS,
    CAMEL_CASE_SENSORS,
    Dialect,
    EntryPoint,
    ProgramBuilder,
    balanced_block,
    blank_out,
)
from kara_runtime.dialects.nodes import Repeat, Statement, While
from kara_runtime.errors import KaraSyntaxError

BRACE_GRAMMAR = r"""
start: statement*

?statement: action
          | bare_call
          | if_stmt
          | while_stmt
          | do_while_stmt
          | for_stmt
          | block

action: "kara" "." NAME "(" ")" $end
bare_call: NAME "(" ")" $end
block: "{" statement* "}"
body: statement

if_stmt: "if" "(" condition ")" body else_clause?
else_clause: "else" statement
while_stmt: "while" "(" condition ")" body
do_while_stmt: "do" block "while" "(" condition ")" $end
for_stmt: "for" "(" _for_decl? NAME "=" INT ";" NAME COMPARE INT ";" increment ")" body
_for_decl: "int" | "let" | "var"
increment: NAME "++"
         | "++" NAME
         | NAME "+=" INT

?condition: condition "||" conjunction -> or_
          | conjunction
?conjunction: conjunction "&&" negation -> and_
            | negation
?negation: "!" negation -> not_
         | atom
?atom: sensor
     | "true" -> true
     | "false" -> false
     | "(" condition ")"
sensor: "kara" "." NAME "(" ")"

COMPARE: "<=" | "<"

%import common.CNAME -> NAME
%import common.INT
%import common.WS
%ignore WS
"""

_LINE_COMMENT = re.compile(r"//[^\n]*")
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)


@dataclass(frozen=True, slots=True)
class Increment:
    name: str
    step: int


class BraceProgramBuilder(ProgramBuilder):
    def increment(self, children: list[Any]) -> Increment:
        tokens = [child for child in children if isinstance(child, Token)]
        step = int(tokens[1]) if len(tokens) > 1 else 1
        return Increment(str(tokens[0]), step)

    @v_args(meta=True)
    def for_stmt(self, meta: Any, children: list[Any]) -> Repeat:
        line = self.meta_line(meta)
        names = [str(child) for child in children if isinstance(child, Token) and child.type == "NAME"]
        numbers = [int(child) for child in children if isinstance(child, Token) and child.type == "INT"]
        compare = next(str(child) for child in children if isinstance(child, Token) and child.type == "COMPARE")
        increment = next(child for child in children if isinstance(child, Increment))
        body: list[Statement] = children[-1]

        variable = names[0]
        if any(name != variable for name in names[1:]) or increment.name != variable:
            raise KaraSyntaxError(
                f"Syntax error on line {line}: a for loop must count with a single variable ({variable}).",
                line=line,
                dialect=self.dialect.name,
            )
        if increment.step != 1:
            raise KaraSyntaxError(
                f"Syntax error on line {line}: for loops can only count up by one.",
                line=line,
                dialect=self.dialect.name,
            )

        start, stop = numbers
        count = stop - start + (1 if compare == "<=" else 0)
        return Repeat(max(count, 0), tuple(body), line)

    @v_args(meta=True)
    def do_while_stmt(self, meta: Any, children: list[Any]) -> list[Statement]:
        body: list[Statement] = children[0]
        return [*body, While(children[1], tuple(body), self.meta_line(meta))]


class BraceDialect(Dialect):
    """A dialect whose entry procedure body sits between curly braces."""

    commands = CAMEL_CASE_COMMANDS
    sensors = CAMEL_CASE_SENSORS
    builder_class = BraceProgramBuilder
    entry_pattern: re.Pattern[str] = re.compile(r"(?!)")
    statement_end = '";"'

    def __init__(self) -> None:
        super().__init__()
        self.grammar = BRACE_GRAMMAR.replace("$end", self.statement_end)

    def strip_comments(self, source: str) -> str:
        without_blocks = _BLOCK_COMMENT.sub(blank_out, source)
        return _LINE_COMMENT.sub("", without_blocks)

    def find_entry(self, source: str) -> EntryPoint | None:
        match = self.entry_pattern.search(source)
        if match is None:
            return None
        open_index = match.end() - 1
        block = balanced_block(source, open_index)
        line = source.count("\n", 0, open_index) + 1
        if block is None:
            raise KaraSyntaxError(
                f"Syntax error on line {line}: the {self.entry_name} method is missing its closing brace.",
                line=line,
                dialect=self.name,
            )
        body, _ = block
        return EntryPoint(body, line)
