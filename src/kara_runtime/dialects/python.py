"""PythonKara: ``def my_program(self):`` with an indented body, snake_case vocabulary."""

from __future__ import annotations

import re
import textwrap
from typing import Any

from lark import Lark, Token, v_args
from lark.indenter import Indenter

from kara_runtime.dialects.base import (
    SNAKE_CASE_COMMANDS,
    SNAKE_CASE_SENSORS,
    Dialect,
    EntryPoint,
    ProgramBuilder,
    blank_out,
)
from kara_runtime.dialects.nodes import Repeat
from kara_runtime.errors import KaraSyntaxError

TEMPLATE = '''from pythonkara import PythonKaraProgram

"""
COMMANDS:
    kara.move()             kara.turn_right()       kara.turn_left()
    kara.put_leaf()         kara.remove_leaf()
SENSORS:
    kara.tree_front()       kara.tree_left()        kara.tree_right()
    kara.mushroom_front()   kara.on_leaf()
"""

class MyProgram(PythonKaraProgram):
    def my_program(self):
        # put your main program here, for example:
        while not kara.tree_front():
            kara.move()
'''

PYTHON_GRAMMAR = r"""
start: (_NL | statement)*

?statement: action
          | bare_call
          | pass_stmt
          | if_stmt
          | while_stmt
          | range_loop

action: "kara" "." NAME "(" ")" _NL
bare_call: NAME "(" ")" _NL
pass_stmt: "pass" _NL

if_stmt: "if" condition ":" suite elif_clause* else_clause?
elif_clause: "elif" condition ":" suite
else_clause: "else" ":" suite
while_stmt: "while" condition ":" suite
range_loop: "for" NAME "in" "range" "(" INT ("," INT)? ")" ":" suite

suite: _NL _INDENT statement+ _DEDENT

?condition: condition "or" conjunction -> or_
          | conjunction
?conjunction: conjunction "and" negation -> and_
            | negation
?negation: "not" negation -> not_
         | atom
?atom: sensor
     | "True" -> true
     | "False" -> false
     | "(" condition ")"
sensor: "kara" "." NAME "(" ")"

%import common.CNAME -> NAME
%import common.INT
%import common.WS_INLINE
%declare _INDENT _DEDENT
%ignore WS_INLINE

_NL: /(\r?\n[\t ]*)+/
"""

_ENTRY = re.compile(r"^([ \t]*)def\s+my_program\s*\(\s*(?:self)?\s*\)\s*:[ \t]*$", re.MULTILINE)
_LINE_COMMENT = re.compile(r"#[^\n]*")
_DOCSTRING = re.compile(r'("""|\'\'\').*?\1', re.DOTALL)


class PythonIndenter(Indenter):
    NL_type = "_NL"
    OPEN_PAREN_types = ["LPAR"]
    CLOSE_PAREN_types = ["RPAR"]
    INDENT_type = "_INDENT"
    DEDENT_type = "_DEDENT"
    tab_len = 8


class PythonProgramBuilder(ProgramBuilder):
    @v_args(meta=True)
    def range_loop(self, meta: Any, children: list[Any]) -> Repeat:
        numbers = [int(child) for child in children if isinstance(child, Token) and child.type == "INT"]
        start, stop = (0, numbers[0]) if len(numbers) == 1 else numbers
        return Repeat(max(stop - start, 0), tuple(children[-1]), self.meta_line(meta))


class PythonKara(Dialect):
    name = "PythonKara"
    extensions = (".py",)
    entry_name = "my_program"
    entry_construct = "def my_program(self):"
    example = "def my_program(self):\n    kara.move()"
    template = TEMPLATE
    grammar = PYTHON_GRAMMAR
    commands = SNAKE_CASE_COMMANDS
    sensors = SNAKE_CASE_SENSORS
    builder_class = PythonProgramBuilder
    forbidden_names = frozenset(
        {
            "lambda",
            "import",
            "from",
            "global",
            "nonlocal",
            "compile",
            "globals",
            "locals",
            "vars",
            "dir",
            "getattr",
            "setattr",
            "delattr",
            "type",
            "object",
            "builtins",
            "sys",
            "subprocess",
            "socket",
            "shutil",
            "pickle",
            "input",
            "breakpoint",
        }
    )

    def build_parser(self) -> Lark:
        return Lark(self.grammar, parser="lalr", postlex=PythonIndenter(), propagate_positions=True)

    def strip_comments(self, source: str) -> str:
        without_docstrings = _DOCSTRING.sub(blank_out, source)
        return _LINE_COMMENT.sub("", without_docstrings)

    def find_entry(self, source: str) -> EntryPoint | None:
        match = _ENTRY.search(source)
        if match is None:
            return None
        header_indent = _indent(match.group(1))
        header_line = source.count("\n", 0, match.start()) + 1
        lines = source[match.end() :].split("\n")[1:]

        body: list[str] = []
        for line in lines:
            if line.strip() and _indent(line) <= header_indent:
                break
            body.append(line)
        while body and not body[0].strip():
            body.pop(0)
            header_line += 1
        while body and not body[-1].strip():
            body.pop()

        if not body:
            raise KaraSyntaxError(
                f"Syntax error on line {header_line}: the my_program method has no body. "
                "Indent at least one statement below it, or write pass.",
                line=header_line,
                dialect=self.name,
            )
        return EntryPoint("\n".join(body), header_line + 1)

    def prepare(self, body: str) -> str:
        return textwrap.dedent(body) + "\n"


def _indent(line: str) -> int:
    return len(line.expandtabs(8)) - len(line.expandtabs(8).lstrip())
