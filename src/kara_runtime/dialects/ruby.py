"""RubyKara: ``def my_program ... end``, snake_case vocabulary, ``?`` sensors.

Newlines carry no meaning in this grammar; blocks are delimited by keywords.
"""

from __future__ import annotations

import re
from typing import Any

from lark import Token, v_args

from kara_runtime.dialects.base import (
    SNAKE_CASE_COMMANDS,
    SNAKE_CASE_SENSORS,
    Dialect,
    EntryPoint,
    ProgramBuilder,
    blank_out,
)
from kara_runtime.dialects.nodes import If, Literal, Not, Repeat, While
from kara_runtime.errors import KaraSyntaxError

TEMPLATE = """require 'rubykara'

# COMMANDS:
#   kara.move               kara.turn_right         kara.turn_left
#   kara.put_leaf           kara.remove_leaf
# SENSORS:
#   kara.tree_front?        kara.tree_left?         kara.tree_right?
#   kara.mushroom_front?    kara.on_leaf?

class MyProgram < RubyKaraProgram
  def my_program
    # put your main program here, for example:
    while !kara.tree_front?
      kara.move
    end
  end
end
"""

RUBY_GRAMMAR = r"""
start: statement*

?statement: action
          | bare_call
          | if_stmt
          | unless_stmt
          | while_stmt
          | until_stmt
          | loop_stmt
          | times_stmt
          | range_loop

action: "kara" "." NAME ("(" ")")?
bare_call: NAME ("(" ")")?

if_stmt: "if" condition "then"? body elif_clause* else_clause? "end"
elif_clause: "elsif" condition "then"? body
else_clause: "else" body
unless_stmt: "unless" condition "then"? body else_clause? "end"
while_stmt: "while" condition "do"? body "end"
until_stmt: "until" condition "do"? body "end"
loop_stmt: "loop" _block
times_stmt: INT "." "times" _block
range_loop: "for" NAME "in" INT RANGE INT "do"? body "end"

_block: "do" _params? body "end"
      | "{" _params? body "}"
_params: "|" NAME "|"

body: statement*

?condition: condition ("||" | "or") conjunction -> or_
          | conjunction
?conjunction: conjunction ("&&" | "and") negation -> and_
            | negation
?negation: ("!" | "not") negation -> not_
         | atom
?atom: sensor
     | "true" -> true
     | "false" -> false
     | "(" condition ")"
sensor: "kara" "." NAME ("(" ")")?

NAME: /[a-z_][A-Za-z0-9_]*\??/
RANGE: "..." | ".."
SEMICOLON: ";"

%import common.INT
%import common.WS
%ignore WS
%ignore SEMICOLON
"""

_ENTRY = re.compile(r"^[ \t]*def\s+my_program\b(?:\s*\(\s*\))?[^\n]*$", re.MULTILINE)
_LINE_COMMENT = re.compile(r"#[^\n]*")
_BLOCK_COMMENT = re.compile(r"^=begin\b.*?^=end\b[^\n]*", re.DOTALL | re.MULTILINE)
_WORD = re.compile(r"[A-Za-z_][A-Za-z0-9_]*[?!]?")

_LINE_OPENERS = frozenset({"if", "unless", "while", "until", "for", "def", "class", "module", "begin", "case"})
_LOOP_OPENERS = frozenset({"while", "until", "for"})


def _depth_change(line: str) -> int:
    """Net block depth a line opens, counting keyword openers against ``end``."""
    words = _WORD.findall(line)
    if not words:
        return 0
    change = -words.count("end")
    if words[0] in _LINE_OPENERS:
        change += 1
        if words[0] not in _LOOP_OPENERS:
            change += words[1:].count("do")
    else:
        change += words.count("do")
    return change


class RubyProgramBuilder(ProgramBuilder):
    @v_args(meta=True)
    def unless_stmt(self, meta: Any, children: list[Any]) -> If:
        orelse = children[2] if len(children) > 2 else []
        return If(Not(children[0]), tuple(children[1]), tuple(orelse), self.meta_line(meta))

    @v_args(meta=True)
    def until_stmt(self, meta: Any, children: list[Any]) -> While:
        return While(Not(children[0]), tuple(children[1]), self.meta_line(meta))

    @v_args(meta=True)
    def loop_stmt(self, meta: Any, children: list[Any]) -> While:
        return While(Literal(True), tuple(children[-1]), self.meta_line(meta))

    @v_args(meta=True)
    def times_stmt(self, meta: Any, children: list[Any]) -> Repeat:
        return Repeat(int(children[0]), tuple(children[-1]), self.meta_line(meta))

    @v_args(meta=True)
    def range_loop(self, meta: Any, children: list[Any]) -> Repeat:
        tokens = [child for child in children if isinstance(child, Token)]
        start, dots, stop = int(tokens[1]), str(tokens[2]), int(tokens[3])
        count = stop - start + (1 if dots == ".." else 0)
        return Repeat(max(count, 0), tuple(children[-1]), self.meta_line(meta))


class RubyKara(Dialect):
    name = "RubyKara"
    extensions = (".rb",)
    entry_name = "my_program"
    entry_construct = "def my_program ... end"
    example = "def my_program\n  kara.move\nend"
    template = TEMPLATE
    grammar = RUBY_GRAMMAR
    commands = SNAKE_CASE_COMMANDS
    sensors = SNAKE_CASE_SENSORS
    builder_class = RubyProgramBuilder
    forbidden_names = frozenset(
        {
            "send",
            "public_send",
            "__send__",
            "instance_eval",
            "instance_exec",
            "class_eval",
            "module_eval",
            "instance_variable_get",
            "instance_variable_set",
            "define_method",
            "method",
            "binding",
            "Kernel",
            "ObjectSpace",
            "Object",
            "Class",
            "Module",
            "Proc",
            "proc",
            "lambda",
            "IO",
            "File",
            "Dir",
            "Net",
            "Socket",
            "Thread",
            "Process",
            "ENV",
            "system",
            "spawn",
            "syscall",
            "fork",
            "exit",
            "abort",
            "sleep",
            "require_relative",
            "load",
            "const_get",
            "self",
        }
    )

    def normalize_name(self, name: str) -> str:
        return name[:-1] if name.endswith("?") else name

    def call_example(self, name: str) -> str:
        if name in self.sensors:
            return f"kara.{name}?"
        return f"kara.{name}"

    def strip_comments(self, source: str) -> str:
        without_blocks = _BLOCK_COMMENT.sub(blank_out, source)
        return _LINE_COMMENT.sub("", without_blocks)

    def find_entry(self, source: str) -> EntryPoint | None:
        match = _ENTRY.search(source)
        if match is None:
            return None
        header_line = source.count("\n", 0, match.start()) + 1
        header = match.group(0)
        depth = _depth_change(header)
        if depth <= 0:
            # one-line definition such as ``def my_program; kara.move; end``
            inline = re.sub(r"^\s*def\s+my_program\b(?:\s*\(\s*\))?", "", header)
            return EntryPoint(re.sub(r"\bend\s*$", "", inline.strip()), header_line)

        body: list[str] = []
        for line in source[match.end() :].split("\n")[1:]:
            depth += _depth_change(line)
            if depth <= 0:
                return EntryPoint("\n".join(body), header_line + 1)
            body.append(line)
        raise KaraSyntaxError(
            f'Syntax error on line {header_line}: the my_program method is missing its closing "end".',
            line=header_line,
            dialect=self.name,
        )
