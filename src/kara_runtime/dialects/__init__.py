"""Learner-facing dialects and lookup by name or file extension."""

from __future__ import annotations

from pathlib import Path

from .base import Dialect, EntryPoint
from .java import JavaKara
from .javascript import JavaScriptKara
from .nodes import Program
from .python import PythonKara
from .ruby import RubyKara

DIALECTS: dict[str, Dialect] = {
    dialect.name: dialect for dialect in (JavaKara(), JavaScriptKara(), PythonKara(), RubyKara())
}

_ALIASES = {
    "java": "JavaKara",
    "javascript": "JavaScriptKara",
    "js": "JavaScriptKara",
    "python": "PythonKara",
    "py": "PythonKara",
    "ruby": "RubyKara",
    "rb": "RubyKara",
}


def get_dialect(name: str | Dialect) -> Dialect:
    if isinstance(name, Dialect):
        return name
    if name in DIALECTS:
        return DIALECTS[name]
    key = name.strip().lower()
    for dialect_name in DIALECTS:
        if dialect_name.lower() == key:
            return DIALECTS[dialect_name]
    if key in _ALIASES:
        return DIALECTS[_ALIASES[key]]
    raise KeyError(f"Unknown dialect: {name}. Available: {', '.join(DIALECTS)}")


def dialect_for_filename(filename: str | Path) -> Dialect | None:
    suffix = Path(filename).suffix.lower()
    for dialect in DIALECTS.values():
        if suffix in dialect.extensions:
            return dialect
    return None


def default_template(name: str | Dialect) -> str:
    return get_dialect(name).template


__all__ = [
    "DIALECTS",
    "Dialect",
    "EntryPoint",
    "JavaKara",
    "JavaScriptKara",
    "Program",
    "PythonKara",
    "RubyKara",
    "default_template",
    "dialect_for_filename",
    "get_dialect",
]
