"""Helpers shared by the world and state machine document readers."""

from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from kara_runtime.errors import FileInvalidFormat, FileTooLarge

DEFAULT_MAX_FILE_BYTES = 1_048_576

logger = logging.getLogger("kara_runtime.formats")


def check_size(content: str | bytes, max_bytes: int = DEFAULT_MAX_FILE_BYTES) -> None:
    size = len(content.encode("utf-8")) if isinstance(content, str) else len(content)
    if size > max_bytes:
        raise FileTooLarge(
            f"This file is too large ({size} bytes). The limit is {max_bytes} bytes.",
            size=size,
            max_bytes=max_bytes,
        )


def read_document(path: str | Path, max_bytes: int = DEFAULT_MAX_FILE_BYTES) -> str:
    """Read a UTF-8 document from disk, enforcing the size limit before decoding."""
    file_path = Path(path)
    size = file_path.stat().st_size
    if size > max_bytes:
        raise FileTooLarge(
            f"{file_path.name} is too large ({size} bytes). The limit is {max_bytes} bytes.",
            size=size,
            max_bytes=max_bytes,
            path=str(file_path),
        )
    try:
        return file_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise FileInvalidFormat(f"{file_path.name} is not a UTF-8 text file.", path=str(file_path)) from exc


def detect_format(content: str, root_tag: str) -> str:
    """``"xml"`` for XML documents (declaration or ``root_tag`` first), else ``"json"``."""
    trimmed = content.lstrip()
    if trimmed.startswith("<?xml") or trimmed.startswith(f"<{root_tag}"):
        return "xml"
    return "json"


def parse_json(content: str, kind: str) -> Any:
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        raise FileInvalidFormat(
            f"The {kind} file is not valid JSON (line {exc.lineno}, column {exc.colno}).",
            line=exc.lineno,
            column=exc.colno,
        ) from exc


def parse_xml(content: str, kind: str) -> ET.Element:
    try:
        return ET.fromstring(content)
    except ET.ParseError as exc:
        raise FileInvalidFormat(f"Invalid XML format in {kind} file: {exc}", reason="xml") from exc


def find_element(root: ET.Element, tag: str, kind: str) -> ET.Element:
    element = root if root.tag == tag else root.find(f".//{tag}")
    if element is None:
        raise FileInvalidFormat(f"Missing {tag} element in {kind} file", missing=tag)
    return element


def int_attribute(element: ET.Element, name: str, default: int) -> int:
    raw = element.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise FileInvalidFormat(
            f'Attribute {name}="{raw}" on <{element.tag}> is not a whole number.',
            element=element.tag,
            attribute=name,
        ) from exc


def float_attribute(element: ET.Element, name: str, default: float) -> float:
    raw = element.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise FileInvalidFormat(
            f'Attribute {name}="{raw}" on <{element.tag}> is not a number.',
            element=element.tag,
            attribute=name,
        ) from exc


def validation_problem(exc: PydanticValidationError, kind: str) -> FileInvalidFormat:
    """Condense a pydantic error into one learner-facing message."""
    problems = []
    for error in exc.errors()[:3]:
        location = ".".join(str(part) for part in error.get("loc", ()))
        problems.append(f"{location or 'document'}: {error.get('msg', 'invalid value')}")
    return FileInvalidFormat(
        f"The {kind} file has an unexpected structure ({'; '.join(problems)}).",
        problems=problems,
    )


def escape_attribute(value: str) -> str:
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )
