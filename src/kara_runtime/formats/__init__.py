"""World and state machine documents in JSON and KaraX XML."""

from __future__ import annotations

from pathlib import Path

from kara_runtime.formats.common import DEFAULT_MAX_FILE_BYTES, check_size, detect_format, read_document
from kara_runtime.formats.fsm_json import fsm_from_dict, fsm_from_json, fsm_to_dict, fsm_to_json
from kara_runtime.formats.fsm_xml import fsm_from_xml, fsm_to_xml
from kara_runtime.formats.world_json import world_from_dict, world_from_json, world_to_dict, world_to_json
from kara_runtime.formats.world_xml import world_from_xml, world_to_xml
from kara_runtime.fsm.model import FSMProgram
from kara_runtime.world.model import World


def load_world(content: str, *, max_bytes: int = DEFAULT_MAX_FILE_BYTES) -> World:
    check_size(content, max_bytes)
    if detect_format(content, "XmlWorld") == "xml":
        return world_from_xml(content)
    return world_from_json(content)


def load_fsm(content: str, *, max_bytes: int = DEFAULT_MAX_FILE_BYTES) -> FSMProgram:
    check_size(content, max_bytes)
    if detect_format(content, "XmlStateMachines") == "xml":
        return fsm_from_xml(content)
    return fsm_from_json(content)


def load_world_file(path: str | Path, *, max_bytes: int = DEFAULT_MAX_FILE_BYTES) -> World:
    return load_world(read_document(path, max_bytes), max_bytes=max_bytes)


def load_fsm_file(path: str | Path, *, max_bytes: int = DEFAULT_MAX_FILE_BYTES) -> FSMProgram:
    return load_fsm(read_document(path, max_bytes), max_bytes=max_bytes)


def dump_world(world: World, *, xml: bool = False) -> str:
    return world_to_xml(world) if xml else world_to_json(world)


def dump_fsm(program: FSMProgram, *, xml: bool = False) -> str:
    return fsm_to_xml(program) if xml else fsm_to_json(program)


__all__ = [
    "DEFAULT_MAX_FILE_BYTES",
    "dump_fsm",
    "dump_world",
    "fsm_from_dict",
    "fsm_from_json",
    "fsm_from_xml",
    "fsm_to_dict",
    "fsm_to_json",
    "fsm_to_xml",
    "load_fsm",
    "load_fsm_file",
    "load_world",
    "load_world_file",
    "read_document",
    "world_from_dict",
    "world_from_json",
    "world_from_xml",
    "world_to_dict",
    "world_to_json",
    "world_to_xml",
]
