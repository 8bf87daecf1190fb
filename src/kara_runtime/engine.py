from __future__ import annotations

import logging
from pathlib import Path

from kara_runtime.dialects import Dialect, dialect_for_filename, get_dialect
from kara_runtime.errors import FSMError, KaraError
from kara_runtime.formats import DEFAULT_MAX_FILE_BYTES, load_fsm_file, load_world_file, read_document
from kara_runtime.fsm import (
    DEFAULT_FSM_MAX_STEPS,
    FSMProgram,
    FSMRun,
    FSMRunResult,
    FSMStepResult,
    step,
    validate_fsm_program,
)
from kara_runtime.interpreter import DEFAULT_MAX_STEPS, RunResult, StreamingInterpreter
from kara_runtime.sandbox import Sandbox
from kara_runtime.telemetry import Telemetry
from kara_runtime.world.model import World


class KaraEngine:
    """Entry point for run and step requests coming from an editor or the CLI."""

    def __init__(
        self,
        *,
        max_steps: int = DEFAULT_MAX_STEPS,
        fsm_max_steps: int = DEFAULT_FSM_MAX_STEPS,
        push_mushrooms: bool = False,
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
        default_dialect: str | None = None,
        telemetry: Telemetry | None = None,
        logger: logging.Logger | None = None,
    ):
        self.max_steps = max_steps
        self.fsm_max_steps = fsm_max_steps
        self.push_mushrooms = push_mushrooms
        self.max_file_bytes = max_file_bytes
        self.default_dialect = default_dialect
        self.telemetry = telemetry
        self._logger = logger or logging.getLogger("kara_runtime.engine")

    def resolve_dialect(self, path: str | Path | None, dialect: str | Dialect | None = None) -> Dialect:
        """Explicit dialect first, then the file extension, then ``default_dialect``."""
        if dialect is not None:
            return get_dialect(dialect)
        if path is not None:
            found = dialect_for_filename(path)
            if found is not None:
                return found
        if self.default_dialect is not None:
            return get_dialect(self.default_dialect)
        raise KeyError(f"Cannot infer the dialect of {path}; pass one explicitly")

    def validate(self, source: str, dialect: str | Dialect) -> tuple[bool, KaraError | None]:
        """Parse and screen ``source`` the same way a run would."""
        try:
            Sandbox(dialect).compile(source)
        except KaraError as exc:
            self._logger.info("validation_failed", extra={"code": exc.code.value, "error": exc.message})
            return False, exc
        return True, None

    def start_interpreter(self, source: str, dialect: str | Dialect, world: World) -> StreamingInterpreter:
        """Interpreter for one step-by-step session; parsing happens on the first ``next()``."""
        return StreamingInterpreter(
            source,
            world,
            dialect=dialect,
            max_steps=self.max_steps,
            push_mushrooms=self.push_mushrooms,
        )

    def run_program(self, source: str, dialect: str | Dialect, world: World) -> RunResult:
        result = self.start_interpreter(source, dialect, world).run()
        self._emit(
            "program_run",
            {
                "dialect": get_dialect(dialect).name,
                "commands": len(result.commands),
                "steps": result.steps,
                "error": result.error.code.value if result.error else None,
            },
        )
        return result

    def step_fsm(self, world: World, program: FSMProgram, state_id: str) -> FSMStepResult:
        return step(world, program, state_id, push_mushrooms=self.push_mushrooms)

    def start_fsm(self, program: FSMProgram, world: World) -> tuple[FSMRun | None, FSMError | None]:
        try:
            run = FSMRun(
                program,
                world,
                max_steps=self.fsm_max_steps,
                push_mushrooms=self.push_mushrooms,
            )
        except FSMError as exc:
            return None, exc
        return run, None

    def run_fsm(self, program: FSMProgram, world: World) -> FSMRunResult:
        run, error = self.start_fsm(program, world)
        if run is None:
            result = FSMRunResult(
                world=world,
                state_id=program.start_state_id or program.stop_state_id,
                stopped=False,
                steps=0,
                error=error,
            )
        else:
            result = run.run()
        self._emit(
            "fsm_run",
            {
                "steps": result.steps,
                "stopped": result.stopped,
                "error": result.error.code.value if result.error else None,
            },
        )
        return result

    def check_fsm(self, program: FSMProgram) -> tuple[bool, FSMError | None]:
        try:
            validate_fsm_program(program)
        except FSMError as exc:
            return False, exc
        return True, None

    def load_source(self, path: str | Path) -> str:
        return read_document(path, max_bytes=self.max_file_bytes)

    def load_world(self, path: str | Path) -> World:
        return load_world_file(path, max_bytes=self.max_file_bytes)

    def load_fsm(self, path: str | Path) -> FSMProgram:
        return load_fsm_file(path, max_bytes=self.max_file_bytes)

    def _emit(self, event_name: str, payload: dict) -> None:
        if self.telemetry is not None:
            self.telemetry.emit(event_name, payload)
