"""Resumable interpreter that hands out one primitive command at a time."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from kara_runtime.dialects import Dialect
from kara_runtime.dialects.nodes import Action, If, Program, Repeat, Statement, While, count_actions, has_loops
from kara_runtime.errors import KaraError, StepLimitExceeded
from kara_runtime.sandbox import Sandbox, evaluate_condition
from kara_runtime.vocabulary import Command, apply_command
from kara_runtime.world.model import World

DEFAULT_MAX_STEPS = 10_000


class InterpreterState(str, Enum):
    """Lifecycle states of a streaming interpreter."""

    READY = "ready"
    YIELDING = "yielding"
    APPLYING = "applying"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class StepResult:
    """Outcome of one ``next()`` call: a pending command, completion, or an error."""

    command: Command | None = None
    done: bool = False
    error: KaraError | None = None


@dataclass(frozen=True, slots=True)
class RunResult:
    world: World
    commands: list[Command] = field(default_factory=list)
    error: KaraError | None = None
    steps: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class BlockFrame:
    body: tuple[Statement, ...]
    index: int = 0


@dataclass(slots=True)
class WhileFrame:
    node: While


@dataclass(slots=True)
class RepeatFrame:
    node: Repeat
    remaining: int


Frame = BlockFrame | WhileFrame | RepeatFrame


class StreamingInterpreter:
    """Runs a program tree over an explicit frame stack, pausing before every primitive.

    ``next()`` returns the command the program is about to issue without
    applying it. The caller applies it to its own world and reports the
    result through ``sync()``. When ``next()`` is called again without a
    ``sync()``, the interpreter applies the pending command to its own copy
    of the world first.

    Every loop iteration counts as one step; passing ``max_steps`` fails the
    run with ``StepLimitExceeded`` instead of producing another command.
    """

    def __init__(
        self,
        program: str | Program,
        world: World,
        *,
        dialect: str | Dialect | None = None,
        max_steps: int = DEFAULT_MAX_STEPS,
        push_mushrooms: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        if isinstance(program, str) and dialect is None:
            raise ValueError("A dialect is required to interpret source text")
        if max_steps < 1:
            raise ValueError("max_steps must be positive")

        self._source = program
        self._dialect = dialect
        self._world = world
        self._max_steps = max_steps
        self._push_mushrooms = push_mushrooms
        self._logger = logger or logging.getLogger("kara_runtime.interpreter")

        self._state = InterpreterState.READY
        self._frames: list[Frame] = []
        self._pending: Command | None = None
        self._applied: list[Command] = []
        self._steps = 0
        self._error: KaraError | None = None

    @property
    def state(self) -> InterpreterState:
        return self._state

    @property
    def consumed(self) -> bool:
        return self._state in (InterpreterState.DONE, InterpreterState.FAILED)

    @property
    def world(self) -> World:
        return self._world

    @property
    def steps(self) -> int:
        return self._steps

    @property
    def max_steps(self) -> int:
        return self._max_steps

    @property
    def error(self) -> KaraError | None:
        return self._error

    @property
    def pending(self) -> Command | None:
        return self._pending

    @property
    def applied_commands(self) -> list[Command]:
        return list(self._applied)

    def next(self) -> StepResult:
        """Advance until the program is about to issue its next primitive."""
        if self._state == InterpreterState.DONE:
            return StepResult(done=True)
        if self._state == InterpreterState.FAILED:
            return StepResult(done=True, error=self._error)

        try:
            if self._state == InterpreterState.READY:
                self._start()
            elif self._state == InterpreterState.YIELDING:
                self._apply_pending()
            command = self._advance()
        except KaraError as exc:
            return self._fail(exc)

        if command is None:
            self._finish()
            return StepResult(done=True)

        self._pending = command
        self._state = InterpreterState.YIELDING
        return StepResult(command=command)

    def sync(self, world: World) -> None:
        """Adopt the caller's world after it applied the pending command."""
        self._world = world
        if self._state == InterpreterState.YIELDING:
            if self._pending is not None:
                self._applied.append(self._pending)
            self._pending = None
            self._state = InterpreterState.APPLYING

    def reset(self) -> None:
        """Discard all progress; the interpreter produces nothing afterwards."""
        self._frames.clear()
        self._pending = None
        self._state = InterpreterState.DONE
        self._logger.info("interpreter_reset", extra={"steps": self._steps})

    def run(self) -> RunResult:
        """Drive the program to completion against the interpreter's own world."""
        while True:
            result = self.next()
            if result.command is None:
                break
        return RunResult(world=self._world, commands=self.applied_commands, error=self._error, steps=self._steps)

    def _start(self) -> None:
        if isinstance(self._source, Program):
            program = self._source
        else:
            program = Sandbox(self._dialect).compile(self._source)
        self._frames = [BlockFrame(program.body)]
        self._logger.info(
            "interpreter_started",
            extra={
                "dialect": program.dialect,
                "max_steps": self._max_steps,
                "actions": count_actions(program.body),
                "has_loops": has_loops(program.body),
            },
        )

    def _apply_pending(self) -> None:
        if self._pending is None:
            return
        command = self._pending
        self._world = apply_command(self._world, command, push_mushrooms=self._push_mushrooms)
        self._applied.append(command)
        self._pending = None

    def _tick(self) -> None:
        self._steps += 1
        if self._steps > self._max_steps:
            raise StepLimitExceeded(
                f"Your program ran more than {self._max_steps} loop iterations and was stopped. "
                "Check for infinite loops in your code.",
                max_steps=self._max_steps,
                steps=self._steps,
            )

    def _advance(self) -> Command | None:
        frames = self._frames
        while frames:
            frame = frames[-1]
            if isinstance(frame, WhileFrame):
                if evaluate_condition(frame.node.condition, self._world):
                    self._tick()
                    frames.append(BlockFrame(frame.node.body))
                else:
                    frames.pop()
                continue

            if isinstance(frame, RepeatFrame):
                if frame.remaining > 0:
                    frame.remaining -= 1
                    self._tick()
                    frames.append(BlockFrame(frame.node.body))
                else:
                    frames.pop()
                continue

            if frame.index >= len(frame.body):
                frames.pop()
                continue

            statement = frame.body[frame.index]
            frame.index += 1
            if isinstance(statement, Action):
                return statement.command
            if isinstance(statement, If):
                branch = statement.body if evaluate_condition(statement.condition, self._world) else statement.orelse
                if branch:
                    frames.append(BlockFrame(branch))
            elif isinstance(statement, While):
                frames.append(WhileFrame(statement))
            elif isinstance(statement, Repeat):
                frames.append(RepeatFrame(statement, statement.count))
        return None

    def _finish(self) -> None:
        self._frames.clear()
        self._state = InterpreterState.DONE
        self._logger.info(
            "interpreter_done",
            extra={"commands": len(self._applied), "steps": self._steps},
        )

    def _fail(self, error: KaraError) -> StepResult:
        self._frames.clear()
        self._pending = None
        self._error = error
        self._state = InterpreterState.FAILED
        self._logger.warning(
            "interpreter_failed",
            extra={"code": error.code.value, "steps": self._steps, "error": error.message},
        )
        return StepResult(done=True, error=error)


def collect_commands(
    source: str | Program,
    world: World,
    *,
    dialect: str | Dialect | None = None,
    max_steps: int = DEFAULT_MAX_STEPS,
    push_mushrooms: bool = False,
) -> tuple[list[Command], KaraError | None]:
    """Commands a program issues against ``world``, and the error that stopped it, if any."""
    interpreter = StreamingInterpreter(
        source,
        world,
        dialect=dialect,
        max_steps=max_steps,
        push_mushrooms=push_mushrooms,
    )
    result = interpreter.run()
    return result.commands, result.error
