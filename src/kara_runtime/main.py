"""CLI entrypoint for the Kara runtime."""

from __future__ import annotations

from pathlib import Path

import typer
from rich import print

from kara_runtime.config import settings
from kara_runtime.dialects import DIALECTS, Dialect, get_dialect
from kara_runtime.engine import KaraEngine
from kara_runtime.errors import KaraError
from kara_runtime.formats import dump_world, world_to_dict
from kara_runtime.telemetry import LoggingTelemetry, configure_logging
from kara_runtime.world import TEMPLATES, World, get_template

app = typer.Typer(help="Run Kara programs and state machines against grid worlds")


def _build_engine(max_steps: int | None = None) -> KaraEngine:
    configure_logging(settings.log_level)
    return KaraEngine(
        max_steps=max_steps or settings.max_steps,
        fsm_max_steps=max_steps or settings.fsm_max_steps,
        push_mushrooms=settings.push_mushrooms,
        max_file_bytes=settings.max_file_bytes,
        default_dialect=settings.default_dialect,
        telemetry=LoggingTelemetry(),
    )


def _fail(error: KaraError) -> None:
    print({"ok": False, "error": error.to_dict()})
    raise typer.Exit(code=1)


def _resolve_dialect(engine: KaraEngine, file: Path, dialect: str | None) -> Dialect:
    try:
        return engine.resolve_dialect(file, dialect)
    except KeyError as exc:
        print({"ok": False, "error": str(exc.args[0])})
        raise typer.Exit(code=1)


def _load_world(engine: KaraEngine, world: Path) -> World:
    try:
        return engine.load_world(world)
    except KaraError as exc:
        _fail(exc)


def _load_source(engine: KaraEngine, file: Path) -> str:
    try:
        return engine.load_source(file)
    except KaraError as exc:
        _fail(exc)


def _world_summary(world: World) -> dict:
    character = world.character
    return {
        "position": [character.position.x, character.position.y],
        "direction": character.direction.value,
        "inventory": character.inventory,
    }


@app.command()
def info() -> None:
    """Show runtime configuration."""
    print(
        {
            "app_name": settings.app_name,
            "log_level": settings.log_level,
            "max_steps": settings.max_steps,
            "fsm_max_steps": settings.fsm_max_steps,
            "push_mushrooms": settings.push_mushrooms,
            "max_file_bytes": settings.max_file_bytes,
            "default_dialect": settings.default_dialect,
            "dialects": list(DIALECTS),
            "world_templates": list(TEMPLATES),
        }
    )


@app.command()
def validate(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Program source file"),
    dialect: str = typer.Option(None, help="JavaKara, JavaScriptKara, PythonKara or RubyKara"),
) -> None:
    """Check that a program parses and stays inside the sandbox."""
    engine = _build_engine()
    program_dialect = _resolve_dialect(engine, file, dialect)
    ok, error = engine.validate(_load_source(engine, file), program_dialect)
    if not ok:
        _fail(error)
    print({"ok": True, "dialect": program_dialect.name})


@app.command()
def run(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Program source file"),
    world: Path = typer.Option(..., exists=True, dir_okay=False, help="World file (JSON or KaraX XML)"),
    dialect: str = typer.Option(None, help="Dialect name; inferred from the file extension by default"),
    max_steps: int = typer.Option(None, help="Loop iteration ceiling"),
    trace: bool = typer.Option(False, help="Print every command as it is issued"),
) -> None:
    """Run a text program to completion."""
    engine = _build_engine(max_steps)
    program_dialect = _resolve_dialect(engine, file, dialect)
    initial = _load_world(engine, world)
    source = _load_source(engine, file)

    if trace:
        interpreter = engine.start_interpreter(source, program_dialect, initial)
        while True:
            result = interpreter.next()
            if result.command is None:
                break
            print({"step": len(interpreter.applied_commands) + 1, "command": result.command.value})
        final_world = interpreter.world
        commands = interpreter.applied_commands
        error = interpreter.error
    else:
        outcome = engine.run_program(source, program_dialect, initial)
        final_world, commands, error = outcome.world, outcome.commands, outcome.error

    payload = {
        "ok": error is None,
        "commands": [command.value for command in commands],
        "character": _world_summary(final_world),
    }
    if error is not None:
        payload["error"] = error.to_dict()
        print(payload)
        raise typer.Exit(code=1)
    print(payload)


@app.command("run-fsm")
def run_fsm(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="State machine file (JSON or .kara XML)"),
    world: Path = typer.Option(..., exists=True, dir_okay=False, help="World file (JSON or KaraX XML)"),
    max_steps: int = typer.Option(None, help="Transition ceiling"),
) -> None:
    """Run a state machine until it reaches its stop state."""
    engine = _build_engine(max_steps)
    initial = _load_world(engine, world)
    try:
        program = engine.load_fsm(file)
    except KaraError as exc:
        _fail(exc)

    result = engine.run_fsm(program, initial)
    payload = {
        "ok": result.error is None,
        "stopped": result.stopped,
        "state": program.state_name(result.state_id),
        "steps": result.steps,
        "transitions": result.transitions,
        "character": _world_summary(result.world),
    }
    if result.error is not None:
        payload["error"] = result.error.to_dict()
        print(payload)
        raise typer.Exit(code=1)
    print(payload)


@app.command()
def template(
    name: str = typer.Argument(..., help="World template (empty, maze, ...) or dialect name"),
    xml: bool = typer.Option(False, help="Write worlds as KaraX XML instead of JSON"),
) -> None:
    """Print a starter program or a ready-made world."""
    if name.strip().lower() not in {key.lower() for key in TEMPLATES}:
        try:
            source = get_dialect(name).template
        except KeyError:
            source = None
        if source is not None:
            typer.echo(source)
            return

    try:
        world = get_template(name)
    except KeyError:
        print({"ok": False, "error": f"Unknown template: {name}", "templates": [*TEMPLATES, *DIALECTS]})
        raise typer.Exit(code=1)

    if xml:
        typer.echo(dump_world(world, xml=True))
    else:
        print(world_to_dict(world))


if __name__ == "__main__":
    app()
