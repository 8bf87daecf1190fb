"""Contract for run telemetry and the console logging setup used by the CLI."""

from __future__ import annotations

import logging
from typing import Protocol

from rich.logging import RichHandler


class Telemetry(Protocol):
    """Reports run outcomes to a configured sink."""

    def emit(self, event_name: str, payload: dict) -> None:
        """Publish telemetry event to the configured sink."""


class LoggingTelemetry:
    """Telemetry sink that forwards events to a standard logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("kara_runtime.telemetry")

    def emit(self, event_name: str, payload: dict) -> None:
        self._logger.info(event_name, extra={"payload": payload})


def configure_logging(level: str | int = "INFO") -> None:
    """Install a rich console handler on the root logger once."""
    root = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)

    if any(isinstance(handler, RichHandler) for handler in root.handlers):
        return

    handler = RichHandler(show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
