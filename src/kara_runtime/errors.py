"""Error taxonomy shared by the world model, dialect front-ends and engines."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """How loudly a caller should surface an error."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCode(str, Enum):
    """Stable identifiers for every failure the core can report."""

    EXEC_BLOCKED = "EXEC_BLOCKED"
    WORLD_NO_CLOVER = "WORLD_NO_CLOVER"
    WORLD_NO_INVENTORY = "WORLD_NO_INVENTORY"
    WORLD_OCCUPIED = "WORLD_OCCUPIED"
    EXEC_INFINITE_LOOP = "EXEC_INFINITE_LOOP"
    EXEC_PARSE_ERROR = "EXEC_PARSE_ERROR"
    EXEC_MISSING_ENTRY_POINT = "EXEC_MISSING_ENTRY_POINT"
    EXEC_EMPTY_SOURCE = "EXEC_EMPTY_SOURCE"
    EXEC_UNKNOWN_NAME = "EXEC_UNKNOWN_NAME"
    EXEC_SANDBOX_VIOLATION = "EXEC_SANDBOX_VIOLATION"
    FSM_NO_TRANSITION = "FSM_NO_TRANSITION"
    FSM_INVALID_STATE = "FSM_INVALID_STATE"
    FILE_INVALID_FORMAT = "FILE_INVALID_FORMAT"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    WORLD_INVALID_STATE = "WORLD_INVALID_STATE"


@dataclass(frozen=True, slots=True)
class ErrorDefinition:
    user_message: str
    severity: ErrorSeverity
    recoverable: bool = True


ERROR_DEFINITIONS: dict[ErrorCode, ErrorDefinition] = {
    ErrorCode.EXEC_BLOCKED: ErrorDefinition(
        "Oops! Kara bumped into something. There's a tree or the edge of the world in the way.",
        ErrorSeverity.WARNING,
    ),
    ErrorCode.WORLD_NO_CLOVER: ErrorDefinition(
        "There's no clover here for Kara to pick up!",
        ErrorSeverity.WARNING,
    ),
    ErrorCode.WORLD_NO_INVENTORY: ErrorDefinition(
        "Kara doesn't have any clovers to place!",
        ErrorSeverity.WARNING,
    ),
    ErrorCode.WORLD_OCCUPIED: ErrorDefinition(
        "Kara cannot place a clover here - the cell is not empty!",
        ErrorSeverity.WARNING,
    ),
    ErrorCode.EXEC_INFINITE_LOOP: ErrorDefinition(
        "Your program seems to run forever! Check for infinite loops in your code.",
        ErrorSeverity.ERROR,
    ),
    ErrorCode.EXEC_PARSE_ERROR: ErrorDefinition(
        "There's a syntax error in your code. Check for missing brackets or typos.",
        ErrorSeverity.ERROR,
    ),
    ErrorCode.EXEC_MISSING_ENTRY_POINT: ErrorDefinition(
        "Could not find the main program. Check the name of your main method.",
        ErrorSeverity.ERROR,
    ),
    ErrorCode.EXEC_EMPTY_SOURCE: ErrorDefinition(
        "Your program is empty. Write some code first!",
        ErrorSeverity.ERROR,
    ),
    ErrorCode.EXEC_UNKNOWN_NAME: ErrorDefinition(
        "Kara does not know that command. Did you spell it correctly?",
        ErrorSeverity.ERROR,
    ),
    ErrorCode.EXEC_SANDBOX_VIOLATION: ErrorDefinition(
        "This program tries to use something Kara programs are not allowed to touch.",
        ErrorSeverity.CRITICAL,
        recoverable=False,
    ),
    ErrorCode.FSM_NO_TRANSITION: ErrorDefinition(
        "No transition matches the current conditions. Add more transitions to handle this case.",
        ErrorSeverity.WARNING,
    ),
    ErrorCode.FSM_INVALID_STATE: ErrorDefinition(
        "The state machine has an invalid state. Check your transitions.",
        ErrorSeverity.ERROR,
    ),
    ErrorCode.FILE_INVALID_FORMAT: ErrorDefinition(
        "This file appears to be corrupted or in an unsupported format.",
        ErrorSeverity.ERROR,
    ),
    ErrorCode.FILE_TOO_LARGE: ErrorDefinition(
        "This file is too large.",
        ErrorSeverity.ERROR,
    ),
    ErrorCode.WORLD_INVALID_STATE: ErrorDefinition(
        "The world data is corrupted. Try resetting the world.",
        ErrorSeverity.ERROR,
    ),
}


class KaraError(Exception):
    """Base class for every failure reported by the execution core."""

    code: ErrorCode = ErrorCode.EXEC_PARSE_ERROR

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    @property
    def definition(self) -> ErrorDefinition:
        return ERROR_DEFINITIONS[self.code]

    @property
    def severity(self) -> ErrorSeverity:
        return self.definition.severity

    @property
    def recoverable(self) -> bool:
        return self.definition.recoverable

    @property
    def user_message(self) -> str:
        return self.definition.user_message

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "context": dict(self.context),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code.value})"


class ValidationError(KaraError):
    """Raised before any world mutation when source cannot be accepted."""


class EmptySource(ValidationError):
    code = ErrorCode.EXEC_EMPTY_SOURCE


class MissingEntryPoint(ValidationError):
    code = ErrorCode.EXEC_MISSING_ENTRY_POINT


class KaraSyntaxError(ValidationError):
    code = ErrorCode.EXEC_PARSE_ERROR


class UnknownName(ValidationError):
    code = ErrorCode.EXEC_UNKNOWN_NAME


class ExecutionError(KaraError):
    """Raised by a primitive; the world it was given stays untouched."""


class Blocked(ExecutionError):
    code = ErrorCode.EXEC_BLOCKED


class NoClover(ExecutionError):
    code = ErrorCode.WORLD_NO_CLOVER


class EmptyInventory(ExecutionError):
    code = ErrorCode.WORLD_NO_INVENTORY


class Occupied(ExecutionError):
    code = ErrorCode.WORLD_OCCUPIED


class StepLimitExceeded(KaraError):
    code = ErrorCode.EXEC_INFINITE_LOOP


class SandboxViolation(KaraError):
    """Program tried to name or reach something outside the vocabulary."""

    code = ErrorCode.EXEC_SANDBOX_VIOLATION


class FSMError(KaraError):
    """Modeling gap in a state machine program."""


class NoTransition(FSMError):
    code = ErrorCode.FSM_NO_TRANSITION


class InvalidState(FSMError):
    code = ErrorCode.FSM_INVALID_STATE


class FileFormatError(KaraError):
    """Raised while importing world or FSM documents."""


class FileInvalidFormat(FileFormatError):
    code = ErrorCode.FILE_INVALID_FORMAT


class FileTooLarge(FileFormatError):
    code = ErrorCode.FILE_TOO_LARGE


class WorldInvalidState(FileFormatError):
    code = ErrorCode.WORLD_INVALID_STATE
