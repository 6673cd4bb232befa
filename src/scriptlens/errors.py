"""
Errors and per-file diagnostics.

Fatal problems are exceptions derived from ScriptLensError. Everything that
goes wrong with a single file during a walk is a Diagnostic attached to the
Catalog instead, so one bad script never hides the others.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DiagnosticKind(str, Enum):
    """Closed set of non-fatal, per-file problems."""
    UNREADABLE_FILE = "unreadable_file"
    BINARY_FILE = "binary_file"
    EMPTY_FILE = "empty_file"
    NOT_EXECUTABLE = "not_executable"
    MALFORMED_FUNCTION = "malformed_function"
    INVALID_NAME = "invalid_name"
    DUPLICATE_FUNCTION = "duplicate_function"
    NAME_COLLISION = "name_collision"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    path: str
    message: str
    line: Optional[int] = None

    def __str__(self) -> str:
        location = f"{self.path}:{self.line}" if self.line else self.path
        return f"{location}: {self.message}"


class ScriptLensError(Exception):
    """
    Base class for fatal errors.

    Carries the operation that was being attempted and the path it concerned,
    so a message can be shown without digging into the underlying OSError
    (which is chained as __cause__ by the raiser).
    """

    def __init__(self, operation: str, path: str, reason: str = ""):
        self.operation = operation
        self.path = path
        self.reason = reason
        message = f"Unable to {operation} '{path}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ConfigurationError(ScriptLensError):
    """A configured root path does not exist or is not a directory."""


class WrapperIOError(ScriptLensError):
    """The transient wrapper script could not be written or made executable."""


class SpawnError(ScriptLensError):
    """The shell interpreter could not be started."""
