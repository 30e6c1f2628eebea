"""
Exception hierarchy for tartly.

Every error raised on purpose by tartly derives from ``TartlyError`` and
carries the process exit code the CLI returns for it.
"""

from enum import Enum
from typing import List, Optional, Sequence


class Conflict(Enum):
    """Kinds of lifecycle state conflicts."""

    NOT_INSTALLED = "not installed"
    ALREADY_INSTALLED = "already installed"
    ALREADY_RUNNING = "already running"
    NOT_RUNNING = "not running"
    BUSY = "busy"


class TartlyError(RuntimeError):
    """Base class for all tartly failures."""

    exit_code = 1


class ValidationError(TartlyError):
    """Bad input: unknown flag, too many arguments, invalid settings."""

    exit_code = 2


class EmptyNameError(ValidationError):
    """A lifecycle operation was called with an empty VM name."""

    exit_code = 7

    def __init__(self, message: str = "VM name cannot be empty"):
        super().__init__(message)


class PrerequisiteError(TartlyError):
    """Wrong OS, missing tool or unusable directories."""

    exit_code = 6


class StateConflictError(TartlyError):
    """The VM is not in the state the operation requires."""

    def __init__(self, conflict: Conflict, message: str):
        super().__init__(message)
        self.conflict = conflict

    @property
    def exit_code(self) -> int:
        return 3 if self.conflict is Conflict.NOT_INSTALLED else 5


class UnitIOError(TartlyError):
    """A unit definition could not be written, read or deleted."""

    exit_code = 6


class UnitFormatError(UnitIOError):
    """A unit definition file exists but its content is not usable."""


class ExternalToolError(TartlyError):
    """launchctl or tart failed (or could not be executed)."""

    exit_code = 6

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command: List[str] = list(command or [])
        self.returncode = returncode
        self.stderr = stderr

    def __str__(self) -> str:
        base = super().__str__()
        detail = self.stderr.strip().splitlines()[-1] if self.stderr.strip() else ""
        return f"{base}: {detail}" if detail else base
