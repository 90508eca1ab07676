"""
Engineering Errors
==================

Error taxonomy for the engineering orchestrator.

Every error is a local, recoverable condition. Domain code raises them;
callers (MCP tools, CLI, HTTP) turn them into structured error results with
the message and, where one exists, a remedial hint.
"""

from typing import Optional


class EngineeringError(Exception):
    """Base class for orchestrator errors."""

    code = "engineering_error"
    retryable = False

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
            "hint": self.hint,
            "retryable": self.retryable,
        }


class NoProjectError(EngineeringError):
    """Raised when a command other than start runs without a project."""

    code = "no_project"

    def __init__(self, message: str = "No engineering project found.", hint: Optional[str] = None):
        super().__init__(message, hint or "Run `engineering_start` first.")


class UnknownStepError(EngineeringError):
    """Raised for a scoping step id that is not in the wizard."""

    code = "unknown_step"


class InvalidRoleError(EngineeringError):
    """Raised when a decision names an agent outside the known roles."""

    code = "invalid_role"


class PreconditionError(EngineeringError):
    """Raised when a transition is attempted from the wrong state."""

    code = "precondition_failed"


class NotFoundError(EngineeringError):
    """Raised for unknown artifacts, untracked files and unknown nodes."""

    code = "not_found"


class InvalidArgumentError(EngineeringError):
    """Raised for malformed command arguments."""

    code = "invalid_argument"


class ConflictError(EngineeringError):
    """Raised when a save loses a race against another writer."""

    code = "conflict"
    retryable = True
