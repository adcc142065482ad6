"""Error taxonomy for the schedule compliance engine."""

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of failure the engine can report to a caller."""
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"


class ComplianceError(Exception):
    """Base class for engine errors. The boundary layer maps `kind` to a response."""
    kind: ErrorKind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ComplianceError):
    """Malformed or missing required fields."""
    kind = ErrorKind.INVALID_INPUT


class NotFound(ComplianceError):
    """Referenced staff, shift or time-off record is not in the loaded snapshot."""
    kind = ErrorKind.NOT_FOUND


class InvalidState(ComplianceError):
    """Transition attempted from a terminal state."""
    kind = ErrorKind.INVALID_STATE
