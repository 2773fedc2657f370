"""
Domain errors raised by the service layer

Each class carries the HTTP status it maps to and a machine-readable
error code. main.py renders them as
{"error_code": ..., "message": ..., "detail": ...}.
"""
from typing import Any, Optional


class CareerProfilingError(Exception):
    """Base class for all domain errors"""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        detail: Any = None
    ):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.detail = detail

    def to_dict(self) -> dict:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "detail": self.detail if self.detail is not None else self.message,
        }


class ValidationError(CareerProfilingError):
    """Malformed or missing input"""
    status_code = 400
    error_code = "VALIDATION_ERROR"


class NotFoundError(CareerProfilingError):
    """Attempt, section or question absent or not owned by the caller"""
    status_code = 404
    error_code = "NOT_FOUND"


class StateConflictError(CareerProfilingError):
    """Operation is not valid for the current state"""
    status_code = 400
    error_code = "STATE_CONFLICT"


class SectionLockedError(StateConflictError):
    """Earlier sections must be completed first"""
    status_code = 403
    error_code = "SECTION_LOCKED"


class AccessDeniedError(StateConflictError):
    status_code = 403
    error_code = "ACCESS_DENIED"


class ResourceExhaustionError(CareerProfilingError):
    """Question pool too small"""
    status_code = 400
    error_code = "INSUFFICIENT_QUESTIONS"


class DependencyFailure(CareerProfilingError):
    """Scoring engine or interpretation generator failed"""
    status_code = 500
    error_code = "DEPENDENCY_FAILURE"
