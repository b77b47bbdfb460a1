"""
Domain errors raised by the scheduling engine.

Engine code never imports FastAPI. The program service translates these
into API exceptions at the request boundary.
"""

from typing import Optional


class ScheduleError(Exception):
    """Base class for scheduling failures."""

    reason: str = "schedule_error"

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if reason:
            self.reason = reason


class ScheduleValidationError(ScheduleError):
    """Input outside configured bounds. Raised before any mutation."""

    reason = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message, reason)
        self.field = field


class ScheduleConflictError(ScheduleError):
    """Request conflicts with program state (completed workout, pending reassessment...)."""

    reason = "conflict"


class ContentUnavailableError(ScheduleError):
    """Template library has no entry for a resolvable slot."""

    reason = "content_unavailable"
