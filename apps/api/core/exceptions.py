"""
API error taxonomy.

Every error response is {"detail": ..., "error_code": ...}. Scheduling
errors carry a reason from the engine ("phase_locked",
"completed_in_range") which becomes the upper-cased error_code, so clients
can branch on it without parsing the message.
"""
from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class APIException(HTTPException):
    """HTTPException with a machine-readable error_code."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code

    def body(self) -> Dict[str, Any]:
        return {"detail": self.detail, "error_code": self.error_code}


class NotFoundError(APIException):
    """The athlete has no program yet (or it was deleted for an intake redo)."""

    def __init__(self, detail: str = "No training program found; complete intake first"):
        super().__init__(status.HTTP_404_NOT_FOUND, detail, "NOT_FOUND")


class ValidationError(APIException):
    """Bad coordinates, dates or template choice. Code names the offending field."""

    def __init__(self, detail: str, field: Optional[str] = None):
        code = f"VALIDATION_ERROR_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(status.HTTP_422_UNPROCESSABLE_ENTITY, detail, code)
        self.field = field


class ConflictError(APIException):
    """Change refused by program state: locked phase, completed workout, existing program."""

    def __init__(self, detail: str, reason: Optional[str] = None):
        super().__init__(status.HTTP_409_CONFLICT, detail, reason.upper() if reason else "CONFLICT")
        self.reason = reason


class ServiceUnavailableError(APIException):
    # Content gaps are logged with the slot; the client only sees this
    def __init__(self, detail: str = "Workout content is temporarily unavailable"):
        super().__init__(status.HTTP_503_SERVICE_UNAVAILABLE, detail, "UNAVAILABLE")


class UnauthorizedError(APIException):
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status.HTTP_401_UNAUTHORIZED,
            detail,
            "UNAUTHORIZED",
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(APIException):
    def __init__(self, detail: str = "Account is blocked"):
        super().__init__(status.HTTP_403_FORBIDDEN, detail, "FORBIDDEN")
