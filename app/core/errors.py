"""Application error taxonomy.

Services raise these; the handlers installed in ``app.main`` turn them into the
``{"success": false, "message": ...}`` envelope every route answers with.
"""
from typing import Any, Dict, Optional


class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.default_message
        self.extra: Dict[str, Any] = extra
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message, **self.extra}


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class Conflict(AppError):
    # Duplicate email; the mobile clients expect 400, not 409
    status_code = 400
    default_message = "Email already exists"


class InvalidState(AppError):
    status_code = 400
    default_message = "Operation not allowed in the current state"


class InvalidOrExpired(AppError):
    status_code = 400
    default_message = "Invalid or expired code"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Not authorized"


class Forbidden(AppError):
    status_code = 403
    default_message = "Not authorized to access this resource"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class ConcurrentModification(AppError):
    status_code = 409
    default_message = "The record was modified by another request, please retry"


class UpstreamFailure(AppError):
    status_code = 500
    default_message = "Upstream service failure"
