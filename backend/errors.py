# errors.py — Application error taxonomy
#
# Domain services raise these; main.py maps them to the JSON envelope
# {success: false, message, code, errors?} at a single exception handler.
from typing import Dict, Optional


class AppError(Exception):
    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class BadRequestError(AppError):
    status_code = 400
    default_code = "BAD_REQUEST"


class UnauthorizedError(AppError):
    status_code = 401
    default_code = "UNAUTHORIZED"


class ForbiddenError(AppError):
    status_code = 403
    default_code = "FORBIDDEN"


class NotFoundError(AppError):
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    default_code = "CONFLICT"


class ValidationError(AppError):
    """Schema failure; `errors` maps a dotted field path to a message."""

    status_code = 422
    default_code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation failed", errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors: Dict[str, str] = errors or {}
