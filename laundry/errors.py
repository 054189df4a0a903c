# laundry/errors.py
from __future__ import annotations


class AppError(Exception):
    """Base class for failures rendered as {"success": false, "message": ...}."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request data"


class DuplicateEmail(AppError):
    status_code = 400
    default_message = "Email already in use"


class InvalidCredentials(AppError):
    status_code = 401
    default_message = "Invalid email or password"


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Authentication required"


class InvalidToken(AppError):
    status_code = 403
    default_message = "Invalid or expired token"


class Forbidden(AppError):
    status_code = 403
    default_message = "Operation not allowed"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class StorageError(AppError):
    status_code = 500
    default_message = "Storage failure"
