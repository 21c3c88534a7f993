"""
Typed failures raised by the auth core.

Every failure carries an ErrorKind so callers (the HTTP error handlers,
tests, CLI) dispatch on the kind, never on the message text.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION_ERROR"
    CONFLICT = "CONFLICT"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    STORAGE = "STORAGE_ERROR"


class AuthError(Exception):
    """Base class for every failure the session manager can surface."""

    kind: ErrorKind
    status: int = 500
    default_message = "Authentication error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationFailed(AuthError):
    kind = ErrorKind.VALIDATION
    status = 422
    default_message = "Invalid input"

    def __init__(self, message: Optional[str] = None, reasons: Optional[List[str]] = None):
        self.reasons = list(reasons or [])
        super().__init__(message, details={"reasons": self.reasons} if self.reasons else None)


class ConflictError(AuthError):
    kind = ErrorKind.CONFLICT
    status = 409
    default_message = "Resource conflict"


class InvalidCredentials(AuthError):
    kind = ErrorKind.INVALID_CREDENTIALS
    status = 401
    default_message = "Invalid credentials"


class Unauthorized(AuthError):
    kind = ErrorKind.UNAUTHORIZED
    status = 401
    default_message = "Unauthorized"


class NotFoundError(AuthError):
    kind = ErrorKind.NOT_FOUND
    status = 404
    default_message = "Resource not found"


class StorageError(AuthError):
    kind = ErrorKind.STORAGE
    status = 503
    default_message = "Storage backend failure"
