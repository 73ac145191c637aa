"""
Error taxonomy shared by the identity, learning and teaching contexts.

Intent:
    Use cases raise these exceptions; the web adapter maps them to JSON bodies
    with a machine-readable `error` kind and a human-readable `message`.
    Keeping the mapping data (kind, status) on the exception avoids a second
    lookup table in the web layer.

Design:
    - `CodespaceError` is the base. Subclasses fix `kind` and `status_code`.
    - `ValidationError` carries the complete list of violated fields.
    - `ConflictError` carries a `reason` so callers can show a specific message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


class CodespaceError(Exception):
    kind = "internal_error"
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class ValidationError(CodespaceError):
    kind = "validation_error"
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: Iterable[FieldError], message: str | None = None) -> None:
        self.errors: List[FieldError] = list(errors)
        super().__init__(message)

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["errors"] = [e.to_dict() for e in self.errors]
        return body


class AuthenticationError(CodespaceError):
    kind = "not_authenticated"
    status_code = 401
    default_message = "Not authenticated"


class InvalidCredentialsError(AuthenticationError):
    kind = "invalid_credentials"
    default_message = "Invalid credentials"


class WrongPasswordError(AuthenticationError):
    kind = "wrong_password"
    default_message = "Current password is incorrect"


class AuthorizationError(CodespaceError):
    kind = "not_authorized"
    status_code = 403
    default_message = "Not authorized"


class NotFoundError(CodespaceError):
    kind = "not_found"
    status_code = 404
    default_message = "Resource not found"


class ConflictError(CodespaceError):
    kind = "conflict"
    status_code = 400
    default_message = "Conflict"

    def __init__(self, reason: str, message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message)

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["reason"] = self.reason
        return body


class RateLimitedError(CodespaceError):
    kind = "rate_limited"
    status_code = 429
    default_message = "Too many requests from this IP, please try again later."


class PayloadTooLargeError(CodespaceError):
    kind = "payload_too_large"
    status_code = 413
    default_message = "Request body is too large"


class ExternalServiceUnavailable(CodespaceError):
    kind = "service_unavailable"
    status_code = 503
    default_message = "AI service is not available. Please ensure Ollama is running."


class ExternalServiceTimeout(CodespaceError):
    kind = "analysis_timeout"
    status_code = 504
    default_message = "AI service did not answer in time"


class ExternalServiceError(CodespaceError):
    kind = "analysis_failed"
    status_code = 502
    default_message = "Failed to analyze code"


class InternalError(CodespaceError):
    pass


__all__ = [
    "FieldError",
    "CodespaceError",
    "ValidationError",
    "AuthenticationError",
    "InvalidCredentialsError",
    "WrongPasswordError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitedError",
    "PayloadTooLargeError",
    "ExternalServiceUnavailable",
    "ExternalServiceTimeout",
    "ExternalServiceError",
    "InternalError",
]
