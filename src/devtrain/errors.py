"""Typed application errors.

Each error carries the API error code and the HTTP status it maps to. The
global handlers in ``devtrain.middleware.error_handler`` render them as
``{"error": {"code", "message", "details"?}}``.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for errors that map to a structured API error response."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: list[dict[str, str]] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}


class ValidationError(AppError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Invalid request parameters"


class AuthenticationError(AppError):
    code = "AUTHENTICATION_ERROR"
    status_code = 401
    default_message = "Missing or invalid authentication token"


class NotFoundError(AppError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    code = "CONFLICT"
    status_code = 409
    default_message = "Resource already exists"


class RateLimitExceededError(AppError):
    """Raised when a caller exhausts their window. ``retry_after`` is in whole seconds."""

    code = "RATE_LIMIT_EXCEEDED"
    status_code = 429
    default_message = "Rate limit exceeded"

    def __init__(self, retry_after: int, message: str | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message)


class InternalError(AppError):
    code = "INTERNAL_ERROR"
    status_code = 500


class ServiceUnavailableError(AppError):
    code = "SERVICE_UNAVAILABLE"
    status_code = 503
    default_message = "Service is temporarily unavailable. Please try again later."


STATUS_CODES: dict[int, type[AppError]] = {
    400: ValidationError,
    401: AuthenticationError,
    404: NotFoundError,
    409: ConflictError,
    429: RateLimitExceededError,
    500: InternalError,
    503: ServiceUnavailableError,
}
