"""
Custom exception classes for the application.

Domain errors all derive from AppException. StoreError describes what the
data store reported and is normalized into the domain taxonomy by the facade and loader.
"""

from typing import Any


class AppException(Exception):
    """Base exception for application errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application exception.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class BackendConnectionError(AppException):
    """Raised when the backend is unreachable or the connectivity probe fails."""

    status_code = 503

    def __init__(
        self,
        message: str = "Database unavailable",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "CONNECTION_ERROR", details)


class OperationTimeoutError(AppException):
    """Raised when an operation exceeds its allotted time."""

    status_code = 504

    def __init__(
        self,
        operation: str,
        timeout_seconds: float,
        message: str | None = None,
    ) -> None:
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(
            message or f"{operation} timed out after {timeout_seconds:g}s",
            "TIMEOUT",
            {"operation": operation, "timeout_seconds": timeout_seconds},
        )


class ValidationError(AppException):
    """Raised when a client-side field check fails (distinct from pydantic ValidationError)."""

    status_code = 400

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.field = field
        merged = dict(details or {})
        if field is not None:
            merged.setdefault("field", field)
        super().__init__(message, "VALIDATION_ERROR", merged)


class AuthError(AppException):
    """Raised when credentials or a token are rejected."""

    def __init__(
        self,
        message: str = "Authentication failed",
        status_code: int = 401,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message, "AUTH_ERROR", details)


class ServerError(AppException):
    """Raised when the store or a privileged endpoint reports a failure."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message, "SERVER_ERROR", details)


class NotFoundError(AppException):
    """Raised when a single-entity fetch finds no rows where one was expected."""

    status_code = 404

    def __init__(
        self,
        message: str = "Not found",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "NOT_FOUND", details)


class StoreError(Exception):
    """Error object reported by the data store."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.hint = hint
