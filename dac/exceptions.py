"""Custom exceptions for the Delivery Admin Console."""

from typing import Any


class DACError(Exception):
    """Base exception for all DAC errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize DAC error.

        Args:
            message: Error message
            details: Additional error details

        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(DACError):
    """Raised when configuration is invalid or missing."""


class APIError(DACError):
    """Base class for errors carried by an HTTP response."""

    def __init__(
        self,
        status_code: int,
        message: str,
        response_text: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            status_code: HTTP status code
            message: Error message
            response_text: Raw response text from API
            details: Additional error details

        """
        super().__init__(message, details)
        self.status_code = status_code
        self.response_text = response_text


class ValidationError(APIError):
    """Raised when the server rejects a request (4xx), possibly with field-level detail."""

    def __init__(
        self,
        message: str = "Request rejected",
        response_text: str | None = None,
        fields: dict[str, str] | None = None,
        status_code: int = 400,
    ) -> None:
        super().__init__(status_code, message, response_text, {"fields": fields or {}})
        self.fields = fields or {}


class AuthenticationError(APIError):
    """Raised when authentication fails (401)."""

    def __init__(self, message: str = "Authentication failed", response_text: str | None = None) -> None:
        super().__init__(401, message, response_text)


class ForbiddenError(APIError):
    """Raised when access is forbidden (403)."""

    def __init__(self, message: str = "Access forbidden", response_text: str | None = None) -> None:
        super().__init__(403, message, response_text)


class NotFoundError(APIError):
    """Raised when resource is not found (404)."""

    def __init__(self, message: str = "Resource not found", response_text: str | None = None) -> None:
        super().__init__(404, message, response_text)


class ServerError(APIError):
    """Raised on 5xx responses."""

    def __init__(self, status_code: int = 500, message: str = "Server error", response_text: str | None = None) -> None:
        super().__init__(status_code, message, response_text)


class NetworkError(DACError):
    """Raised when no response was received (connection failure or timeout)."""

    def __init__(self, operation: str, reason: str, timeout_seconds: float | None = None) -> None:
        if timeout_seconds is not None:
            message = f"Operation '{operation}' timed out after {timeout_seconds} seconds"
        else:
            message = f"Operation '{operation}' failed: {reason}"
        super().__init__(message, {"operation": operation, "reason": reason, "timeout_seconds": timeout_seconds})
        self.operation = operation
        self.reason = reason
        self.timeout_seconds = timeout_seconds

    @property
    def timed_out(self) -> bool:
        return self.timeout_seconds is not None


class BusyError(DACError):
    """Raised when a mutation with the same idempotency scope is already in flight."""

    def __init__(self, scope: tuple[str, str | None, str]) -> None:
        entity, entity_id, action = scope
        target = f"{entity}/{entity_id}" if entity_id else entity
        super().__init__(f"A '{action}' on {target} is already in progress", {"scope": list(scope)})
        self.scope = scope


class UnknownResourceError(ConfigurationError):
    """Raised when a resource name is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown resource '{name}'", {"resource": name})
        self.name = name


class UnknownTransitionError(ConfigurationError):
    """Raised when a resource does not declare the requested action endpoint."""

    def __init__(self, resource: str, transition: str | None) -> None:
        super().__init__(f"Resource '{resource}' has no '{transition}' action", {"resource": resource})
        self.resource = resource
        self.transition = transition


class UnsupportedOperationError(ConfigurationError):
    """Raised when a resource has no endpoint for a generic list or CRUD call."""

    def __init__(self, resource: str, operation: str) -> None:
        super().__init__(f"Resource '{resource}' does not support {operation}", {"resource": resource})
        self.resource = resource
        self.operation = operation
