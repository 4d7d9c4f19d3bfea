"""Service-level error taxonomy shared by routes, services and workers."""

from __future__ import annotations


class ServiceError(RuntimeError):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AccessDenied(ServiceError):
    """Raised when the requester does not own the project."""

    status_code = 403

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message)


class NotFound(ServiceError):
    status_code = 404


class ValidationError(ServiceError):
    """Malformed request, or an operation attempted in the wrong state."""

    status_code = 400


class InvalidTransitionError(ServiceError):
    """Raised when a generation task is moved out of a terminal state."""

    status_code = 409


class PersistenceError(ServiceError):
    status_code = 500


class ModelInvocationError(ServiceError):
    """Timeout, throttling or transport failure from the generative model."""

    status_code = 502


class ResponseParseError(ServiceError):
    """Model output that is not valid JSON or does not match the expected schema."""

    status_code = 502
