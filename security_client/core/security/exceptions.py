"""Security client exceptions for error handling."""
from __future__ import annotations
from typing import Optional


class SecurityError(Exception):
    """Base exception for all security resource operations."""
    pass


class InvalidArgumentError(SecurityError, TypeError):
    """Call signature could not be resolved into a canonical request.

    Raised at the call site, before anything is sent to the backend.
    """
    pass


class MissingCallbackError(SecurityError, TypeError):
    """Operation that delivers a result was invoked without a callback."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"{operation}: a callback argument is required")


class TransportError(SecurityError):
    """Failure reported by the query transport.

    Attributes:
        status_code: Backend or HTTP status code (None for network failures)
        message: Error message from the backend
        action: Backend action that failed
    """

    def __init__(self, status_code: Optional[int], message: str, action: str):
        self.status_code = status_code
        self.message = message
        self.action = action
        super().__init__(f"[{status_code}] {action}: {message}")


class ResponseFormatError(SecurityError):
    """Backend response is missing members the client needs to build entities."""
    pass
