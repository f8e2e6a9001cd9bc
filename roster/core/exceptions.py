"""Shared exceptions for the roster services."""

from typing import Optional


class RosterError(Exception):
    """Base exception for roster services."""

    status_code = 500

    def __init__(self, message: str = "Unexpected error"):
        self.message = message
        super().__init__(self.message)


class ValidationError(RosterError):
    """Bad input caught before anything is sent to the store."""

    status_code = 422

    def __init__(self, message: str = "Invalid input", field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class ConflictError(RosterError):
    """Raised when a write collides with existing state, e.g. a duplicate membership."""

    status_code = 409

    def __init__(self, message: str = "Conflict"):
        super().__init__(message)


class NotFoundError(RosterError):
    """Raised when an entity required by an operation does not exist."""

    status_code = 404

    def __init__(self, message: str = "Object not found"):
        super().__init__(message)


class StoreError(RosterError):
    """Backend or transport failure talking to the store.

    Args:
    ----
        message (str): Human readable description.
        code (str, optional): Postgres / PostgREST error code when the store returned one.
        details (str, optional): Store-supplied detail, e.g. the offending key of a constraint.
        operation (str, optional): Name of the store operation that failed.
        retryable (bool): True for transient failures (timeouts, transport errors).

    """

    status_code = 502

    def __init__(
        self,
        message: str = "Store request failed",
        code: Optional[str] = None,
        operation: Optional[str] = None,
        retryable: bool = False,
        details: Optional[str] = None,
    ):
        self.code = code
        self.details = details
        self.operation = operation
        self.retryable = retryable
        super().__init__(message)
