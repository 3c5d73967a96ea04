"""Exception hierarchy for TaskFlow.

Every error raised by the record store adapters, the task service and the
identity client derives from TaskFlowError so controllers can catch failures
at the operation boundary and turn them into a toast plus a state flag.
"""

from __future__ import annotations

from typing import Optional


class TaskFlowError(Exception):
    """Base exception for all TaskFlow errors."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class TaskValidationError(TaskFlowError):
    """Raised when a draft task fails client-side validation."""

    def __init__(self, message: str = "Task title is required!") -> None:
        super().__init__(message, status_code=422)


class RecordStoreError(TaskFlowError):
    """Raised when the hosted record store cannot be reached or rejects a call."""

    @classmethod
    def create_parse_error(cls, endpoint: str, method: str) -> "RecordStoreError":
        """Create an error for an unreadable store response with safe context."""
        return cls(f"Failed to parse record store response (method={method}, endpoint={endpoint})")


class RecordStoreNetworkError(RecordStoreError):
    """Raised when network operations against the record store fail."""

    def __init__(self, message: str = "Network error occurred") -> None:
        super().__init__(message, status_code=None)


class RecordStoreTimeoutError(RecordStoreError):
    """Raised when a record store request times out."""

    def __init__(self, message: str = "Request timeout") -> None:
        super().__init__(message, status_code=None)


class RecordStoreHTTPError(RecordStoreError):
    """Raised when the record store answers with a non-success HTTP status."""

    def __init__(self, status_code: int, message: str = "") -> None:
        super().__init__(message or f"Record store error: HTTP {status_code}", status_code=status_code)


class TaskOperationError(TaskFlowError):
    """Raised when the record store does not confirm a task mutation."""


class TaskCreateError(TaskOperationError):
    def __init__(self, message: str = "Failed to create task") -> None:
        super().__init__(message)


class TaskUpdateError(TaskOperationError):
    def __init__(self, message: str = "Failed to update task") -> None:
        super().__init__(message)


class TaskDeleteError(TaskOperationError):
    def __init__(self, message: str = "Failed to delete task") -> None:
        super().__init__(message)


class IdentityProviderError(TaskFlowError):
    """Raised when the identity service fails (not when the user is simply anonymous)."""

    def __init__(self, message: str = "Authentication failed", status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code=status_code)


class LoginRequired(TaskFlowError):
    """Raised by the page route guard when the session is not authenticated."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Login required for {path}", status_code=401)
