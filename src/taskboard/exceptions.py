"""Exceptions for taskboard."""

from __future__ import annotations

from enum import StrEnum


class TaskboardError(Exception):
    """Base exception for taskboard errors."""

    pass


class FormValidationError(TaskboardError):
    """Raised when a required form field is missing or blank."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class AuthErrorKind(StrEnum):
    """Why an authentication call failed."""

    INVALID_CREDENTIALS = "invalid_credentials"
    UNKNOWN_ACCOUNT = "unknown_account"
    NETWORK = "network"
    UNKNOWN = "unknown"


class AuthError(TaskboardError):
    """Authentication failure.

    The session provider hands these back as values; the HTTP layer raises
    them to produce a 401.
    """

    def __init__(self, message: str, kind: AuthErrorKind = AuthErrorKind.UNKNOWN) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind


class NotFoundError(TaskboardError):
    """Raised when a task id does not resolve."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class StorageError(TaskboardError):
    """Raised when an attachment upload or delete fails."""

    pass
