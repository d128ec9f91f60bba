"""Data models for taskboard."""

from taskboard.models.identity import AuthResult, Identity, IdentityState, SessionStatus
from taskboard.models.task import (
    Attachment,
    CreateTaskData,
    Task,
    TaskPriority,
    TaskStatus,
    UpdateTaskData,
    is_overdue,
)

__all__ = [
    "Attachment",
    "AuthResult",
    "CreateTaskData",
    "Identity",
    "IdentityState",
    "SessionStatus",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "UpdateTaskData",
    "is_overdue",
]
