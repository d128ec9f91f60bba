"""Taskboard - personal task management on Supabase."""

from taskboard.dashboard import Dashboard, DashboardState, count_by_status, filter_tasks
from taskboard.exceptions import (
    AuthError,
    AuthErrorKind,
    FormValidationError,
    NotFoundError,
    StorageError,
    TaskboardError,
)
from taskboard.form import TaskForm, TaskFormValues
from taskboard.models import (
    Attachment,
    AuthResult,
    CreateTaskData,
    Identity,
    IdentityState,
    SessionStatus,
    Task,
    TaskPriority,
    TaskStatus,
    UpdateTaskData,
    is_overdue,
)
from taskboard.repository import Subscription, TaskRepository
from taskboard.session import SessionProvider
from taskboard.settings import Settings, settings

__all__ = [
    "Attachment",
    "AuthError",
    "AuthErrorKind",
    "AuthResult",
    "CreateTaskData",
    "Dashboard",
    "DashboardState",
    "FormValidationError",
    "Identity",
    "IdentityState",
    "NotFoundError",
    "SessionProvider",
    "SessionStatus",
    "Settings",
    "StorageError",
    "Subscription",
    "Task",
    "TaskForm",
    "TaskFormValues",
    "TaskPriority",
    "TaskRepository",
    "TaskStatus",
    "TaskboardError",
    "UpdateTaskData",
    "count_by_status",
    "filter_tasks",
    "is_overdue",
    "settings",
]
