"""Task model and the payloads used to create and update it."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TaskStatus(StrEnum):
    """Valid task status values."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(StrEnum):
    """Valid task priority values."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Attachment(BaseModel):
    """A file selected for upload alongside a task."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


class Task(BaseModel):
    """A persisted task row."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime
    attachment_url: str | None = None
    attachment_name: str | None = None
    user_id: str
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _check_invariants(self) -> Task:
        if (self.attachment_url is None) != (self.attachment_name is None):
            raise ValueError("attachment_url and attachment_name must be set together")
        if self.updated_at < self.created_at:
            raise ValueError("updated_at must not precede created_at")
        return self

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Task:
        """Build a Task from a Supabase row."""
        return cls(
            **{
                **row,
                "id": str(row["id"]),
                "description": row.get("description") or "",
                # Empty strings are how a cleared attachment comes back from older rows
                "attachment_url": row.get("attachment_url") or None,
                "attachment_name": row.get("attachment_name") or None,
            }
        )

    @property
    def has_attachment(self) -> bool:
        return self.attachment_url is not None


def is_overdue(task: Task, now: datetime | None = None) -> bool:
    """A task is overdue when it is not completed and its due date has passed.

    Naive due dates are compared as UTC.
    """
    if task.status == TaskStatus.COMPLETED:
        return False
    now = now or datetime.now(UTC)
    due = task.due_date
    if due.tzinfo is None and now.tzinfo is not None:
        due = due.replace(tzinfo=UTC)
    elif due.tzinfo is not None and now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return due < now


class CreateTaskData(BaseModel):
    """Payload for creating a task."""

    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime
    attachment: Attachment | None = None


class UpdateTaskData(BaseModel):
    """Patch for an existing task.

    Only the fields explicitly set are written; ``id`` selects the row and is
    never written itself.
    """

    id: str
    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    attachment: Attachment | None = Field(default=None, exclude=True)

    def changes(self) -> dict[str, Any]:
        """Return the set fields as a row patch, excluding ``id`` and the file."""
        return self.model_dump(mode="json", exclude_unset=True, exclude_none=True, exclude={"id", "attachment"})
