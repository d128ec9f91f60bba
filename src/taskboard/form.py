"""Task create/edit form: input capture, validation and payload packaging.

The form never talks to the repository. ``submit`` hands the packaged
payload to a delegate and shows whatever the delegate raises.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import date, datetime

from pydantic import BaseModel

from taskboard.exceptions import FormValidationError
from taskboard.models.task import (
    Attachment,
    CreateTaskData,
    Task,
    TaskPriority,
    TaskStatus,
    UpdateTaskData,
)

logger = logging.getLogger(__name__)

SubmitDelegate = Callable[[CreateTaskData | UpdateTaskData], Awaitable[object]]


class TaskFormValues(BaseModel):
    """Raw field values as entered."""

    title: str = ""
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: str = ""


def parse_due_date(value: str) -> datetime:
    """Accept a ``YYYY-MM-DD`` date or a full ISO 8601 date/time."""
    value = value.strip()
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        pass
    try:
        day = date.fromisoformat(value)
    except ValueError as e:
        raise FormValidationError("due_date", "Due date is not a valid date") from e
    return datetime(day.year, day.month, day.day)


class TaskForm:
    """Form state for creating a task or editing ``task``."""

    def __init__(self, task: Task | None = None) -> None:
        self.task = task
        if task is not None:
            self.values = TaskFormValues(
                title=task.title,
                description=task.description,
                status=task.status,
                priority=task.priority,
                due_date=task.due_date.date().isoformat(),
            )
        else:
            self.values = TaskFormValues()
        self.attachment: Attachment | None = None
        self.error = ""
        self.saving = False

    @property
    def is_edit(self) -> bool:
        return self.task is not None

    def set_values(self, **fields: object) -> None:
        self.values = self.values.model_copy(update=fields)

    def attach(self, attachment: Attachment | None) -> None:
        self.attachment = attachment

    def validate(self) -> datetime:
        """Check required fields and return the parsed due date.

        Raises:
            FormValidationError: on the first missing or malformed field
        """
        if not self.values.title.strip():
            raise FormValidationError("title", "Title is required")
        if not self.values.due_date.strip():
            raise FormValidationError("due_date", "Due date is required")
        return parse_due_date(self.values.due_date)

    def build_payload(self) -> CreateTaskData | UpdateTaskData:
        """Validate and package the values as a create or update payload."""
        due_date = self.validate()
        fields = {
            "title": self.values.title,
            "description": self.values.description,
            "status": self.values.status,
            "priority": self.values.priority,
            "due_date": due_date,
            "attachment": self.attachment,
        }
        if self.task is not None:
            return UpdateTaskData(id=self.task.id, **fields)
        return CreateTaskData(**fields)

    async def submit(self, on_submit: SubmitDelegate) -> bool:
        """Validate, then pass the payload to ``on_submit``.

        Returns True on success. Validation and delegate errors are stored in
        ``error`` instead of being raised.
        """
        self.error = ""
        try:
            payload = self.build_payload()
        except FormValidationError as e:
            self.error = e.message
            return False

        self.saving = True
        try:
            await on_submit(payload)
        except Exception as e:
            logger.info(f"[TASKS] Form submission failed: {e}")
            self.error = str(e) or "An error occurred"
            return False
        finally:
            self.saving = False
        return True
