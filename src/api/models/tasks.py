"""Task and dashboard response models."""

from datetime import datetime

from pydantic import BaseModel, Field

from taskboard.dashboard import NO_MATCHES_MESSAGE, NO_TASKS_MESSAGE, count_by_status, filter_tasks
from taskboard.models.task import Task, TaskPriority, TaskStatus, is_overdue


class TaskResponse(BaseModel):
    """A task as returned by the API, with its overdue flag evaluated now."""

    id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime
    attachment_url: str | None = None
    attachment_name: str | None = None
    user_id: str
    created_at: datetime
    updated_at: datetime
    overdue: bool = False

    @classmethod
    def from_task(cls, task: Task, now: datetime | None = None) -> "TaskResponse":
        return cls(**task.model_dump(), overdue=is_overdue(task, now))


class DashboardResponse(BaseModel):
    """The dashboard view: filtered tasks plus per-status counts."""

    user_id: str
    status_filter: str = "all"
    search: str = ""
    tasks: list[TaskResponse] = Field(default_factory=list)
    counts: dict[str, int] = Field(default_factory=dict)
    total: int = 0
    empty_message: str | None = None

    @classmethod
    def build(
        cls,
        user_id: str,
        tasks: list[Task],
        status_filter: str = "all",
        search: str = "",
        now: datetime | None = None,
    ) -> "DashboardResponse":
        visible = filter_tasks(tasks, status_filter, search)
        empty_message = None
        if not visible:
            empty_message = NO_TASKS_MESSAGE if not tasks else NO_MATCHES_MESSAGE
        return cls(
            user_id=user_id,
            status_filter=status_filter,
            search=search,
            tasks=[TaskResponse.from_task(task, now) for task in visible],
            counts={status.value: count for status, count in count_by_status(tasks).items()},
            total=len(tasks),
            empty_message=empty_message,
        )
