"""Task management API routes.

Create and update take multipart form data so a file can ride along with
the fields. Every route is scoped to the caller; a task owned by someone
else is reported as not found.
"""

from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, Depends, File, Form, UploadFile

from api.models.tasks import DashboardResponse, TaskResponse
from api.utils import RequestContext, require_identity
from taskboard.exceptions import NotFoundError
from taskboard.form import TaskForm
from taskboard.models.task import Attachment, Task, TaskPriority, TaskStatus, UpdateTaskData

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


async def _read_attachment(upload: UploadFile | None) -> Attachment | None:
    if upload is None or not upload.filename:
        return None
    return Attachment(
        filename=upload.filename,
        content=await upload.read(),
        content_type=upload.content_type or "application/octet-stream",
    )


async def _owned_task(ctx: RequestContext, task_id: str) -> Task:
    task = await ctx.repository.get_one(task_id, owner_id=ctx.identity.id)
    if task is None:
        raise NotFoundError(task_id)
    return task


@router.get("")
async def api_list_tasks(
    status: Literal["all", "pending", "in-progress", "completed"] = "all",
    q: str = "",
    ctx: RequestContext = Depends(require_identity),
) -> DashboardResponse:
    """List the caller's tasks, newest first, filtered by status and search text."""
    tasks = await ctx.repository.list(ctx.identity.id)
    return DashboardResponse.build(ctx.identity.id, tasks, status_filter=status, search=q)


@router.post("", status_code=201)
async def api_create_task(
    title: str = Form(""),
    description: str = Form(""),
    status: TaskStatus = Form(TaskStatus.PENDING),
    priority: TaskPriority = Form(TaskPriority.MEDIUM),
    due_date: str = Form(""),
    attachment: UploadFile | None = File(None),
    ctx: RequestContext = Depends(require_identity),
) -> TaskResponse:
    """Create a task, optionally with an attachment."""
    form = TaskForm()
    form.set_values(title=title, description=description, status=status, priority=priority, due_date=due_date)
    form.attach(await _read_attachment(attachment))
    task = await ctx.repository.create(ctx.identity.id, form.build_payload())
    return TaskResponse.from_task(task)


@router.get("/{task_id}")
async def api_get_task(task_id: str, ctx: RequestContext = Depends(require_identity)) -> TaskResponse:
    """Get a task by ID."""
    return TaskResponse.from_task(await _owned_task(ctx, task_id))


@router.patch("/{task_id}")
async def api_update_task(
    task_id: str,
    title: str | None = Form(None),
    description: str | None = Form(None),
    status: TaskStatus | None = Form(None),
    priority: TaskPriority | None = Form(None),
    due_date: str | None = Form(None),
    attachment: UploadFile | None = File(None),
    ctx: RequestContext = Depends(require_identity),
) -> TaskResponse:
    """Update any subset of a task's fields; a new file replaces the old attachment."""
    current = await _owned_task(ctx, task_id)

    # Validate the merged result the way the edit form would
    form = TaskForm(current)
    updates = {
        field: value
        for field, value in {
            "title": title,
            "description": description,
            "status": status,
            "priority": priority,
            "due_date": due_date,
        }.items()
        if value is not None
    }
    form.set_values(**updates)
    parsed_due_date = form.validate()
    if "due_date" in updates:
        updates["due_date"] = parsed_due_date

    patch = UpdateTaskData(id=task_id, attachment=await _read_attachment(attachment), **updates)
    task = await ctx.repository.update(patch)
    return TaskResponse.from_task(task)


@router.delete("/{task_id}")
async def api_delete_task(task_id: str, ctx: RequestContext = Depends(require_identity)) -> dict[str, str]:
    """Delete a task and its attachment."""
    await _owned_task(ctx, task_id)
    await ctx.repository.delete(task_id)
    return {"status": "deleted"}
