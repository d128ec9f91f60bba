"""Task persistence on Supabase.

CRUD goes through PostgREST on the tasks table, attachments through the
storage bucket, and live queries through a Realtime channel per subscriber.

Attachment cleanup is not transactional with the row it belongs to. Old
blobs are removed before the row is rewritten or deleted, and a failed
removal is logged and skipped.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from pydantic import ValidationError
from supabase._async.client import AsyncClient

from taskboard.attachments import delete_attachment, upload_attachment
from taskboard.exceptions import NotFoundError
from taskboard.models.task import CreateTaskData, Task, UpdateTaskData
from taskboard.settings import settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
SnapshotCallback = Callable[[list[Task]], Awaitable[None] | None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Subscription:
    """A live query over one owner's tasks.

    Every change to the owner's rows triggers a fresh ordered read whose full
    result is handed to the callback. Reads and deliveries are serialized, so
    snapshots arrive in the order they were taken.
    """

    def __init__(self, repository: TaskRepository, owner_id: str, on_change: SnapshotCallback) -> None:
        self.repository = repository
        self.owner_id = owner_id
        self.on_change = on_change
        self.channel_name = f"tasks-{owner_id}-{uuid4().hex[:8]}"
        self._channel: Any = None
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task[None]] = set()
        self._cancelled = False

    @property
    def active(self) -> bool:
        return self._channel is not None and not self._cancelled

    async def open(self) -> None:
        """Join the Realtime channel and deliver the initial snapshot."""
        client = self.repository.client
        table = self.repository.table
        self._channel = client.channel(self.channel_name)
        try:
            self._channel.on_postgres_changes(
                event="*",
                schema="public",
                table=table,
                filter=f"user_id=eq.{self.owner_id}",
                callback=self._on_change_event,
            )
            # Row filters do not apply to DELETE events, so any delete triggers a refresh
            self._channel.on_postgres_changes(
                event="DELETE",
                schema="public",
                table=table,
                callback=self._on_change_event,
            )
            await self._channel.subscribe()
            logger.info(f"[REALTIME] Subscribed {self.channel_name}")
            await self.refresh()
        except BaseException:
            # The caller never receives this subscription, so leave the channel here
            await self.cancel()
            raise

    def _on_change_event(self, payload: dict[str, Any]) -> None:
        if self._cancelled:
            return
        logger.debug(f"[REALTIME] {self.channel_name} change: {payload.get('eventType') or payload.get('type')}")
        task = asyncio.get_running_loop().create_task(self.refresh())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def refresh(self) -> None:
        """Read the owner's tasks and deliver them, unless cancelled meanwhile."""
        async with self._lock:
            if self._cancelled:
                return
            try:
                tasks = await self.repository.list(self.owner_id)
            except Exception as e:
                logger.error(f"[REALTIME] Refresh of {self.channel_name} failed: {e}")
                return
            if self._cancelled:
                return
            result = self.on_change(tasks)
            if inspect.isawaitable(result):
                await result

    async def cancel(self) -> None:
        """Stop delivery and leave the channel. Safe to call more than once."""
        if self._cancelled:
            return
        self._cancelled = True
        for task in list(self._pending):
            task.cancel()
        if self._channel is not None:
            try:
                await self.repository.client.remove_channel(self._channel)
            except Exception as e:
                logger.warning(f"[REALTIME] Failed to leave {self.channel_name}: {e}")
        logger.info(f"[REALTIME] Unsubscribed {self.channel_name}")


class TaskRepository:
    """CRUD and live queries for tasks, plus their attachments."""

    def __init__(
        self,
        client: AsyncClient,
        table: str | None = None,
        bucket: str | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.client = client
        self.table = table or settings.tasks_table
        self.bucket = bucket or settings.attachments_bucket
        self._clock = clock or _utcnow

    def _query(self) -> Any:
        return self.client.table(self.table)

    def _next_stamp(self, current: Task) -> str:
        """Write timestamp for an update of ``current``.

        Never earlier than the stored value, so a client clock running behind
        the one that wrote the row cannot move ``updated_at`` backwards.
        """
        now = self._clock()
        floor = current.updated_at + timedelta(microseconds=1)
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        return max(now, floor).isoformat()

    def _to_tasks(self, rows: list[dict[str, Any]]) -> list[Task]:
        tasks = []
        for row in rows:
            try:
                tasks.append(Task.from_row(row))
            except ValidationError as e:
                logger.error(f"[TASKS] Skipping unreadable row {row.get('id')}: {e}")
        return tasks

    async def create(self, owner_id: str, data: CreateTaskData) -> Task:
        """Insert a task for ``owner_id`` and upload its attachment, if any.

        Raises:
            StorageError: if the upload fails; the row stays, without an attachment
        """
        # created_at and updated_at come from the column defaults
        row = {
            "title": data.title,
            "description": data.description,
            "status": data.status.value,
            "priority": data.priority.value,
            "due_date": data.due_date.isoformat(),
            "user_id": owner_id,
        }
        response = await self._query().insert(row).execute()
        task = Task.from_row(response.data[0])
        logger.info(f"[TASKS] Created {task.id} for {owner_id}")

        if data.attachment is not None:
            url = await upload_attachment(self.client, self.bucket, owner_id, task.id, data.attachment)
            response = (
                await self._query()
                .update({"attachment_url": url, "attachment_name": data.attachment.filename})
                .eq("id", task.id)
                .execute()
            )
            task = Task.from_row(response.data[0])
        return task

    async def list(self, owner_id: str) -> list[Task]:
        """All of the owner's tasks, newest first."""
        response = (
            await self._query()
            .select("*")
            .eq("user_id", owner_id)
            .order("created_at", desc=True)
            .execute()
        )
        return self._to_tasks(response.data or [])

    async def get_one(self, task_id: str, owner_id: str | None = None) -> Task | None:
        """The task with ``task_id``, or None. ``owner_id`` narrows the lookup."""
        query = self._query().select("*").eq("id", task_id)
        if owner_id is not None:
            query = query.eq("user_id", owner_id)
        response = await query.limit(1).execute()
        if not response.data:
            return None
        return Task.from_row(response.data[0])

    async def update(self, patch: UpdateTaskData) -> Task:
        """Apply ``patch``, replacing the attachment when it carries a file.

        Raises:
            NotFoundError: if ``patch.id`` does not resolve
            StorageError: if the new attachment cannot be uploaded
        """
        changes: dict[str, Any] = patch.changes()
        current = await self.get_one(patch.id)
        if current is None:
            logger.warning(f"[TASKS] Update of missing task {patch.id}")
            raise NotFoundError(patch.id)

        if patch.attachment is not None:
            if current.attachment_url:
                await delete_attachment(self.client, self.bucket, current.attachment_url)
            url = await upload_attachment(self.client, self.bucket, current.user_id, patch.id, patch.attachment)
            changes["attachment_url"] = url
            changes["attachment_name"] = patch.attachment.filename

        changes["updated_at"] = self._next_stamp(current)
        response = await self._query().update(changes).eq("id", patch.id).execute()
        if not response.data:
            logger.warning(f"[TASKS] Update of missing task {patch.id}")
            raise NotFoundError(patch.id)
        logger.info(f"[TASKS] Updated {patch.id}: {sorted(changes)}")
        return Task.from_row(response.data[0])

    async def delete(self, task_id: str) -> None:
        """Delete the task and, best-effort, its attachment.

        Raises:
            NotFoundError: if ``task_id`` does not resolve
        """
        task = await self.get_one(task_id)
        if task is None:
            logger.warning(f"[TASKS] Delete of missing task {task_id}")
            raise NotFoundError(task_id)
        if task.attachment_url:
            await delete_attachment(self.client, self.bucket, task.attachment_url)
        await self._query().delete().eq("id", task_id).execute()
        logger.info(f"[TASKS] Deleted {task_id}")

    async def subscribe(self, owner_id: str, on_change: SnapshotCallback) -> Subscription:
        """Open a live query; ``on_change`` gets the initial list and every later one."""
        subscription = Subscription(self, owner_id, on_change)
        await subscription.open()
        return subscription
