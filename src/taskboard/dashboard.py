"""Dashboard: the signed-in user's task list, its filters and the task form.

The dashboard follows the session provider. While someone is signed in it
holds exactly one live subscription for them, and the list it shows is only
ever replaced wholesale by that subscription. Mutations go to the repository
and become visible once the next snapshot arrives.

States: ``loading`` -> ``ready`` <-> ``form-open``. Losing the identity at any
point calls ``redirect_to_login``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from enum import StrEnum
from typing import Literal

from taskboard.form import TaskForm
from taskboard.models.identity import Identity, IdentityState, SessionStatus
from taskboard.models.task import CreateTaskData, Task, TaskStatus, UpdateTaskData, is_overdue
from taskboard.repository import Subscription, TaskRepository
from taskboard.session import SessionProvider

logger = logging.getLogger(__name__)

StatusFilter = TaskStatus | Literal["all"]

NO_TASKS_MESSAGE = "No tasks yet. Create your first task!"
NO_MATCHES_MESSAGE = "No tasks match your filters."


class DashboardState(StrEnum):
    LOADING = "loading"
    READY = "ready"
    FORM_OPEN = "form-open"


def filter_tasks(tasks: Iterable[Task], status: StatusFilter = "all", search: str = "") -> list[Task]:
    """Tasks matching ``status`` and containing ``search`` in title or description.

    Matching is case-insensitive. Order is preserved and the input is untouched.
    """
    term = search.strip().lower()
    result = []
    for task in tasks:
        if status != "all" and task.status != status:
            continue
        if term and term not in task.title.lower() and term not in task.description.lower():
            continue
        result.append(task)
    return result


def count_by_status(tasks: Iterable[Task]) -> dict[TaskStatus, int]:
    counts = {status: 0 for status in TaskStatus}
    for task in tasks:
        counts[task.status] += 1
    return counts


class Dashboard:
    """View state for one mounted dashboard."""

    def __init__(
        self,
        session: SessionProvider,
        repository: TaskRepository,
        redirect_to_login: Callable[[], None],
    ) -> None:
        self.session = session
        self.repository = repository
        self.redirect_to_login = redirect_to_login

        self.state = DashboardState.LOADING
        self.tasks: list[Task] = []
        self.status_filter: StatusFilter = "all"
        self.search = ""
        self.form: TaskForm | None = None

        self._identity: Identity | None = None
        self._subscription: Subscription | None = None
        self._unwatch: Callable[[], None] | None = None
        self._pending: set[asyncio.Task[None]] = set()
        self._identity_lock = asyncio.Lock()
        self._loaded = False

    # ------------------------------------------------------------------
    # Mounting
    # ------------------------------------------------------------------

    async def mount(self) -> None:
        """Follow the session and subscribe for whoever is signed in."""
        self._unwatch = self.session.watch(self._on_identity_pushed)
        await self.on_identity(self.session.current_identity())

    async def unmount(self) -> None:
        if self._unwatch is not None:
            self._unwatch()
            self._unwatch = None
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        # A subscribe cut short leaves its own channel; one that finished is closed below
        await asyncio.gather(*pending, return_exceptions=True)
        await self._close_subscription()

    def _on_identity_pushed(self, state: IdentityState) -> None:
        task = asyncio.get_running_loop().create_task(self.on_identity(state))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def on_identity(self, state: IdentityState) -> None:
        """React to an identity change: resubscribe, wait, or redirect."""
        async with self._identity_lock:
            await self._apply_identity(state)

    async def _apply_identity(self, state: IdentityState) -> None:
        new_identity = state.identity if state.status == SessionStatus.SIGNED_IN else None
        if self._identity is not None and new_identity is not None and new_identity.id == self._identity.id:
            return

        await self._close_subscription()
        self.tasks = []
        self.form = None
        self.state = DashboardState.LOADING
        self._loaded = False
        self._identity = new_identity

        if state.status == SessionStatus.SIGNED_OUT:
            logger.info("[DASHBOARD] No identity, redirecting to login")
            self.redirect_to_login()
            return
        if new_identity is None:
            return

        self._subscription = await self.repository.subscribe(new_identity.id, self._on_snapshot)

    async def _close_subscription(self) -> None:
        if self._subscription is not None:
            subscription, self._subscription = self._subscription, None
            await subscription.cancel()

    def _on_snapshot(self, tasks: list[Task]) -> None:
        self.tasks = list(tasks)
        self._loaded = True
        if self.state == DashboardState.LOADING:
            self.state = DashboardState.READY

    # ------------------------------------------------------------------
    # Derived view
    # ------------------------------------------------------------------

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def visible_tasks(self) -> list[Task]:
        return filter_tasks(self.tasks, self.status_filter, self.search)

    def status_counts(self) -> dict[TaskStatus, int]:
        return count_by_status(self.tasks)

    def overdue_ids(self, now: datetime | None = None) -> set[str]:
        return {task.id for task in self.tasks if is_overdue(task, now)}

    @property
    def empty_message(self) -> str | None:
        if self.visible_tasks:
            return None
        return NO_TASKS_MESSAGE if not self.tasks else NO_MATCHES_MESSAGE

    def set_filter(self, status: StatusFilter) -> None:
        self.status_filter = status if status == "all" else TaskStatus(status)

    def set_search(self, term: str) -> None:
        self.search = term

    # ------------------------------------------------------------------
    # Form
    # ------------------------------------------------------------------

    def open_create_form(self) -> TaskForm:
        self.form = TaskForm()
        self.state = DashboardState.FORM_OPEN
        return self.form

    def open_edit_form(self, task: Task) -> TaskForm:
        self.form = TaskForm(task)
        self.state = DashboardState.FORM_OPEN
        return self.form

    def cancel_form(self) -> None:
        self.form = None
        self.state = DashboardState.READY if self._loaded else DashboardState.LOADING

    async def submit_form(self) -> bool:
        """Submit the open form; it closes only on success."""
        if self.form is None:
            return False
        ok = await self.form.submit(self._save)
        if ok:
            self.cancel_form()
        return ok

    async def _save(self, payload: CreateTaskData | UpdateTaskData) -> None:
        if isinstance(payload, UpdateTaskData):
            await self.repository.update(payload)
            return
        if self._identity is None:
            raise RuntimeError("Not signed in")
        await self.repository.create(self._identity.id, payload)

    # ------------------------------------------------------------------
    # List actions
    # ------------------------------------------------------------------

    async def change_status(self, task_id: str, status: TaskStatus) -> None:
        """Set a task's status. Failures are logged only."""
        try:
            await self.repository.update(UpdateTaskData(id=task_id, status=status))
        except Exception as e:
            logger.error(f"[DASHBOARD] Error updating task status: {e}")

    async def delete_task(self, task_id: str) -> None:
        """Delete a task. Failures are logged only."""
        try:
            await self.repository.delete(task_id)
        except Exception as e:
            logger.error(f"[DASHBOARD] Error deleting task: {e}")
