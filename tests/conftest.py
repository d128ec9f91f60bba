"""
Shared pytest fixtures and an in-memory stand-in for the async Supabase client.

The fakes cover exactly the client surface taskboard touches:
- PostgREST query builder: select/insert/update/delete with eq, order and limit
- Storage buckets: upload, get_public_url, remove, get_bucket
- Realtime channels: on_postgres_changes, subscribe, remove_channel
- Auth: sign up, password sign in, sign out, stored session, token restore
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from typing import Any, Callable

import pytest

from taskboard.repository import TaskRepository

SUPABASE_URL = "https://example.supabase.co"


# =============================================================================
# PostgREST
# =============================================================================


class MockSupabaseResponse:
    """Mock Supabase response."""

    def __init__(self, data: list | None = None) -> None:
        self.data = data


class MockSupabaseQuery:
    """Query builder over one in-memory table."""

    def __init__(self, client: MockSupabaseClient, table: str) -> None:
        self._client = client
        self._table = table
        self._op = "select"
        self._payload: dict | None = None
        self._filters: list[tuple[str, Any]] = []
        self._order: tuple[str, bool] | None = None
        self._limit: int | None = None

    def select(self, *columns: str) -> MockSupabaseQuery:
        self._op = "select"
        return self

    def insert(self, data: dict) -> MockSupabaseQuery:
        self._op = "insert"
        self._payload = data
        return self

    def update(self, data: dict) -> MockSupabaseQuery:
        self._op = "update"
        self._payload = data
        return self

    def delete(self) -> MockSupabaseQuery:
        self._op = "delete"
        return self

    def eq(self, field: str, value: Any) -> MockSupabaseQuery:
        self._filters.append((field, value))
        return self

    def order(self, field: str, desc: bool = False) -> MockSupabaseQuery:
        self._order = (field, desc)
        return self

    def limit(self, count: int) -> MockSupabaseQuery:
        self._limit = count
        return self

    def _matches(self, row: dict) -> bool:
        return all(str(row.get(field)) == str(value) for field, value in self._filters)

    async def execute(self) -> MockSupabaseResponse:
        if self._table in self._client.failing_tables:
            raise ConnectionError(f"relation {self._table} unavailable")
        rows = self._client.tables.setdefault(self._table, [])

        if self._op == "insert":
            now = self._client.server_clock().isoformat()
            row = {
                "id": str(uuid.uuid4()),
                "created_at": now,
                "updated_at": now,
                "description": "",
                "attachment_url": None,
                "attachment_name": None,
                **self._payload,
            }
            rows.append(row)
            self._client.emit(self._table, "INSERT", row, None)
            return MockSupabaseResponse([dict(row)])

        matched = [row for row in rows if self._matches(row)]

        if self._op == "update":
            for row in matched:
                old = dict(row)
                row.update(self._payload)
                # Same guard as the tasks_guard_timestamps trigger
                row["created_at"] = old["created_at"]
                if "updated_at" in old and datetime.fromisoformat(row["updated_at"]) < datetime.fromisoformat(
                    old["updated_at"]
                ):
                    row["updated_at"] = old["updated_at"]
                self._client.emit(self._table, "UPDATE", row, old)
            return MockSupabaseResponse([dict(row) for row in matched])

        if self._op == "delete":
            for row in matched:
                rows.remove(row)
                self._client.emit(self._table, "DELETE", None, row)
            return MockSupabaseResponse([dict(row) for row in matched])

        result = [dict(row) for row in matched]
        if self._order is not None:
            field, desc = self._order
            result.sort(key=lambda row: row[field], reverse=desc)
        if self._limit is not None:
            result = result[: self._limit]
        return MockSupabaseResponse(result)


# =============================================================================
# Storage
# =============================================================================


class MockStorageBucket:
    def __init__(self, storage: MockStorage, bucket: str) -> None:
        self._storage = storage
        self._bucket = bucket

    async def upload(self, path: str, file: bytes, file_options: dict | None = None) -> SimpleNamespace:
        if self._storage.fail_uploads:
            raise ConnectionError("upload rejected")
        self._storage.objects[(self._bucket, path)] = file
        return SimpleNamespace(path=path, full_path=f"{self._bucket}/{path}")

    async def get_public_url(self, path: str) -> str:
        # The real client appends an empty query string
        return f"{SUPABASE_URL}/storage/v1/object/public/{self._bucket}/{path}?"

    async def remove(self, paths: list[str]) -> list[dict]:
        if self._storage.fail_removes:
            raise ConnectionError("remove rejected")
        removed = []
        for path in paths:
            if self._storage.objects.pop((self._bucket, path), None) is not None:
                removed.append({"name": path})
        return removed


class MockStorage:
    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}
        self.buckets = {"task-attachments"}
        self.fail_uploads = False
        self.fail_removes = False

    def from_(self, bucket: str) -> MockStorageBucket:
        return MockStorageBucket(self, bucket)

    async def get_bucket(self, bucket: str) -> SimpleNamespace:
        if bucket not in self.buckets:
            raise LookupError(f"Bucket {bucket} not found")
        return SimpleNamespace(id=bucket, name=bucket, public=True)


# =============================================================================
# Realtime
# =============================================================================


class MockChannel:
    def __init__(self, name: str) -> None:
        self.name = name
        self.handlers: list[dict[str, Any]] = []
        self.subscribed = False

    def on_postgres_changes(
        self,
        event: str,
        callback: Callable[[dict], None],
        table: str = "*",
        schema: str = "public",
        filter: str | None = None,
    ) -> MockChannel:
        self.handlers.append({"event": event, "table": table, "filter": filter, "callback": callback})
        return self

    async def subscribe(self) -> MockChannel:
        self.subscribed = True
        return self

    def deliver(self, table: str, event: str, new: dict | None, old: dict | None) -> None:
        if not self.subscribed:
            return
        record = new or old or {}
        for handler in self.handlers:
            if handler["table"] != table or handler["event"] not in ("*", event):
                continue
            if handler["filter"]:
                field, _, value = handler["filter"].partition("=eq.")
                if str(record.get(field)) != value:
                    continue
            handler["callback"]({"eventType": event, "table": table, "new": new or {}, "old": old or {}})


# =============================================================================
# Auth
# =============================================================================


class MockAuthError(Exception):
    """Shaped like supabase-auth's API errors: a message plus code and status."""

    def __init__(self, message: str, code: str | None = None, status: int = 400) -> None:
        super().__init__(message)
        self.code = code
        self.status = status


class MockAuthSubscription:
    def __init__(self, auth: MockAuth, callback: Callable[[str, Any], None]) -> None:
        self._auth = auth
        self.callback = callback

    def unsubscribe(self) -> None:
        if self in self._auth.subscriptions:
            self._auth.subscriptions.remove(self)


class MockAuth:
    def __init__(self) -> None:
        self.users: dict[str, tuple[str, SimpleNamespace]] = {}
        self.sessions: dict[str, SimpleNamespace] = {}
        self.session: SimpleNamespace | None = None
        self.subscriptions: list[MockAuthSubscription] = []
        self.require_confirmation = False
        self.offline = False

    def _check_online(self) -> None:
        if self.offline:
            raise MockAuthError("Failed to reach auth server", status=0)

    def _new_session(self, user: SimpleNamespace) -> SimpleNamespace:
        session = SimpleNamespace(
            access_token=f"access-{uuid.uuid4().hex}",
            refresh_token=f"refresh-{uuid.uuid4().hex}",
            expires_at=int((datetime.now(UTC) + timedelta(hours=1)).timestamp()),
            user=user,
        )
        self.sessions[session.access_token] = session
        return session

    def _emit(self, event: str, session: Any) -> None:
        for subscription in list(self.subscriptions):
            subscription.callback(event, session)

    def add_user(self, email: str, password: str, display_name: str | None = None) -> SimpleNamespace:
        metadata = {"display_name": display_name} if display_name else {}
        user = SimpleNamespace(id=str(uuid.uuid4()), email=email, user_metadata=metadata)
        self.users[email] = (password, user)
        return user

    def issue_session(self, user: SimpleNamespace) -> SimpleNamespace:
        """A session for ``user`` as if they had signed in elsewhere."""
        return self._new_session(user)

    def on_auth_state_change(self, callback: Callable[[str, Any], None]) -> MockAuthSubscription:
        subscription = MockAuthSubscription(self, callback)
        self.subscriptions.append(subscription)
        return subscription

    async def get_session(self) -> SimpleNamespace | None:
        return self.session

    async def sign_up(self, credentials: dict) -> SimpleNamespace:
        self._check_online()
        email = credentials["email"]
        if email in self.users:
            raise MockAuthError("User already registered", code="user_already_exists", status=422)
        display_name = credentials.get("options", {}).get("data", {}).get("display_name")
        user = self.add_user(email, credentials["password"], display_name)
        if self.require_confirmation:
            return SimpleNamespace(user=user, session=None)
        self.session = self._new_session(user)
        self._emit("SIGNED_IN", self.session)
        return SimpleNamespace(user=user, session=self.session)

    async def sign_in_with_password(self, credentials: dict) -> SimpleNamespace:
        self._check_online()
        entry = self.users.get(credentials["email"])
        if entry is None or entry[0] != credentials["password"]:
            raise MockAuthError("Invalid login credentials", code="invalid_credentials")
        self.session = self._new_session(entry[1])
        self._emit("SIGNED_IN", self.session)
        return SimpleNamespace(user=entry[1], session=self.session)

    async def sign_out(self) -> None:
        self._check_online()
        if self.session is not None:
            self.sessions.pop(self.session.access_token, None)
        self.session = None
        self._emit("SIGNED_OUT", None)

    async def set_session(self, access_token: str, refresh_token: str) -> SimpleNamespace:
        session = self.sessions.get(access_token)
        if session is None:
            raise MockAuthError("Invalid JWT", code="bad_jwt", status=401)
        self.session = session
        self._emit("SIGNED_IN", session)
        return SimpleNamespace(user=session.user, session=session)


# =============================================================================
# Client
# =============================================================================


class MockSupabaseClient:
    """In-memory async Supabase client."""

    def __init__(self) -> None:
        self.supabase_url = SUPABASE_URL
        # Stands in for now() in column defaults
        self.server_clock: Callable[[], datetime] = SteppingClock()
        self.tables: dict[str, list[dict]] = {}
        self.failing_tables: set[str] = set()
        self.storage = MockStorage()
        self.auth = MockAuth()
        self.channels: list[MockChannel] = []

    def table(self, name: str) -> MockSupabaseQuery:
        return MockSupabaseQuery(self, name)

    def channel(self, name: str) -> MockChannel:
        channel = MockChannel(name)
        self.channels.append(channel)
        return channel

    async def remove_channel(self, channel: MockChannel) -> None:
        channel.subscribed = False
        if channel in self.channels:
            self.channels.remove(channel)

    def emit(self, table: str, event: str, new: dict | None, old: dict | None) -> None:
        for channel in list(self.channels):
            channel.deliver(table, event, new, old)


class SteppingClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


async def settle() -> None:
    """Let scheduled realtime refreshes run to completion."""
    for _ in range(20):
        await asyncio.sleep(0)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def supabase() -> MockSupabaseClient:
    return MockSupabaseClient()


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def repository(supabase: MockSupabaseClient, clock: SteppingClock) -> TaskRepository:
    return TaskRepository(supabase, clock=clock)
