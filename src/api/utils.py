"""Shared dependencies for API routes."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass

from fastapi import Cookie, Depends, Header
from supabase._async.client import AsyncClient
from supabase._async.client import create_client as create_async_client

from taskboard.exceptions import AuthError, AuthErrorKind
from taskboard.models.identity import Identity
from taskboard.repository import TaskRepository
from taskboard.session import SessionProvider
from taskboard.settings import settings

ACCESS_TOKEN_COOKIE = "access_token"
REFRESH_TOKEN_COOKIE = "refresh_token"


async def get_supabase() -> AsyncClient:
    """Get a fresh async Supabase client (one per request, so sessions never leak)."""
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY must be configured")
    return await create_async_client(settings.supabase_url, settings.supabase_anon_key)


@dataclass
class RequestContext:
    """Per-request Supabase client, session provider and resolved identity."""

    client: AsyncClient
    session: SessionProvider
    identity: Identity | None = None

    @property
    def repository(self) -> TaskRepository:
        return TaskRepository(self.client)


def bearer_token(authorization: str | None) -> str | None:
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return None


async def get_context(
    client: AsyncClient = Depends(get_supabase),
    authorization: str | None = Header(None),
    x_refresh_token: str | None = Header(None),
    access_token: str | None = Cookie(None),
    refresh_token: str | None = Cookie(None),
) -> AsyncIterator[RequestContext]:
    """Resolve the caller from a bearer token or the session cookies."""
    session = SessionProvider(client)
    token = bearer_token(authorization) or access_token
    identity = None
    if token:
        result = await session.restore(token, x_refresh_token or refresh_token or "")
        identity = result.identity
    else:
        await session.start()
    try:
        yield RequestContext(client=client, session=session, identity=identity)
    finally:
        session.close()


async def require_identity(ctx: RequestContext = Depends(get_context)) -> RequestContext:
    """Like ``get_context`` but rejects anonymous callers with a 401."""
    if ctx.identity is None:
        raise AuthError("Not authenticated", AuthErrorKind.INVALID_CREDENTIALS)
    return ctx
