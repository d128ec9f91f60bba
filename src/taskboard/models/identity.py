"""Identity and session state models."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict

from taskboard.exceptions import AuthError


class SessionStatus(StrEnum):
    """Where the session provider is in resolving the current user."""

    LOADING = "loading"
    SIGNED_OUT = "signed_out"
    SIGNED_IN = "signed_in"


class Identity(BaseModel):
    """The authenticated user a task belongs to."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str | None = None
    display_name: str | None = None

    @classmethod
    def from_user(cls, user: Any) -> Identity:
        """Build an Identity from a Supabase Auth user object."""
        metadata = getattr(user, "user_metadata", None) or {}
        return cls(
            id=str(user.id),
            email=getattr(user, "email", None),
            display_name=metadata.get("display_name"),
        )


class IdentityState(BaseModel):
    """Snapshot of the current identity; ``loading`` is distinct from signed out."""

    model_config = ConfigDict(frozen=True)

    status: SessionStatus
    identity: Identity | None = None

    @classmethod
    def loading(cls) -> IdentityState:
        return cls(status=SessionStatus.LOADING)

    @classmethod
    def signed_out(cls) -> IdentityState:
        return cls(status=SessionStatus.SIGNED_OUT)

    @classmethod
    def signed_in(cls, identity: Identity) -> IdentityState:
        return cls(status=SessionStatus.SIGNED_IN, identity=identity)


class AuthResult(BaseModel):
    """Outcome of a login, signup, logout or restore call."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    identity: Identity | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: int | None = None
    error: AuthError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
