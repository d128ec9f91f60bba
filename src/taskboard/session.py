"""Session provider wrapping Supabase Auth.

Tracks the current identity for one Supabase client and exposes login,
signup, logout and token restore. Every auth call returns an ``AuthResult``;
failures come back as values carrying an ``AuthError`` and never raise past
this module.

The state starts as ``loading`` and moves to ``signed_in`` or ``signed_out``
once ``start()`` has looked for a stored session, then follows every auth
state change the client emits.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx
from supabase._async.client import AsyncClient

from taskboard.exceptions import AuthError, AuthErrorKind
from taskboard.models.identity import AuthResult, Identity, IdentityState, SessionStatus

logger = logging.getLogger(__name__)

IdentityListener = Callable[[IdentityState], None]

_INVALID_CREDENTIAL_CODES = {"invalid_credentials", "invalid_grant", "email_not_confirmed"}
_UNKNOWN_ACCOUNT_CODES = {"user_not_found", "email_address_invalid"}


def classify_auth_error(exc: BaseException) -> AuthError:
    """Map a Supabase Auth or transport exception onto an ``AuthError``."""
    message = str(exc) or exc.__class__.__name__
    code = getattr(exc, "code", None)
    # supabase-auth wraps transport failures in a retryable error with status 0
    if isinstance(exc, httpx.TransportError) or getattr(exc, "status", None) == 0:
        return AuthError(message, AuthErrorKind.NETWORK)
    if code in _INVALID_CREDENTIAL_CODES or "invalid login credentials" in message.lower():
        return AuthError(message, AuthErrorKind.INVALID_CREDENTIALS)
    if code in _UNKNOWN_ACCOUNT_CODES:
        return AuthError(message, AuthErrorKind.UNKNOWN_ACCOUNT)
    return AuthError(message, AuthErrorKind.UNKNOWN)


def _result_from_response(response: Any) -> AuthResult:
    user = getattr(response, "user", None)
    session = getattr(response, "session", None)
    if user is None and session is not None:
        user = session.user
    return AuthResult(
        identity=Identity.from_user(user) if user else None,
        access_token=session.access_token if session else None,
        refresh_token=session.refresh_token if session else None,
        expires_at=session.expires_at if session else None,
    )


class SessionProvider:
    """Current-identity state plus auth operations for one client."""

    def __init__(self, client: AsyncClient) -> None:
        self.client = client
        self._state = IdentityState.loading()
        self._listeners: list[IdentityListener] = []
        self._auth_subscription: Any = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def current_identity(self) -> IdentityState:
        return self._state

    def watch(self, listener: IdentityListener) -> Callable[[], None]:
        """Register ``listener`` for every state change; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: IdentityState) -> None:
        if state == self._state:
            return
        self._state = state
        logger.debug(f"[AUTH] State -> {state.status}")
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("[AUTH] Identity listener failed")

    def _on_auth_event(self, event: str, session: Any) -> None:
        if event == "SIGNED_OUT" or session is None or session.user is None:
            self._set_state(IdentityState.signed_out())
        else:
            self._set_state(IdentityState.signed_in(Identity.from_user(session.user)))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> IdentityState:
        """Follow auth state changes and resolve the initial state."""
        if self._auth_subscription is None:
            self._auth_subscription = self.client.auth.on_auth_state_change(self._on_auth_event)
        try:
            session = await self.client.auth.get_session()
        except Exception as e:
            logger.warning(f"[AUTH] Could not read stored session: {e}")
            session = None
        self._on_auth_event("INITIAL_SESSION", session)
        return self._state

    def close(self) -> None:
        """Stop following auth state changes and drop all listeners."""
        if self._auth_subscription is not None:
            self._auth_subscription.unsubscribe()
            self._auth_subscription = None
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Auth operations
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> AuthResult:
        try:
            response = await self.client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            error = classify_auth_error(e)
            logger.info(f"[AUTH] Login failed for {email}: {error.kind}")
            return AuthResult(error=error)
        result = _result_from_response(response)
        if result.identity is None:
            return AuthResult(error=AuthError("Sign-in returned no user", AuthErrorKind.UNKNOWN))
        self._set_state(IdentityState.signed_in(result.identity))
        logger.info(f"[AUTH] Signed in {result.identity.id}")
        return result

    async def signup(self, email: str, password: str, display_name: str | None = None) -> AuthResult:
        """Create an account; ``display_name`` is stored as user metadata."""
        credentials: dict[str, Any] = {"email": email, "password": password}
        if display_name:
            credentials["options"] = {"data": {"display_name": display_name}}
        try:
            response = await self.client.auth.sign_up(credentials)
        except Exception as e:
            error = classify_auth_error(e)
            logger.info(f"[AUTH] Signup failed for {email}: {error.kind}")
            return AuthResult(error=error)
        result = _result_from_response(response)
        if result.identity is None:
            return AuthResult(error=AuthError("Sign-up returned no user", AuthErrorKind.UNKNOWN))
        # Projects that require email confirmation return a user but no session
        if result.access_token:
            self._set_state(IdentityState.signed_in(result.identity))
        logger.info(f"[AUTH] Signed up {result.identity.id}")
        return result

    async def logout(self) -> AuthResult:
        """Clear the session. Safe to call when already signed out."""
        if self._state.status == SessionStatus.SIGNED_OUT:
            return AuthResult()
        try:
            await self.client.auth.sign_out()
        except Exception as e:
            error = classify_auth_error(e)
            logger.warning(f"[AUTH] Sign-out failed: {error.message}")
            return AuthResult(error=error)
        self._set_state(IdentityState.signed_out())
        return AuthResult()

    async def restore(self, access_token: str, refresh_token: str = "") -> AuthResult:
        """Resume a session from tokens, e.g. a request's bearer token."""
        try:
            response = await self.client.auth.set_session(access_token, refresh_token)
        except Exception as e:
            error = classify_auth_error(e)
            logger.debug(f"[AUTH] Session restore failed: {error.message}")
            self._set_state(IdentityState.signed_out())
            return AuthResult(error=error)
        result = _result_from_response(response)
        if result.identity is None:
            self._set_state(IdentityState.signed_out())
            return AuthResult(error=AuthError("Session has no user", AuthErrorKind.UNKNOWN))
        self._set_state(IdentityState.signed_in(result.identity))
        return result
