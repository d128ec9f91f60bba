"""Authentication API routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response

from api.models.auth import AuthResponse, AuthSignInRequest, AuthSignUpRequest
from api.utils import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, RequestContext, get_context, require_identity
from taskboard.models.identity import AuthResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _set_session_cookies(response: Response, result: AuthResult) -> None:
    if result.access_token:
        response.set_cookie(ACCESS_TOKEN_COOKIE, result.access_token, httponly=True, samesite="lax")
    if result.refresh_token:
        response.set_cookie(REFRESH_TOKEN_COOKIE, result.refresh_token, httponly=True, samesite="lax")


@router.post("/signup")
async def api_auth_signup(
    body: AuthSignUpRequest,
    response: Response,
    ctx: RequestContext = Depends(get_context),
) -> AuthResponse:
    """Sign up a new user via Supabase Auth."""
    result = await ctx.session.signup(body.email, body.password, body.display_name)
    if result.error:
        raise result.error
    _set_session_cookies(response, result)
    return AuthResponse.from_result(result)


@router.post("/signin")
async def api_auth_signin(
    body: AuthSignInRequest,
    response: Response,
    ctx: RequestContext = Depends(get_context),
) -> AuthResponse:
    """Sign in a user via Supabase Auth."""
    result = await ctx.session.login(body.email, body.password)
    if result.error:
        raise result.error
    _set_session_cookies(response, result)
    return AuthResponse.from_result(result)


@router.post("/signout")
async def api_auth_signout(response: Response, ctx: RequestContext = Depends(get_context)) -> dict[str, str]:
    """Sign out the current user. Succeeds even without a session."""
    result = await ctx.session.logout()
    if result.error:
        logger.warning(f"[AUTH] Sign-out error ignored: {result.error.message}")
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    response.delete_cookie(REFRESH_TOKEN_COOKIE)
    return {"status": "signed_out"}


@router.get("/user")
async def api_auth_get_user(ctx: RequestContext = Depends(require_identity)) -> AuthResponse:
    """Get the current user from the bearer token or session cookie."""
    return AuthResponse.from_result(AuthResult(identity=ctx.identity))
