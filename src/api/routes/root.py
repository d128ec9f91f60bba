"""Landing, login and dashboard pages."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse, RedirectResponse

from api.models.tasks import DashboardResponse
from api.utils import RequestContext, get_context
from taskboard.settings import settings

router = APIRouter()

STATIC_DIR = Path(__file__).parent.parent.parent / "static"


def _page(name: str) -> FileResponse:
    path = STATIC_DIR / name
    if not path.exists():
        raise HTTPException(status_code=404, detail="UI not found")
    return FileResponse(str(path))


@router.get("/", response_model=None)
async def root(ctx: RequestContext = Depends(get_context)) -> FileResponse | RedirectResponse:
    """Serve the landing page, or send signed-in users to their dashboard."""
    if ctx.identity is not None:
        return RedirectResponse(settings.dashboard_path, status_code=303)
    return _page("index.html")


@router.get("/login", response_model=None)
async def login_page(ctx: RequestContext = Depends(get_context)) -> FileResponse | RedirectResponse:
    """Serve the sign-in page."""
    if ctx.identity is not None:
        return RedirectResponse(settings.dashboard_path, status_code=303)
    return _page("login.html")


@router.get("/dashboard", response_model=None)
async def dashboard(
    status: Literal["all", "pending", "in-progress", "completed"] = "all",
    q: str = "",
    ctx: RequestContext = Depends(get_context),
) -> DashboardResponse | RedirectResponse:
    """The signed-in user's dashboard; anonymous visitors are sent to the login page."""
    if ctx.identity is None:
        return RedirectResponse(settings.login_path, status_code=303)
    tasks = await ctx.repository.list(ctx.identity.id)
    return DashboardResponse.build(ctx.identity.id, tasks, status_filter=status, search=q)
