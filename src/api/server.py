"""FastAPI server for the Taskboard web application."""

from __future__ import annotations

import logging
import os
from pathlib import Path

# Configure Rich logging early so all modules get proper handlers
from taskboard.logging import configure_logging, get_logger

configure_logging()

import logfire
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from taskboard.exceptions import AuthError, FormValidationError, NotFoundError, StorageError
from taskboard.settings import settings

from api.routes import auth, health, root, streaming, tasks  # noqa: E402

logfire.configure(
    send_to_logfire="if-token-present",
    service_name="taskboard",
    token=os.environ.get("LOGFIRE_TOKEN"),
    environment=settings.environment,
)

logger = get_logger(__name__)

app = FastAPI(
    title="Taskboard API",
    description="""
# Taskboard API

Personal task management backed by Supabase.

## Features

- **Tasks**: Create, edit, filter and delete tasks with status, priority, due date and an optional attachment
- **Live updates**: Server-Sent Events stream of the full task list on every change
- **Authentication**: Email/password accounts via Supabase Auth

## Authentication

Include the access token returned by `/api/auth/signin` in the Authorization header:

```
Authorization: Bearer <access_token>
```

Browsers may rely on the `access_token` / `refresh_token` cookies set by sign-in instead.

## Environment Setup

Required environment variables:
- `SUPABASE_URL` - Supabase project URL
- `SUPABASE_ANON_KEY` - Supabase anon key
    """,
    version="0.1.0",
    openapi_tags=[
        {"name": "Health", "description": "Health check and monitoring endpoints"},
        {"name": "Tasks", "description": "Task creation, editing, filtering and deletion"},
        {"name": "Streaming", "description": "Live task list updates over SSE"},
        {"name": "Authentication", "description": "User authentication via Supabase Auth"},
    ],
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

static_path = Path(__file__).parent.parent / "static"
if static_path.exists():
    app.mount("/static", StaticFiles(directory=str(static_path)), name="static")

app.include_router(root.router)
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(tasks.router)
app.include_router(streaming.router)

logfire.instrument_fastapi(app)


# Exception handlers
@app.exception_handler(FormValidationError)
async def form_validation_handler(request: Request, exc: FormValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.message, "field": exc.field})


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    return JSONResponse(status_code=401, content={"detail": exc.message, "kind": exc.kind.value})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    logger.warning(f"[API] {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error(f"[API] {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"[VALIDATION ERROR] {request.method} {request.url.path}")
    for error in exc.errors():
        logger.error(f"  {error['loc']}: {error['msg']} (type={error['type']})")
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(f"[UNHANDLED ERROR] {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]} for error in exc.errors()]


def run_http() -> None:
    """Entry point for the HTTP server command."""
    logger.info(f"Starting Taskboard on http://0.0.0.0:{settings.port}")
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level=logging.getLevelName(logging.INFO).lower())


def run_dev() -> None:
    """Entry point for local development with hot reload."""
    logger.info(f"Starting dev server on http://0.0.0.0:{settings.port} (reload enabled)")
    uvicorn.run(
        "api.server:app",
        host="0.0.0.0",
        port=settings.port,
        reload=True,
        log_level="debug",
    )


if __name__ == "__main__":
    run_http()
