"""Streaming API routes (SSE)."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from api.models.tasks import TaskResponse
from api.utils import RequestContext, require_identity
from taskboard.models.task import Task

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stream", tags=["Streaming"])

KEEPALIVE_SECONDS = 15.0


def snapshot_event(tasks: list[Task]) -> str:
    """Format one snapshot as an SSE ``data:`` frame."""
    now = datetime.now().astimezone()
    payload = {
        "type": "snapshot",
        "tasks": [TaskResponse.from_task(task, now).model_dump(mode="json") for task in tasks],
        "timestamp": now.isoformat(),
    }
    return f"data: {json.dumps(payload)}\n\n"


@router.get(
    "/tasks",
    summary="Stream Task Snapshots",
    response_description="Server-Sent Events (SSE) stream of the caller's full task list",
)
async def stream_tasks(request: Request, ctx: RequestContext = Depends(require_identity)) -> StreamingResponse:
    """
    Stream the caller's tasks using Server-Sent Events (SSE).

    The first event carries the current list; every insert, update or delete
    of the caller's tasks produces another event with the complete list,
    newest first. Comment frames are sent as keep-alives while idle.

    **Example Event:**
    ```
    data: {"type": "snapshot", "tasks": [...], "timestamp": "2025-12-04T13:45:00+00:00"}
    ```
    """
    # Only the newest snapshot matters, so a slow reader skips the ones it missed
    latest: asyncio.Queue[list[Task]] = asyncio.Queue(maxsize=1)

    def on_change(tasks: list[Task]) -> None:
        if latest.full():
            latest.get_nowait()
        latest.put_nowait(tasks)

    owner_id = ctx.identity.id

    async def generate():
        subscription = None
        try:
            # Opened here so the channel lives exactly as long as the response body
            subscription = await ctx.repository.subscribe(owner_id, on_change)
            logger.info(f"[STREAM] Opened task stream for {owner_id}")
            while True:
                if await request.is_disconnected():
                    break
                try:
                    tasks = await asyncio.wait_for(latest.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield snapshot_event(tasks)
        finally:
            if subscription is not None:
                await subscription.cancel()
                logger.info(f"[STREAM] Closed task stream for {owner_id}")

    return StreamingResponse(generate(), media_type="text/event-stream")
