"""Health check and monitoring endpoints."""

from __future__ import annotations

from datetime import datetime
from time import time
from typing import Any

from fastapi import APIRouter, Depends
from supabase._async.client import AsyncClient

from api.utils import get_supabase
from taskboard.settings import settings

# Track server start time for uptime metrics
start_time = time()

SERVICE_NAME = "taskboard"

router = APIRouter(prefix="/api", tags=["Health"])


@router.get("/healthz", summary="Basic Health Check", response_description="Service health status")
async def healthz() -> dict[str, Any]:
    """
    Basic health check endpoint for load balancers and monitoring.

    **Example Response:**
    ```json
    {"status": "ok", "timestamp": "2025-12-04T13:45:00.000Z", "service": "taskboard"}
    ```
    """
    return {"status": "ok", "timestamp": datetime.now().isoformat(), "service": SERVICE_NAME}


async def _optional_supabase() -> AsyncClient | None:
    if not settings.supabase_url or not settings.supabase_anon_key:
        return None
    return await get_supabase()


@router.get(
    "/health/detailed",
    summary="Detailed Health Check",
    response_description="Service health status with backend checks",
)
async def health_detailed(client: AsyncClient | None = Depends(_optional_supabase)) -> dict[str, Any]:
    """
    Detailed health check including the Supabase tasks table and storage bucket.

    **Status Values:**
    - `healthy`: All systems operational
    - `degraded`: A backend check failed or Supabase is not configured
    """
    checks: dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "service": SERVICE_NAME,
        "uptime_seconds": round(time() - start_time, 1),
        "checks": {},
    }

    if client is None:
        checks["checks"]["supabase"] = {"status": "not_configured"}
        checks["status"] = "degraded"
        return checks

    try:
        await client.table(settings.tasks_table).select("id").limit(1).execute()
        checks["checks"]["supabase"] = {"status": "ok", "message": "Connected"}
    except Exception as e:
        checks["checks"]["supabase"] = {"status": "error", "message": str(e)}
        checks["status"] = "degraded"

    try:
        await client.storage.get_bucket(settings.attachments_bucket)
        checks["checks"]["storage"] = {"status": "ok", "bucket": settings.attachments_bucket}
    except Exception as e:
        checks["checks"]["storage"] = {"status": "error", "message": str(e)}
        checks["status"] = "degraded"

    return checks
