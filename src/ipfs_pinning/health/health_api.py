"""Health endpoint reporting queue and provider availability."""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ..exceptions import NoProviderAvailableError

router = APIRouter(tags=["health"])

_STARTED_AT = time.monotonic()


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


@router.get("/health")
async def health(request: Request) -> Any:
    """Queue down means unhealthy (503); no healthy provider means degraded."""
    started = time.monotonic()
    checks: dict[str, dict[str, Any]] = {}
    overall = "healthy"

    queue = request.app.state.job_queue
    queue_started = time.monotonic()
    try:
        await asyncio.to_thread(queue.ping)
        checks["queue"] = {
            "status": "healthy",
            "message": "Connected",
            "responseTime": _elapsed_ms(queue_started),
        }
    except SQLAlchemyError as exc:
        checks["queue"] = {"status": "unhealthy", "message": str(exc)}
        overall = "unhealthy"

    strategy = request.app.state.persistence_strategy
    ipfs_started = time.monotonic()
    try:
        provider = await strategy.get_primary_provider()
        checks["ipfs"] = {
            "status": "healthy",
            "message": f"Provider available: {provider.name}",
            "responseTime": _elapsed_ms(ipfs_started),
        }
    except NoProviderAvailableError as exc:
        checks["ipfs"] = {"status": "unhealthy", "message": str(exc)}
        overall = "degraded" if overall == "healthy" else "unhealthy"

    body = {
        "status": overall,
        "service": "ipfs-service",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": time.monotonic() - _STARTED_AT,
        "checks": checks,
        "responseTime": _elapsed_ms(started),
    }
    if overall == "unhealthy":
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
    return body
