"""HTTP routes for submitting pinning jobs."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from ..exceptions import PayloadValidationError
from .jobs_service import PinningJobService

router = APIRouter(tags=["pins"])
logger = logging.getLogger(__name__)


class EnqueuePinRequest(BaseModel):
    """Job envelope: a type tag and its payload."""

    name: str = Field(min_length=1)
    data: dict[str, Any]


def get_pinning_job_service(request: Request) -> PinningJobService:
    """Fetch the job service from application state."""
    try:
        return request.app.state.pinning_job_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("PinningJobService is not configured") from exc


@router.post("/ipfs/pins", status_code=status.HTTP_202_ACCEPTED)
def enqueue_pin(
    body: EnqueuePinRequest,
    service: PinningJobService = Depends(get_pinning_job_service),
) -> dict[str, str]:
    """Validate and enqueue a pinning job."""
    try:
        return service.enqueue_pinning_job(body.name, body.data)
    except PayloadValidationError as exc:
        logger.warning("pins.enqueue.invalid_payload", extra={"job_name": body.name})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"status": "error", "message": str(exc)},
        ) from exc
