"""Enqueueing of pinning jobs."""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from ..exceptions import PayloadValidationError
from ..infrastructure.job_queue import PinningJobQueue
from .jobs_models import parse_job_payload, resolve_job_type

logger = structlog.get_logger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


@dataclass(slots=True)
class PinningJobService:
    """Validate job payloads and place them on the pinning queue."""

    queue: PinningJobQueue
    attempts: int = 3
    backoff_delay_ms: int = 5_000

    def enqueue_pinning_job(self, name: str, data: Mapping[str, Any]) -> dict[str, str]:
        """Validate ``data`` for job type ``name`` and enqueue it.

        Raises :class:`PayloadValidationError` for unknown job types and
        malformed payloads; queue failures propagate after being logged.
        """
        job_type = resolve_job_type(name)
        if job_type is None:
            logger.warning("pins.enqueue.rejected", job_name=name, reason="unknown_job_type")
            raise PayloadValidationError(name, "unknown job type")
        payload = parse_job_payload(job_type, data)

        started = time.monotonic()
        try:
            job_id = self.queue.enqueue(
                job_type.value,
                payload.model_dump(by_alias=True, exclude_none=True),
                attempts=self.attempts,
                backoff_delay_ms=self.backoff_delay_ms,
            )
        except SQLAlchemyError as exc:
            logger.error(
                "pins.enqueue.failed",
                job_name=job_type.value,
                organization_id=payload.organization_id,
                duration_ms=_elapsed_ms(started),
                error=str(exc),
            )
            raise
        logger.info(
            "pins.enqueue.accepted",
            job_id=job_id,
            job_name=job_type.value,
            organization_id=payload.organization_id,
            duration_ms=_elapsed_ms(started),
        )
        return {"jobId": job_id, "status": "QUEUED"}
