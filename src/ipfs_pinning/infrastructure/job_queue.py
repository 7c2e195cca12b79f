"""Durable pinning job queue backed by SQLAlchemy.

Delivery is at-least-once: a job is claimed with a lease (``locked_until``)
and becomes claimable again if its worker disappears before reporting an
outcome. Failed attempts are retried with exponential backoff until
``max_attempts`` is reached.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import StrEnum
from typing import Any
from uuid import uuid4

from sqlalchemy import and_, or_, select, text, update
from sqlalchemy.orm import Session

from ..db.db_models import PinningJobModel
from ..jobs.jobs_models import QueuedJob

_MAX_ERROR_LENGTH = 4000


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in queue columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class QueueJobStatus(StrEnum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(slots=True)
class JobSnapshot:
    """Read-only view of a queue row."""

    id: str
    name: str
    status: QueueJobStatus
    attempts_made: int
    max_attempts: int
    available_at: datetime
    last_error: str | None
    result: dict[str, Any] | None


class PinningJobQueue:
    """Manage ``pinning_job`` rows."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        lock_duration_seconds: float = 120 * 60,
    ) -> None:
        self._session_factory = session_factory
        self._lock_duration = timedelta(seconds=lock_duration_seconds)

    def enqueue(
        self,
        name: str,
        data: Mapping[str, Any],
        *,
        attempts: int = 3,
        backoff_delay_ms: int = 5_000,
        now: datetime | None = None,
    ) -> str:
        current = now or utcnow()
        job_id = str(uuid4())
        with self._session_factory() as session:
            session.add(
                PinningJobModel(
                    id=job_id,
                    name=name,
                    payload_json=json.dumps(dict(data)),
                    status=QueueJobStatus.WAITING.value,
                    attempts_made=0,
                    max_attempts=max(1, attempts),
                    backoff_delay_ms=max(0, backoff_delay_ms),
                    available_at=current,
                    created_at=current,
                    updated_at=current,
                )
            )
            session.commit()
        return job_id

    def acquire(self, *, now: datetime | None = None) -> QueuedJob | None:
        """Claim the oldest deliverable job, or return ``None`` when idle."""
        current = now or utcnow()
        with self._session_factory() as session:
            model = session.scalars(
                select(PinningJobModel)
                .where(
                    or_(
                        and_(
                            PinningJobModel.status == QueueJobStatus.WAITING.value,
                            PinningJobModel.available_at <= current,
                        ),
                        and_(
                            PinningJobModel.status == QueueJobStatus.ACTIVE.value,
                            PinningJobModel.locked_until < current,
                        ),
                    )
                )
                .order_by(PinningJobModel.created_at)
                .limit(1)
            ).first()
            if model is None:
                return None

            job = QueuedJob(
                id=model.id,
                name=model.name,
                data=json.loads(model.payload_json),
                attempts_made=model.attempts_made,
            )
            # Conditional claim: loses cleanly if another worker got there first.
            claimed = session.execute(
                update(PinningJobModel)
                .where(
                    PinningJobModel.id == model.id,
                    PinningJobModel.status == model.status,
                    PinningJobModel.updated_at == model.updated_at,
                )
                .values(
                    status=QueueJobStatus.ACTIVE.value,
                    locked_until=current + self._lock_duration,
                    updated_at=current,
                )
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount != 1:
                session.rollback()
                return None
            session.commit()
            return job

    def complete(
        self,
        job_id: str,
        *,
        result: Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> None:
        current = now or utcnow()
        with self._session_factory() as session:
            model = self._get_model(session, job_id)
            model.status = QueueJobStatus.COMPLETED.value
            model.result_json = json.dumps(dict(result)) if result is not None else None
            model.locked_until = None
            model.finished_at = current
            model.updated_at = current
            session.commit()

    def record_failure(self, job_id: str, error: str, *, now: datetime | None = None) -> bool:
        """Count a failed attempt; return ``True`` when no retries remain."""
        current = now or utcnow()
        with self._session_factory() as session:
            model = self._get_model(session, job_id)
            model.attempts_made += 1
            model.last_error = error[:_MAX_ERROR_LENGTH]
            model.locked_until = None
            model.updated_at = current
            terminal = model.attempts_made >= model.max_attempts
            if terminal:
                model.status = QueueJobStatus.FAILED.value
                model.finished_at = current
            else:
                model.status = QueueJobStatus.WAITING.value
                model.available_at = current + self.backoff_delay(
                    model.backoff_delay_ms, model.attempts_made
                )
            session.commit()
            return terminal

    def fail_permanently(self, job_id: str, error: str, *, now: datetime | None = None) -> None:
        """Fail a job without further retries (e.g. an invalid payload)."""
        current = now or utcnow()
        with self._session_factory() as session:
            model = self._get_model(session, job_id)
            model.attempts_made += 1
            model.last_error = error[:_MAX_ERROR_LENGTH]
            model.status = QueueJobStatus.FAILED.value
            model.locked_until = None
            model.finished_at = current
            model.updated_at = current
            session.commit()

    def get(self, job_id: str) -> JobSnapshot:
        with self._session_factory() as session:
            model = self._get_model(session, job_id)
            return JobSnapshot(
                id=model.id,
                name=model.name,
                status=QueueJobStatus(model.status),
                attempts_made=model.attempts_made,
                max_attempts=model.max_attempts,
                available_at=model.available_at,
                last_error=model.last_error,
                result=json.loads(model.result_json) if model.result_json else None,
            )

    def ping(self) -> None:
        """Round-trip to the database; raises when it is unreachable."""
        with self._session_factory() as session:
            session.execute(text("SELECT 1"))

    @staticmethod
    def backoff_delay(base_delay_ms: int, attempts_made: int) -> timedelta:
        """Exponential backoff: ``base * 2 ** (attempts_made - 1)``."""
        exponent = max(0, attempts_made - 1)
        return timedelta(milliseconds=base_delay_ms * (2**exponent))

    @staticmethod
    def _get_model(session: Session, job_id: str) -> PinningJobModel:
        model = session.get(PinningJobModel, job_id)
        if model is None:
            raise KeyError(f"Job '{job_id}' not found")
        return model
