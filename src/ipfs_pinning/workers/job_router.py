"""Dispatch of queued pinning jobs to their workflow."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, cast

from ..indexer.indexer_client import PinRecordWriter, update_pin_record_best_effort
from ..jobs.jobs_models import (
    JobType,
    PinOrganizationLogoPayload,
    PinRecordUpdate,
    PinReleaseFilesPayload,
    PinStatus,
    QueuedJob,
    parse_job_payload,
    resolve_job_type,
)
from .organization_logo import OrganizationLogoOrchestrator
from .release_files import ReleaseFilesOrchestrator

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class JobRouter:
    """Validate a job's payload and hand it to the matching orchestrator.

    Retries (``attempts_made > 0``) first reset every pin record referenced
    by the payload to PINNING. Logo jobs also mark their record PINNING on
    the first attempt. Both resets are best-effort.
    """

    release_files: ReleaseFilesOrchestrator
    organization_logo: OrganizationLogoOrchestrator
    indexer: PinRecordWriter
    log: logging.Logger = field(default_factory=lambda: logger)

    async def process(self, job: QueuedJob) -> dict[str, Any] | None:
        """Run ``job`` and return its result; unknown job types are a no-op."""
        self.log.info(
            "Processing new job on ipfs-pinning queue. Job ID: %s, Name: %s",
            job.id,
            job.name,
        )
        job_type = resolve_job_type(job.name)
        if job_type is None:
            self.log.warning("Job with name %s not handled.", job.name)
            return None

        payload = parse_job_payload(job_type, job.data)

        if job_type is JobType.PIN_RELEASE_FILES:
            return await self._process_release_files(job, cast(PinReleaseFilesPayload, payload))
        return await self._process_organization_logo(
            job, cast(PinOrganizationLogoPayload, payload)
        )

    async def _process_release_files(
        self, job: QueuedJob, payload: PinReleaseFilesPayload
    ) -> dict[str, Any]:
        if job.attempts_made > 0:
            await self._reset_to_pinning(job, payload.pin_record_ids())
        result = await self.release_files.run(payload)
        return result.to_job_result()

    async def _process_organization_logo(
        self, job: QueuedJob, payload: PinOrganizationLogoPayload
    ) -> dict[str, Any]:
        await self._reset_to_pinning(job, payload.pin_record_ids())
        outcome = await self.organization_logo.run(payload)
        if not outcome.status_synced:
            self.log.warning(
                "Job %s pinned %s but pin record %s still needs a PINNED status write.",
                job.id,
                outcome.cid,
                payload.pin_record_id,
            )
        return outcome.to_job_result()

    async def _reset_to_pinning(self, job: QueuedJob, pin_record_ids: Sequence[str]) -> None:
        if not pin_record_ids:
            return
        if job.attempts_made > 0:
            self.log.info(
                "This is a retry (attempt #%s). Resetting status of %s pin records to PINNING.",
                job.attempts_made + 1,
                len(pin_record_ids),
            )
        update = PinRecordUpdate(status=PinStatus.PINNING)
        await asyncio.gather(
            *(
                update_pin_record_best_effort(self.indexer, pin_record_id, update, log=self.log)
                for pin_record_id in pin_record_ids
            )
        )
