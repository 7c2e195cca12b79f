"""Pinning workflow for an organization logo."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from ..exceptions import (
    IndexerSyncError,
    LogoPinningError,
    NoProviderAvailableError,
    TempFileMissingError,
)
from ..indexer.indexer_client import PinRecordWriter, update_pin_record_best_effort
from ..jobs.jobs_models import PinOrganizationLogoPayload, PinRecordUpdate, PinStatus
from ..providers.persistence_strategy import PersistenceStrategy

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LogoPinningOutcome:
    """Pinning result plus whether the PINNED status reached the indexer.

    ``status_synced`` is ``False`` when the logo is pinned but the status
    write failed; the job still succeeds and the record needs a manual fix.
    """

    cid: str
    provider_name: str
    status_synced: bool = True
    sync_error: Exception | None = None

    def to_job_result(self) -> dict[str, object]:
        return {
            "providerName": self.provider_name,
            "contentCID": self.cid,
            "statusSynced": self.status_synced,
        }


@dataclass(slots=True)
class OrganizationLogoOrchestrator:
    """Verify, upload and pin a logo, then report the outcome to the indexer."""

    strategy: PersistenceStrategy
    indexer: PinRecordWriter
    log: logging.Logger = field(default_factory=lambda: logger)

    async def run(self, payload: PinOrganizationLogoPayload) -> LogoPinningOutcome:
        organization_id = payload.organization_id
        pin_record_id = payload.pin_record_id
        temp_path = payload.temp_file_path
        self.log.info(
            "Starting logo processing for org %s, pinRecordId: %s, tempFilePath: %s",
            organization_id,
            pin_record_id,
            temp_path,
        )

        if not Path(temp_path).is_file():
            self.log.error("Temp file does not exist: %s", temp_path)
            await self._mark_failed(pin_record_id, provider_name=None)
            raise TempFileMissingError(temp_path)

        try:
            provider = await self.strategy.get_primary_provider()
        except NoProviderAvailableError as exc:
            self.log.error("Failed to get primary provider for logo of org %s: %s", organization_id, exc)
            await self._mark_failed(pin_record_id, provider_name=None)
            raise
        self.log.info("Using provider: %s", provider.name)

        name = payload.original_name or "logo"
        try:
            added = await provider.add(temp_path, name)
            self.log.info("File added to IPFS with CID: %s", added.cid)
            await provider.pin(added.cid, f"[org:{organization_id}] {name}")
        except Exception as exc:
            self.log.error("Failed to process logo for organization %s: %s", organization_id, exc)
            await self._mark_failed(pin_record_id, provider_name=provider.name)
            raise LogoPinningError(organization_id) from exc
        self.log.info("PIN successful for organization logo: %s", added.cid)

        try:
            await self.indexer.update_pin_record(
                pin_record_id,
                PinRecordUpdate(status=PinStatus.PINNED, cid=added.cid, provider=provider.name),
            )
        except IndexerSyncError as exc:
            self.log.error(
                "WARNING: Failed to update pin record %s to PINNED, but file was successfully "
                "pinned to IPFS with CID: %s. Update error: %s",
                pin_record_id,
                added.cid,
                exc,
            )
            self.log.warning(
                "The logo is pinned (CID: %s), but the status update failed. The job will be "
                "marked as successful; manual status update of pin record %s may be required.",
                added.cid,
                pin_record_id,
            )
            return LogoPinningOutcome(
                cid=added.cid,
                provider_name=provider.name,
                status_synced=False,
                sync_error=exc,
            )

        self.log.info("Updated pin record %s to PINNED", pin_record_id)
        return LogoPinningOutcome(cid=added.cid, provider_name=provider.name)

    async def _mark_failed(self, pin_record_id: str, *, provider_name: str | None) -> None:
        updated = await update_pin_record_best_effort(
            self.indexer,
            pin_record_id,
            PinRecordUpdate(status=PinStatus.FAILED, provider=provider_name),
            log=self.log,
        )
        if updated:
            self.log.info("Updated pin record %s status to FAILED", pin_record_id)
