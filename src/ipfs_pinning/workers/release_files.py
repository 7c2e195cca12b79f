"""Pinning workflow for a release: main asset, thumbnails, thumbnail manifest."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from uuid import uuid4

from ..exceptions import ReleasePinningError
from ..indexer.indexer_client import PinRecordWriter, update_pin_record_best_effort
from ..jobs.jobs_models import (
    FileToPin,
    PinRecordType,
    PinRecordUpdate,
    PinReleaseFilesPayload,
    PinStatus,
)
from ..providers.persistence_strategy import PersistenceStrategy
from ..providers.providers_base import PersistenceProvider

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FileOutcome:
    """Result of pinning one file of a release."""

    pin_record_id: str
    role: PinRecordType
    cid: str | None = None
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class ReleasePinningResult:
    """Accumulator for one release run; raised as an aggregate when any step failed."""

    release_id: str
    provider_name: str
    content_cid: str | None = None
    asset_hash: str | None = None
    thumbnail_manifest_cid: str | None = None
    outcomes: list[FileOutcome] = field(default_factory=list)
    any_failure: bool = False

    def record_success(self, pin_record_id: str, role: PinRecordType, cid: str) -> None:
        self.outcomes.append(FileOutcome(pin_record_id=pin_record_id, role=role, cid=cid))

    def record_failure(self, pin_record_id: str, role: PinRecordType, error: Exception) -> None:
        self.outcomes.append(FileOutcome(pin_record_id=pin_record_id, role=role, error=error))
        self.any_failure = True

    def failed_pin_record_ids(self) -> list[str]:
        return [outcome.pin_record_id for outcome in self.outcomes if not outcome.succeeded]

    def to_job_result(self) -> dict[str, Any]:
        return {
            "providerName": self.provider_name,
            "contentCID": self.content_cid,
            "thumbnailManifestCID": self.thumbnail_manifest_cid,
            "assetHash": self.asset_hash,
        }


def build_manifest(existing_cids: Sequence[str], new_cids: Sequence[str]) -> dict[str, list[str]]:
    """Return the thumbnail manifest: pre-existing CIDs first, new ones appended."""
    return {"thumbnails": [*existing_cids, *new_cids]}


@dataclass(slots=True)
class ReleaseFilesOrchestrator:
    """Pin the files of one release with per-file failure isolation.

    Steps run strictly in order: main file, then each thumbnail in payload
    order, then the manifest. A failed file marks its pin record FAILED and
    sets the run's failure flag without stopping later files; the manifest
    only runs when nothing failed before it. The provider is resolved once
    per run.
    """

    strategy: PersistenceStrategy
    indexer: PinRecordWriter
    manifest_dir: Path
    log: logging.Logger = field(default_factory=lambda: logger)

    async def run(self, payload: PinReleaseFilesPayload) -> ReleasePinningResult:
        provider = await self.strategy.get_primary_provider()
        result = ReleasePinningResult(release_id=payload.release_id, provider_name=provider.name)

        if payload.main_file is not None:
            await self._pin_main_file(provider, payload, payload.main_file, result)

        new_thumbnail_cids = await self._pin_thumbnails(provider, payload, result)

        if not result.any_failure and (new_thumbnail_cids or payload.existing_thumbnail_cids):
            manifest = build_manifest(payload.existing_thumbnail_cids, new_thumbnail_cids)
            await self._pin_manifest(provider, payload, manifest, result)

        if result.any_failure:
            raise ReleasePinningError(payload.release_id, result.failed_pin_record_ids())
        return result

    async def _pin_main_file(
        self,
        provider: PersistenceProvider,
        payload: PinReleaseFilesPayload,
        main_file: FileToPin,
        result: ReleasePinningResult,
    ) -> None:
        name = main_file.original_name or "asset"
        try:
            added = await provider.add(main_file.temp_file_path, name)
            await provider.pin(added.cid, f"[org:{payload.organization_id}] {name}")
            await self.indexer.update_pin_record(
                main_file.pin_record_id,
                PinRecordUpdate(
                    status=PinStatus.PINNED,
                    cid=added.cid,
                    asset_hash=added.asset_hash,
                    provider=provider.name,
                ),
            )
        except Exception as exc:
            self.log.error(
                "Failed to process main file for pin record %s: %s",
                main_file.pin_record_id,
                exc,
            )
            result.record_failure(main_file.pin_record_id, PinRecordType.CONTENT, exc)
            await self._mark_failed(main_file.pin_record_id, provider.name)
            return

        result.content_cid = added.cid
        result.asset_hash = added.asset_hash
        result.record_success(main_file.pin_record_id, PinRecordType.CONTENT, added.cid)
        self.log.info(
            "PIN successful for main file (record: %s): %s",
            main_file.pin_record_id,
            added.cid,
        )

    async def _pin_thumbnails(
        self,
        provider: PersistenceProvider,
        payload: PinReleaseFilesPayload,
        result: ReleasePinningResult,
    ) -> list[str]:
        new_cids: list[str] = []
        for thumb in payload.thumbnail_files:
            upload_name = f"thumb-{thumb.original_name or 'thumbnail'}-{payload.release_id}"
            try:
                added = await provider.add(thumb.temp_file_path, upload_name)
                await self.indexer.update_pin_record(
                    thumb.pin_record_id,
                    PinRecordUpdate(status=PinStatus.PINNED, cid=added.cid, provider=provider.name),
                )
            except Exception as exc:
                self.log.error(
                    "Failed to process thumbnail for pin record %s: %s",
                    thumb.pin_record_id,
                    exc,
                )
                result.record_failure(thumb.pin_record_id, PinRecordType.THUMBNAIL, exc)
                await self._mark_failed(thumb.pin_record_id, provider.name)
                continue

            new_cids.append(added.cid)
            result.record_success(thumb.pin_record_id, PinRecordType.THUMBNAIL, added.cid)
            self.log.info(
                "PIN successful for thumbnail (record: %s): %s",
                thumb.pin_record_id,
                added.cid,
            )
        return new_cids

    async def _pin_manifest(
        self,
        provider: PersistenceProvider,
        payload: PinReleaseFilesPayload,
        manifest: dict[str, list[str]],
        result: ReleasePinningResult,
    ) -> None:
        release_id = payload.release_id
        upload_name = f"manifest-{release_id}"
        try:
            with self._scoped_manifest_file(release_id, manifest) as manifest_path:
                added = await provider.add(str(manifest_path), upload_name)
                await provider.pin(added.cid, f"[org:{payload.organization_id}] {upload_name}")
                record_id = await self.indexer.create_manifest_pin_record(release_id)
                await self.indexer.update_pin_record(
                    record_id,
                    PinRecordUpdate(status=PinStatus.PINNED, cid=added.cid, provider=provider.name),
                )
        except Exception as exc:
            self.log.error("Failed to process and pin manifest for release %s: %s", release_id, exc)
            result.any_failure = True
            return

        result.thumbnail_manifest_cid = added.cid
        result.record_success(record_id, PinRecordType.MANIFEST, added.cid)
        self.log.info("PIN successful for thumbnail manifest: %s", added.cid)

    @contextmanager
    def _scoped_manifest_file(
        self, release_id: str, manifest: dict[str, list[str]]
    ) -> Iterator[Path]:
        path = self.manifest_dir / f"manifest-{release_id}-{uuid4()}.json"
        try:
            path.write_text(json.dumps(manifest, separators=(",", ":")), encoding="utf-8")
            self.log.info("Wrote temporary manifest to: %s", path)
            yield path
        finally:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                self.log.warning("Failed to clean up temporary manifest file %s: %s", path, exc)

    async def _mark_failed(self, pin_record_id: str, provider_name: str) -> None:
        await update_pin_record_best_effort(
            self.indexer,
            pin_record_id,
            PinRecordUpdate(status=PinStatus.FAILED, provider=provider_name),
            log=self.log,
        )
