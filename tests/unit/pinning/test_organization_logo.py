from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from src.ipfs_pinning.exceptions import (
    LogoPinningError,
    NoProviderAvailableError,
    TempFileMissingError,
    UploadError,
)
from src.ipfs_pinning.jobs.jobs_models import PinOrganizationLogoPayload, PinStatus
from src.ipfs_pinning.providers.persistence_strategy import PersistenceStrategy
from src.ipfs_pinning.workers.organization_logo import OrganizationLogoOrchestrator
from tests.mocks.providers import FakeIndexer, FakeProvider


def _payload(temp_path: str, original_name: str | None = "logo.svg") -> PinOrganizationLogoPayload:
    return PinOrganizationLogoPayload(
        organization_id="org-9",
        pin_record_id="pin-logo",
        temp_file_path=temp_path,
        original_name=original_name,
    )


def _orchestrator(provider: FakeProvider, indexer: FakeIndexer) -> OrganizationLogoOrchestrator:
    return OrganizationLogoOrchestrator(strategy=PersistenceStrategy([provider]), indexer=indexer)


def test_pins_logo_and_marks_record_pinned(make_temp_file) -> None:
    path = make_temp_file("logo.svg")
    provider = FakeProvider("Pinata", cids={path: "Qlogo"})
    indexer = FakeIndexer()

    outcome = asyncio.run(_orchestrator(provider, indexer).run(_payload(path)))

    assert outcome.status_synced is True
    assert outcome.to_job_result() == {
        "providerName": "Pinata",
        "contentCID": "Qlogo",
        "statusSynced": True,
    }
    assert provider.added == [(path, "logo.svg")]
    assert provider.pinned == [("Qlogo", "[org:org-9] logo.svg")]
    update = indexer.last("pin-logo")
    assert (update.status, update.cid, update.provider) == (PinStatus.PINNED, "Qlogo", "Pinata")


def test_uses_default_name_when_original_missing(make_temp_file) -> None:
    path = make_temp_file("upload.bin")
    provider = FakeProvider()

    asyncio.run(_orchestrator(provider, FakeIndexer()).run(_payload(path, original_name=None)))

    assert provider.added[0][1] == "logo"


def test_status_sync_failure_still_succeeds(make_temp_file) -> None:
    path = make_temp_file("logo.svg")
    provider = FakeProvider(cids={path: "Qlogo"})
    indexer = FakeIndexer(fail_statuses={"pin-logo": {PinStatus.PINNED}})

    outcome = asyncio.run(_orchestrator(provider, indexer).run(_payload(path)))

    assert outcome.status_synced is False
    assert outcome.cid == "Qlogo"
    assert isinstance(outcome.sync_error, Exception)
    assert len(provider.added) == 1
    assert indexer.updates == []


def test_missing_temp_file_marks_failed(tmp_path: Path) -> None:
    provider = FakeProvider()
    indexer = FakeIndexer()
    missing = str(tmp_path / "gone.svg")

    with pytest.raises(TempFileMissingError) as excinfo:
        asyncio.run(_orchestrator(provider, indexer).run(_payload(missing)))

    assert excinfo.value.path == missing
    assert indexer.statuses("pin-logo") == [PinStatus.FAILED]
    assert provider.added == []
    assert provider.health_checks == 0


def test_missing_temp_file_error_survives_failed_status_write(tmp_path: Path) -> None:
    indexer = FakeIndexer(fail_statuses={"pin-logo": {PinStatus.FAILED}})

    with pytest.raises(TempFileMissingError):
        asyncio.run(_orchestrator(FakeProvider(), indexer).run(_payload(str(tmp_path / "gone.svg"))))


def test_no_provider_marks_failed_and_reraises(make_temp_file) -> None:
    path = make_temp_file("logo.svg")
    indexer = FakeIndexer()

    with pytest.raises(NoProviderAvailableError):
        asyncio.run(_orchestrator(FakeProvider(healthy=False), indexer).run(_payload(path)))

    failed = indexer.last("pin-logo")
    assert (failed.status, failed.provider) == (PinStatus.FAILED, None)


def test_upload_failure_marks_failed_with_provider(make_temp_file) -> None:
    path = make_temp_file("logo.svg")
    provider = FakeProvider("Pinata", fail_add_for={path})
    indexer = FakeIndexer()

    with pytest.raises(LogoPinningError) as excinfo:
        asyncio.run(_orchestrator(provider, indexer).run(_payload(path)))

    assert isinstance(excinfo.value.__cause__, UploadError)
    assert excinfo.value.organization_id == "org-9"
    failed = indexer.last("pin-logo")
    assert (failed.status, failed.provider) == (PinStatus.FAILED, "Pinata")


def test_unexpected_upload_error_marks_failed(make_temp_file) -> None:
    path = make_temp_file("logo.svg")
    provider = FakeProvider("Pinata", errors={path: RuntimeError("socket closed")})
    indexer = FakeIndexer()

    with pytest.raises(LogoPinningError) as excinfo:
        asyncio.run(_orchestrator(provider, indexer).run(_payload(path)))

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert indexer.statuses("pin-logo") == [PinStatus.FAILED]
