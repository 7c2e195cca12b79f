from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest

from src.ipfs_pinning.exceptions import IndexerResponseError, IndexerUnavailableError
from src.ipfs_pinning.indexer.indexer_client import IndexerClient, update_pin_record_best_effort
from src.ipfs_pinning.jobs.jobs_models import PinRecordUpdate, PinStatus

BASE_URL = "http://indexer.test/ipfs"


def _client(handler) -> IndexerClient:
    return IndexerClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))


def test_update_pin_record_sends_partial_camel_case_patch() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "pin-1"})

    update = PinRecordUpdate(
        status=PinStatus.PINNED, cid="Qm1", asset_hash="sha256:ab", provider="Pinata"
    )
    asyncio.run(_client(handler).update_pin_record("pin-1", update))

    request = seen[0]
    assert request.method == "PATCH"
    assert str(request.url) == f"{BASE_URL}/pins/pin-1"
    assert json.loads(request.content) == {
        "status": "PINNED",
        "cid": "Qm1",
        "assetHash": "sha256:ab",
        "provider": "Pinata",
    }


def test_update_pin_record_omits_unset_fields() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(204)

    asyncio.run(_client(handler).update_pin_record("pin-2", PinRecordUpdate(status=PinStatus.PINNING)))
    assert seen == [{"status": "PINNING"}]


def test_update_pin_record_raises_response_error_on_error_status() -> None:
    client = _client(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(IndexerResponseError) as excinfo:
        asyncio.run(client.update_pin_record("pin-1", PinRecordUpdate(status=PinStatus.FAILED)))
    assert excinfo.value.status_code == 500


def test_update_pin_record_flags_dns_failures(caplog: pytest.LogCaptureFixture) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("[Errno -2] Name or service not known", request=request)

    with caplog.at_level(logging.ERROR), pytest.raises(IndexerUnavailableError):
        asyncio.run(_client(handler).update_pin_record("pin-1", PinRecordUpdate(status=PinStatus.PINNED)))
    assert any("DNS resolution failed" in record.getMessage() for record in caplog.records)


def test_create_manifest_pin_record_returns_first_id() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"ids": ["pin-manifest", "ignored"]})

    record_id = asyncio.run(_client(handler).create_manifest_pin_record("rel-1"))

    assert record_id == "pin-manifest"
    assert seen[0].method == "POST"
    assert str(seen[0].url) == f"{BASE_URL}/pins"
    assert json.loads(seen[0].content) == {"pins": [{"releaseId": "rel-1", "type": "MANIFEST"}]}


@pytest.mark.parametrize(
    "body", [{"ids": []}, {"ids": [""]}, {"ids": "abc123"}, {"ids": {"0": "pin-x"}}, {}, ["pin-x"]]
)
def test_create_manifest_pin_record_requires_an_id(body) -> None:
    client = _client(lambda request: httpx.Response(200, json=body))

    with pytest.raises(IndexerResponseError, match="did not return an ID"):
        asyncio.run(client.create_manifest_pin_record("rel-1"))


def test_best_effort_update_reports_failure_instead_of_raising() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    ok = asyncio.run(
        update_pin_record_best_effort(
            _client(handler), "pin-1", PinRecordUpdate(status=PinStatus.FAILED)
        )
    )
    assert ok is False


def test_best_effort_update_returns_true_on_success() -> None:
    client = _client(lambda request: httpx.Response(200, json={}))
    assert asyncio.run(
        update_pin_record_best_effort(client, "pin-1", PinRecordUpdate(status=PinStatus.PINNING))
    ) is True
