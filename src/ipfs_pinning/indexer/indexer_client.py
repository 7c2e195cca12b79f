"""HTTP client writing pin-record status back to the indexer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from ..exceptions import IndexerResponseError, IndexerSyncError, IndexerUnavailableError
from ..jobs.jobs_models import PinRecordType, PinRecordUpdate

logger = logging.getLogger(__name__)

_DNS_FAILURE_MARKERS = (
    "ENOTFOUND",
    "Name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "Temporary failure in name resolution",
)


def _is_dns_failure(exc: Exception) -> bool:
    message = str(exc)
    return any(marker in message for marker in _DNS_FAILURE_MARKERS)


class PinRecordWriter(Protocol):
    """Indexer operations consumed by the pinning workflows."""

    async def update_pin_record(self, pin_record_id: str, update: PinRecordUpdate) -> None:
        """Apply a partial status update to one pin record."""

    async def create_manifest_pin_record(self, release_id: str) -> str:
        """Create a MANIFEST pin record and return its identifier."""


@dataclass(slots=True)
class IndexerClient:
    """Partial updates and manifest record creation against ``/pins``.

    Every failure is logged with its classification and re-raised; whether a
    failed write is fatal is decided by the caller.
    """

    base_url: str
    timeout_seconds: float = 60.0
    transport: httpx.AsyncBaseTransport | None = None
    log: logging.Logger = field(default_factory=lambda: logger)

    async def update_pin_record(self, pin_record_id: str, update: PinRecordUpdate) -> None:
        url = f"{self.base_url.rstrip('/')}/pins/{pin_record_id}"
        self.log.info(
            "indexer.pin_record.update",
            extra={"pin_record_id": pin_record_id, "status": update.status.value, "url": url},
        )
        await self._send(
            "PATCH",
            url,
            body=update.to_request(),
            context=f"update pin record {pin_record_id}",
        )
        self.log.info(
            "indexer.pin_record.updated",
            extra={"pin_record_id": pin_record_id, "status": update.status.value},
        )

    async def create_manifest_pin_record(self, release_id: str) -> str:
        """Create one MANIFEST pin record for ``release_id`` and return its id."""
        url = f"{self.base_url.rstrip('/')}/pins"
        body = {"pins": [{"releaseId": release_id, "type": PinRecordType.MANIFEST.value}]}
        response = await self._send(
            "POST", url, body=body, context=f"create manifest pin record for release {release_id}"
        )
        try:
            data = response.json()
        except ValueError as exc:
            raise IndexerResponseError(
                f"Indexer returned invalid JSON for the manifest pin record of release {release_id}",
                status_code=response.status_code,
            ) from exc

        ids = data.get("ids") if isinstance(data, dict) else None
        if not isinstance(ids, list) or not ids or not isinstance(ids[0], str) or not ids[0]:
            message = (
                f"Indexer did not return an ID for the manifest pin record for release {release_id}"
            )
            self.log.error(message)
            raise IndexerResponseError(message, status_code=response.status_code)
        return ids[0]

    async def _send(
        self,
        method: str,
        url: str,
        *,
        body: dict[str, Any],
        context: str,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self.transport
            ) as client:
                response = await client.request(method, url, json=body)
        except httpx.RequestError as exc:
            self.log.error(
                "Failed to %s in indexer-api. URL: %s, Error: %s (%s)",
                context,
                url,
                exc,
                type(exc).__name__,
            )
            if _is_dns_failure(exc):
                self.log.error(
                    "DNS resolution failed. INDEXER_API_URL is set to: %s. "
                    "The indexer-api service is not reachable from this worker; "
                    "check container networking or service configuration.",
                    self.base_url,
                )
            raise IndexerUnavailableError(f"Indexer unreachable while trying to {context}: {exc}") from exc

        if response.is_error:
            self.log.error(
                "Failed to %s in indexer-api. URL: %s, Status: %s, Response: %s",
                context,
                url,
                response.status_code,
                response.text,
            )
            raise IndexerResponseError(
                f"Indexer answered {response.status_code} while trying to {context}",
                status_code=response.status_code,
            )
        return response


async def update_pin_record_best_effort(
    indexer: PinRecordWriter,
    pin_record_id: str,
    update: PinRecordUpdate,
    *,
    log: logging.Logger = logger,
) -> bool:
    """Apply ``update`` and report instead of raising when the write fails."""
    try:
        await indexer.update_pin_record(pin_record_id, update)
    except IndexerSyncError as exc:
        log.error(
            "Failed to update pin record %s to %s; manual intervention may be required: %s",
            pin_record_id,
            update.status.value,
            exc,
        )
        return False
    return True
