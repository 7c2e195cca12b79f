"""Pinata persistence provider."""

from __future__ import annotations

import asyncio
import json
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from hashlib import sha256
from pathlib import Path

import httpx

from ..exceptions import PinError, UploadError
from .providers_base import AddResult, PersistenceProvider

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1 * 1024 * 1024  # 1 MiB
MAX_TRACKED_CIDS = 1024


def compute_file_hash(path: Path, chunk_size: int = CHUNK_SIZE) -> str:
    """Return ``sha256:<hex>`` of ``path`` read in chunks."""
    digest = sha256()
    with path.open("rb") as source:
        while True:
            chunk = source.read(chunk_size)
            if not chunk:
                break
            digest.update(chunk)
    return f"sha256:{digest.hexdigest()}"


@dataclass(slots=True)
class PinataProvider(PersistenceProvider):
    """Upload files through Pinata's ``pinFileToIPFS`` endpoint.

    Pinata pins on upload, so :meth:`pin` only checks that the CID came out
    of a recent :meth:`add` in this process. Only the last
    ``max_tracked_cids`` uploads are remembered.
    """

    api_url: str
    jwt: str
    upload_timeout_seconds: float = 120.0
    health_check_timeout_seconds: float = 3.0
    transport: httpx.AsyncBaseTransport | None = None
    max_tracked_cids: int = MAX_TRACKED_CIDS
    log: logging.Logger = field(default_factory=lambda: logger)
    name: str = field(default="Pinata", init=False)
    _recent_cids: OrderedDict[str, None] = field(
        default_factory=OrderedDict, init=False, repr=False
    )

    async def add(self, file_path: str, filename: str) -> AddResult:
        path = Path(file_path)
        try:
            asset_hash = await asyncio.to_thread(compute_file_hash, path)
        except OSError as exc:
            raise UploadError(f"Cannot read {file_path} for upload: {exc}") from exc
        self.log.info(
            "pinata.add.hashed",
            extra={"upload_name": filename, "asset_hash": asset_hash},
        )

        try:
            with path.open("rb") as stream:
                async with self._client(self.upload_timeout_seconds) as client:
                    response = await client.post(
                        f"{self.api_url}/pinning/pinFileToIPFS",
                        headers=self._auth_headers(),
                        files={"file": (filename, stream)},
                        data={"pinataMetadata": json.dumps({"name": filename})},
                    )
        except httpx.HTTPError as exc:
            raise UploadError(f"Pinata upload of {filename} failed: {exc}") from exc
        except OSError as exc:
            raise UploadError(f"Cannot read {file_path} for upload: {exc}") from exc

        if not response.is_success:
            raise UploadError(
                f"Pinata upload of {filename} failed with status {response.status_code}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise UploadError(f"Pinata upload of {filename} returned invalid JSON") from exc
        if not isinstance(body, dict):
            raise UploadError(f"Pinata upload of {filename} returned an unexpected body")
        cid = body.get("IpfsHash")
        if not isinstance(cid, str) or not cid:
            raise UploadError(f"Pinata did not return IpfsHash for {filename}")

        self._remember(cid)
        return AddResult(cid=cid, asset_hash=asset_hash)

    async def pin(self, cid: str, display_name: str) -> None:
        if cid not in self._recent_cids:
            raise PinError(f"CID {cid} was not uploaded through this Pinata provider")
        self.log.info(
            "pinata.pin.skipped",
            extra={"cid": cid, "display_name": display_name, "reason": "pinned_on_add"},
        )

    async def is_healthy(self) -> bool:
        if not self.jwt:
            self.log.warning("pinata.health.unconfigured")
            return False
        try:
            async with self._client(self.health_check_timeout_seconds) as client:
                response = await client.get(
                    f"{self.api_url}/data/testAuthentication",
                    headers=self._auth_headers(),
                )
            response.raise_for_status()
        except Exception as exc:
            self.log.warning("Pinata provider health check failed: %s", exc)
            return False
        return True

    def _remember(self, cid: str) -> None:
        self._recent_cids[cid] = None
        self._recent_cids.move_to_end(cid)
        while len(self._recent_cids) > self.max_tracked_cids:
            self._recent_cids.popitem(last=False)

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self.transport)

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.jwt}"}
