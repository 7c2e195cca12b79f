"""Job payloads, job types and pin-record statuses.

Payloads travel through the queue as plain JSON using the producer's
camelCase keys; the models below accept either the wire alias or the
Python field name.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import PayloadValidationError


class JobType(StrEnum):
    """Job type tags accepted on the pinning queue."""

    PIN_RELEASE_FILES = "PIN_RELEASE_FILES"
    PIN_ORGANIZATION_LOGO = "PIN_ORGANIZATION_LOGO"


class PinStatus(StrEnum):
    """Pin-record statuses owned by the indexer."""

    PINNING = "PINNING"
    PINNED = "PINNED"
    FAILED = "FAILED"


class PinRecordType(StrEnum):
    CONTENT = "CONTENT"
    THUMBNAIL = "THUMBNAIL"
    MANIFEST = "MANIFEST"
    ORGANIZATION_LOGO = "ORGANIZATION_LOGO"


class _PayloadModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class FileToPin(_PayloadModel):
    """A temporary file and the pin record that tracks it."""

    temp_file_path: str = Field(alias="tempFilePath", min_length=1)
    pin_record_id: str = Field(alias="pinRecordId", min_length=1)
    original_name: str | None = Field(default=None, alias="originalName")


class PinReleaseFilesPayload(_PayloadModel):
    """Main asset, thumbnails and manifest inputs for one release."""

    organization_id: str = Field(alias="organizationId", min_length=1)
    release_id: str = Field(alias="releaseId", min_length=1)
    main_file: FileToPin | None = Field(default=None, alias="mainFile")
    thumbnail_files: list[FileToPin] = Field(default_factory=list, alias="thumbnailFiles")
    existing_thumbnail_cids: list[str] = Field(
        default_factory=list, alias="existingThumbnailCIDs"
    )
    # Release context forwarded by the producer; not used for pinning.
    pool: str | None = None
    user_id: str | None = Field(default=None, alias="userId")
    site_address: str | None = Field(default=None, alias="siteAddress")
    actor_peer_id: str | None = Field(default=None, alias="actorPeerId")

    def pin_record_ids(self) -> list[str]:
        ids = [self.main_file.pin_record_id] if self.main_file else []
        ids.extend(thumb.pin_record_id for thumb in self.thumbnail_files)
        return ids


class PinOrganizationLogoPayload(_PayloadModel):
    """Single logo file for an organization."""

    organization_id: str = Field(alias="organizationId", min_length=1)
    pin_record_id: str = Field(alias="pinRecordId", min_length=1)
    temp_file_path: str = Field(alias="tempFilePath", min_length=1)
    original_name: str | None = Field(default=None, alias="originalName")

    def pin_record_ids(self) -> list[str]:
        return [self.pin_record_id]


JobPayload = PinReleaseFilesPayload | PinOrganizationLogoPayload

PAYLOAD_MODELS: dict[JobType, type[_PayloadModel]] = {
    JobType.PIN_RELEASE_FILES: PinReleaseFilesPayload,
    JobType.PIN_ORGANIZATION_LOGO: PinOrganizationLogoPayload,
}


def parse_job_payload(job_type: JobType, data: Mapping[str, Any]) -> JobPayload:
    """Validate ``data`` against the payload shape of ``job_type``."""
    model = PAYLOAD_MODELS[job_type]
    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except ValidationError as exc:
        raise PayloadValidationError(job_type.value, exc.errors(include_url=False)) from exc


def resolve_job_type(name: str) -> JobType | None:
    """Return the :class:`JobType` for ``name`` or ``None`` when unknown."""
    try:
        return JobType(name)
    except ValueError:
        return None


@dataclass(slots=True)
class PinRecordUpdate:
    """Partial update sent to ``PATCH /pins/{id}``."""

    status: PinStatus
    cid: str | None = None
    asset_hash: str | None = None
    provider: str | None = None

    def to_request(self) -> dict[str, str]:
        body = {"status": self.status.value}
        if self.cid is not None:
            body["cid"] = self.cid
        if self.asset_hash is not None:
            body["assetHash"] = self.asset_hash
        if self.provider is not None:
            body["provider"] = self.provider
        return body


@dataclass(slots=True)
class QueuedJob:
    """A job as delivered by the queue to a worker."""

    id: str
    name: str
    data: dict[str, Any] = field(default_factory=dict)
    attempts_made: int = 0
