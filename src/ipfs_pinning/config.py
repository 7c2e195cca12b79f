"""Application configuration for the pinning service.

Environment keys match the deployment variables of the pinning worker
(``PINATA_*``, ``INDEXER_API_URL``, ``QUEUE_*``). Durations keep their
millisecond units; the ``*_seconds`` helpers convert them for httpx and
asyncio.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_manifest_dir() -> Path:
    return Path(tempfile.gettempdir())


class AppConfig(BaseSettings):
    """Pydantic settings container for the pinning worker and its HTTP surface."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    pinata_api_url: str = Field(
        default="https://api.pinata.cloud",
        alias="PINATA_API_URL",
        description="Base URL of the Pinata REST API.",
    )
    pinata_jwt: str = Field(
        default="",
        alias="PINATA_JWT",
        description="Bearer token used for every Pinata request.",
    )
    pinata_upload_timeout_ms: int = Field(default=120_000, ge=1, alias="PINATA_UPLOAD_TIMEOUT")
    pinata_health_check_timeout_ms: int = Field(
        default=3_000, ge=1, alias="PINATA_HEALTH_CHECK_TIMEOUT"
    )
    indexer_api_url: str = Field(
        default="http://localhost:3001/ipfs",
        alias="INDEXER_API_URL",
        description="Base URL of the indexer pin-record API (``/pins`` is appended).",
    )
    http_timeout_ms: int = Field(default=60_000, ge=1, alias="HTTP_TIMEOUT")
    persistence_providers: str = Field(
        default="pinata",
        alias="PERSISTENCE_PROVIDERS",
        description="Comma separated provider names in priority order, highest first.",
    )
    queue_database_url: str = Field(
        default="sqlite:///ipfs_pinning_queue.db",
        alias="QUEUE_DATABASE_URL",
    )
    queue_concurrency: int = Field(default=5, ge=1, alias="QUEUE_CONCURRENCY")
    queue_attempts: int = Field(default=3, ge=1, alias="QUEUE_ATTEMPTS")
    queue_backoff_delay_ms: int = Field(default=5_000, ge=0, alias="QUEUE_BACKOFF_DELAY_MS")
    queue_lock_duration_ms: int = Field(
        default=120 * 60 * 1000, ge=1_000, alias="QUEUE_LOCK_DURATION_MS"
    )
    queue_poll_interval_ms: int = Field(default=1_000, ge=1, alias="QUEUE_POLL_INTERVAL_MS")
    manifest_temp_dir: Path = Field(
        default_factory=_default_manifest_dir,
        alias="MANIFEST_TEMP_DIR",
    )

    @property
    def provider_names(self) -> list[str]:
        return [name.strip() for name in self.persistence_providers.split(",") if name.strip()]

    @property
    def http_timeout_seconds(self) -> float:
        return self.http_timeout_ms / 1000.0

    @property
    def queue_poll_interval_seconds(self) -> float:
        return self.queue_poll_interval_ms / 1000.0

    @property
    def queue_lock_duration_seconds(self) -> float:
        return self.queue_lock_duration_ms / 1000.0


def load_config() -> AppConfig:
    """Load configuration from the process environment."""
    return AppConfig()
