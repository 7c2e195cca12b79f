"""Factory for persistence providers."""

from __future__ import annotations

import httpx

from ..config import AppConfig
from .providers_base import PersistenceProvider
from .providers_pinata import PinataProvider


def create_provider(
    name: str,
    *,
    config: AppConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> PersistenceProvider:
    """Instantiate a persistence provider by name."""
    lower = name.lower()
    if lower == "pinata":
        return PinataProvider(
            api_url=config.pinata_api_url.rstrip("/"),
            jwt=config.pinata_jwt,
            upload_timeout_seconds=config.pinata_upload_timeout_ms / 1000.0,
            health_check_timeout_seconds=config.pinata_health_check_timeout_ms / 1000.0,
            transport=transport,
        )
    raise ValueError(f"Unsupported persistence provider '{name}'")


def create_providers(
    config: AppConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[PersistenceProvider]:
    """Build the prioritized provider list declared in ``PERSISTENCE_PROVIDERS``."""
    names = config.provider_names
    if not names:
        raise ValueError("PERSISTENCE_PROVIDERS must name at least one provider")
    return [create_provider(name, config=config, transport=transport) for name in names]
