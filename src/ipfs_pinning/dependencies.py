"""Dependency wiring helpers."""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import FastAPI
from sqlalchemy.orm import Session, sessionmaker

from .config import AppConfig
from .db.db_init import create_engine_and_sessions
from .health.health_api import router as health_router
from .indexer.indexer_client import IndexerClient
from .infrastructure.job_queue import PinningJobQueue
from .jobs.jobs_api import router as jobs_router
from .jobs.jobs_service import PinningJobService
from .providers.persistence_strategy import PersistenceStrategy
from .providers.providers_factory import create_providers
from .workers.job_router import JobRouter
from .workers.organization_logo import OrganizationLogoOrchestrator
from .workers.release_files import ReleaseFilesOrchestrator


@dataclass(slots=True)
class PinningServices:
    """Process-wide collaborators shared by the HTTP surface and the workers."""

    job_queue: PinningJobQueue
    job_service: PinningJobService
    strategy: PersistenceStrategy
    indexer: IndexerClient
    router: JobRouter


def build_services(
    config: AppConfig,
    *,
    session_factory: sessionmaker[Session] | None = None,
    provider_transport: httpx.AsyncBaseTransport | None = None,
    indexer_transport: httpx.AsyncBaseTransport | None = None,
) -> PinningServices:
    """Instantiate queue, providers, indexer client and orchestrators."""
    if session_factory is None:
        _, session_factory = create_engine_and_sessions(config.queue_database_url)
    job_queue = PinningJobQueue(
        session_factory,
        lock_duration_seconds=config.queue_lock_duration_seconds,
    )
    job_service = PinningJobService(
        queue=job_queue,
        attempts=config.queue_attempts,
        backoff_delay_ms=config.queue_backoff_delay_ms,
    )
    strategy = PersistenceStrategy(create_providers(config, transport=provider_transport))
    indexer = IndexerClient(
        base_url=config.indexer_api_url,
        timeout_seconds=config.http_timeout_seconds,
        transport=indexer_transport,
    )
    config.manifest_temp_dir.mkdir(parents=True, exist_ok=True)
    router = JobRouter(
        release_files=ReleaseFilesOrchestrator(
            strategy=strategy,
            indexer=indexer,
            manifest_dir=config.manifest_temp_dir,
        ),
        organization_logo=OrganizationLogoOrchestrator(strategy=strategy, indexer=indexer),
        indexer=indexer,
    )
    return PinningServices(
        job_queue=job_queue,
        job_service=job_service,
        strategy=strategy,
        indexer=indexer,
        router=router,
    )


def include_routers(app: FastAPI, config: AppConfig, services: PinningServices) -> None:
    """Mount routers and attach services to application state."""
    app.state.config = config
    app.state.job_queue = services.job_queue
    app.state.pinning_job_service = services.job_service
    app.state.persistence_strategy = services.strategy
    app.state.job_router = services.router

    app.include_router(health_router)
    app.include_router(jobs_router)
