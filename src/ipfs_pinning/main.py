"""FastAPI application entry point.

Run with ``uvicorn src.ipfs_pinning.main:create_app --factory``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import AppConfig, load_config
from .dependencies import PinningServices, build_services, include_routers
from .logging import configure_logging
from .workers.queue_worker import QueueWorker

logger = logging.getLogger(__name__)


def start_worker_pool(
    services: PinningServices,
    config: AppConfig,
    shutdown_event: asyncio.Event,
) -> list[asyncio.Task[None]]:
    """Start ``queue_concurrency`` workers sharing one queue and router."""
    tasks: list[asyncio.Task[None]] = []
    for index in range(config.queue_concurrency):
        worker = QueueWorker(
            queue=services.job_queue,
            router=services.router,
            poll_interval=config.queue_poll_interval_seconds,
        )
        tasks.append(
            asyncio.create_task(
                worker.run_forever(worker_id=index, shutdown_event=shutdown_event),
                name=f"ipfs-pinning-worker-{index}",
            )
        )
    logger.info("Started %s pinning workers", len(tasks))
    return tasks


def create_app(
    config: AppConfig | None = None,
    *,
    services: PinningServices | None = None,
    start_workers: bool = True,
) -> FastAPI:
    """Build FastAPI instance with configured dependencies and worker pool."""
    configure_logging()
    cfg = config or load_config()
    svc = services or build_services(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        shutdown_event = asyncio.Event()
        tasks = start_worker_pool(svc, cfg, shutdown_event) if start_workers else []
        try:
            yield
        finally:
            shutdown_event.set()
            for task in tasks:
                task.cancel()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)

    app = FastAPI(title="IPFS Pinning Service", lifespan=lifespan)
    include_routers(app, cfg, svc)
    return app
