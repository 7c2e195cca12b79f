"""Queue worker pulling pinning jobs and applying the retry policy."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar

from ..exceptions import PayloadValidationError
from ..infrastructure.job_queue import PinningJobQueue, utcnow
from ..jobs.jobs_models import QueuedJob
from .cleanup import cleanup_job_files
from .job_router import JobRouter


T = TypeVar("T")


class QueueWorker:
    """Pick jobs from the queue, route them and report the outcome back.

    Cleanup of a job's temp files runs only on terminal outcomes: success,
    a rejected payload, or the last failed attempt.
    """

    def __init__(
        self,
        *,
        queue: PinningJobQueue,
        router: JobRouter,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Any] | None = None,
        poll_interval: float = 1.0,
    ) -> None:
        self.queue = queue
        self.router = router
        self._clock = clock or utcnow
        self._sleep = self._wrap_sleep(sleep)
        self._poll_interval = poll_interval
        self._logger = logging.getLogger(__name__)

    @staticmethod
    def _wrap_sleep(
        sleep: Callable[[float], Any] | None,
    ) -> Callable[[float], Awaitable[None]]:
        if sleep is None:
            return asyncio.sleep

        async def _async_sleep(seconds: float) -> None:
            result = sleep(seconds)
            if inspect.isawaitable(result):
                await result  # type: ignore[no-any-return]

        return _async_sleep

    @staticmethod
    async def _run_sync(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
        """Execute ``func`` in a worker thread to avoid blocking the event loop."""

        return await asyncio.to_thread(func, *args, **kwargs)

    # ------------------------------------------------------------------
    # High-level control flow
    # ------------------------------------------------------------------
    async def run_once(self, *, shutdown_event: asyncio.Event | None = None) -> bool:
        """Claim and process at most one job; return whether one was found."""

        if shutdown_event is not None and shutdown_event.is_set():
            return False
        job = await self._run_sync(self.queue.acquire, now=self._clock())
        if job is None:
            return False
        await self.process_job(job)
        return True

    async def run_forever(
        self,
        *,
        worker_id: int,
        shutdown_event: asyncio.Event,
    ) -> None:
        """Continuously process jobs until ``shutdown_event`` is set."""

        try:
            while not shutdown_event.is_set():
                has_job = await self.run_once(shutdown_event=shutdown_event)
                if not has_job:
                    await self._sleep(self._poll_interval)
        except asyncio.CancelledError:
            self._logger.debug("QueueWorker %s cancelled", worker_id)
            raise

    async def process_job(self, job: QueuedJob) -> None:
        """Run ``job`` through the router and record its outcome in the queue."""

        try:
            result = await self.router.process(job)
        except PayloadValidationError as exc:
            self._logger.error("Job %s: payload rejected, not retrying. %s", job.id, exc)
            await self._run_sync(self.queue.fail_permanently, job.id, str(exc), now=self._clock())
            await self.on_failed(job, exc)
            return
        except Exception as exc:
            self._logger.error(
                "Job %s: An operation FAILED. This will trigger a retry.",
                job.id,
                exc_info=exc,
            )
            terminal = await self._run_sync(
                self.queue.record_failure, job.id, str(exc), now=self._clock()
            )
            if terminal:
                await self.on_failed(job, exc)
            return

        await self._run_sync(self.queue.complete, job.id, result=result, now=self._clock())
        await self.on_completed(job)

    # ------------------------------------------------------------------
    # Terminal hooks
    # ------------------------------------------------------------------
    async def on_completed(self, job: QueuedJob) -> None:
        self._logger.info("Job %s has completed permanently. Cleaning up files.", job.id)
        await self._run_sync(cleanup_job_files, job, log=self._logger)

    async def on_failed(self, job: QueuedJob, error: Exception) -> None:
        self._logger.warning(
            "Job %s has failed permanently after all retries (%s). Cleaning up files.",
            job.id,
            error,
        )
        await self._run_sync(cleanup_job_files, job, log=self._logger)
