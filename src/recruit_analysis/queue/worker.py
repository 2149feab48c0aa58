"""Queue consumers: a single-job worker and a pool of polling loops."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from recruit_analysis.errors import PermanentAnalysisError
from recruit_analysis.models.job import AnalysisJob, EntityStatus
from recruit_analysis.pipeline.orchestrator import AnalysisOrchestrator
from recruit_analysis.queue.job_queue import JobQueue
from recruit_analysis.store.analysis_store import AnalysisStore
from recruit_analysis.utils.backoff import BackoffFn, exponential_backoff

logger = logging.getLogger(__name__)


class Worker:
    """Runs queued jobs through the orchestrator.

    Permanent failures fail the job at once. Anything else the orchestrator
    lets escape (datastore errors, the job timeout, bugs) is retried with
    ``backoff`` until the job's attempts run out, after which the entity is
    marked ``analysis_error``.
    """

    def __init__(
        self,
        queue: JobQueue,
        orchestrator: AnalysisOrchestrator,
        store: AnalysisStore,
        *,
        backoff: BackoffFn | None = None,
        job_timeout: float = 300.0,
    ):
        self.queue = queue
        self.orchestrator = orchestrator
        self.store = store
        self.backoff = backoff or exponential_backoff(base=2.0)
        self.job_timeout = job_timeout

    async def process_next(self) -> AnalysisJob | None:
        """Claim and run one ready job. Returns None when nothing is ready."""
        job = await self.queue.dequeue()
        if job is None:
            return None
        await self.process(job)
        return job

    async def process(self, job: AnalysisJob) -> None:
        logger.info(
            "Processing job %s: %s %s (attempt %d/%d)",
            job.id, job.entity_kind.value, job.entity_id, job.attempt_count, job.max_attempts,
        )
        try:
            await asyncio.wait_for(
                self.orchestrator.run_analysis(job.entity_id, job.entity_kind),
                timeout=self.job_timeout,
            )
        except PermanentAnalysisError as exc:
            logger.error("Job %s failed permanently: %s", job.id, exc)
            await self.queue.fail(job, str(exc))
            return
        except Exception as exc:
            await self._handle_failure(job, exc)
            return

        await self.queue.ack(job)
        logger.info("Job %s succeeded", job.id)

    async def _handle_failure(self, job: AnalysisJob, exc: Exception) -> None:
        if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
            error = f"job timed out after {self.job_timeout:g}s"
        else:
            error = f"{type(exc).__name__}: {exc}"

        if job.attempts_remaining > 0:
            delay = self.backoff(job.attempt_count)
            logger.warning(
                "Job %s failed (attempt %d/%d): %s; retrying in %.1fs",
                job.id, job.attempt_count, job.max_attempts, error, delay,
            )
            await self.queue.retry(job, delay, error)
            return

        logger.error("Job %s exhausted %d attempts: %s", job.id, job.max_attempts, error)
        await self.queue.fail(job, error)
        try:
            await self.store.update_status(
                job.entity_id, job.entity_kind, EntityStatus.ANALYSIS_ERROR, error
            )
        except Exception:
            logger.exception("Could not mark %s as analysis_error", job.entity_id)


class WorkerPool:
    """``concurrency`` polling loops sharing one worker, plus periodic housekeeping."""

    def __init__(
        self,
        worker: Worker,
        *,
        concurrency: int = 4,
        poll_interval: float = 1.0,
        housekeeping: Callable[[], Awaitable[None]] | None = None,
        housekeeping_interval: float = 600.0,
    ):
        self.worker = worker
        self.concurrency = max(1, concurrency)
        self.poll_interval = poll_interval
        self.housekeeping = housekeeping
        self.housekeeping_interval = housekeeping_interval
        self._stop = asyncio.Event()

    def stop(self) -> None:
        self._stop.set()

    async def run(self) -> None:
        """Consume jobs until ``stop()`` is called."""
        self._stop.clear()
        loops = [self._consume(i) for i in range(self.concurrency)]
        if self.housekeeping is not None:
            loops.append(self._housekeep())
        logger.info("Worker pool started with %d worker(s)", self.concurrency)
        await asyncio.gather(*loops)
        logger.info("Worker pool stopped")

    async def run_until_idle(self) -> int:
        """Drain every job that is ready now. Returns how many were processed."""
        processed = 0

        async def _drain() -> None:
            nonlocal processed
            while await self.worker.process_next() is not None:
                processed += 1

        await asyncio.gather(*(_drain() for _ in range(self.concurrency)))
        return processed

    async def _consume(self, index: int) -> None:
        while not self._stop.is_set():
            try:
                job = await self.worker.process_next()
            except Exception:
                logger.exception("Worker %d crashed while processing a job", index)
                job = None
            if job is None:
                await self._wait(self.poll_interval)

    async def _housekeep(self) -> None:
        while not self._stop.is_set():
            try:
                await self.housekeeping()
            except Exception:
                logger.exception("Housekeeping failed")
            await self._wait(self.housekeeping_interval)

    async def _wait(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
