"""Wires the store, queue, client and orchestrator together from config."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from recruit_analysis.cache.response_cache import ResponseCache
from recruit_analysis.clients.llm_client import LLMClient
from recruit_analysis.config import AppConfig
from recruit_analysis.logging.run_store import RunLogStore
from recruit_analysis.models.job import EntityKind, EntityStatus
from recruit_analysis.notifications.notifier import LoggingNotifier, Notifier
from recruit_analysis.pipeline.orchestrator import AnalysisOrchestrator
from recruit_analysis.queue.job_queue import SQLiteJobQueue
from recruit_analysis.queue.single_flight import SingleFlightRegistry
from recruit_analysis.queue.worker import Worker, WorkerPool
from recruit_analysis.store.analysis_store import SQLiteAnalysisStore
from recruit_analysis.utils.backoff import exponential_backoff, make_backoff

logger = logging.getLogger(__name__)


@dataclass
class AnalysisService:
    config: AppConfig
    llm: LLMClient
    cache: ResponseCache
    store: SQLiteAnalysisStore
    queue: SQLiteJobQueue
    orchestrator: AnalysisOrchestrator
    worker: Worker
    run_log: RunLogStore

    async def request_analysis(self, entity_id: str, kind: EntityKind | str) -> tuple[str, bool]:
        """Queue an analysis unless one is already queued or running.

        Returns (job_id, created). A duplicate request gets the existing job id.
        """
        kind = EntityKind(kind)
        job_id, created = await self.queue.enqueue(entity_id, kind)
        if created:
            await self.store.update_status(entity_id, kind, EntityStatus.PENDING)
        return job_id, created

    async def housekeeping(self) -> None:
        purged = await asyncio.to_thread(self.cache.purge_expired)
        stalled = await self.queue.recover_stalled(self.config.queue.stalled_after)
        finished = await self.queue.purge_finished(self.config.queue.finished_retention)
        logger.debug(
            "Housekeeping: %d cache entries purged, %d stalled jobs re-queued, %d jobs purged",
            purged, stalled, finished,
        )

    def worker_pool(self, concurrency: int | None = None) -> WorkerPool:
        queue_config = self.config.queue
        return WorkerPool(
            self.worker,
            concurrency=concurrency or queue_config.concurrency,
            poll_interval=queue_config.poll_interval,
            housekeeping=self.housekeeping,
            housekeeping_interval=queue_config.housekeeping_interval,
        )


def build_service(
    config: AppConfig,
    *,
    api_key: str | None = None,
    notifier: Notifier | None = None,
) -> AnalysisService:
    cache = ResponseCache(
        db_path=config.cache.resolved_db_path,
        ttl_seconds=config.cache.ttl_seconds,
        fingerprint_chars=config.cache.fingerprint_chars,
    )
    llm = LLMClient(
        api_key=api_key,
        timeout=config.llm.timeout,
        model=config.llm.model,
        max_retries=config.llm.max_retries,
        backoff=make_backoff(config.llm.backoff, config.llm.backoff_base, config.llm.backoff_max),
        cache=cache,
        max_tokens=config.llm.max_tokens,
        temperature=config.llm.temperature,
    )
    store = SQLiteAnalysisStore(config.store.resolved_db_path)
    run_log = RunLogStore(config.runs.resolved_db_path)
    orchestrator = AnalysisOrchestrator(
        llm,
        store,
        notifier=notifier or LoggingNotifier(),
        run_log=run_log,
        max_attempts=config.pipeline.max_attempts,
    )
    queue = SQLiteJobQueue(
        config.queue.resolved_db_path,
        registry=SingleFlightRegistry(),
        max_attempts=config.queue.max_attempts,
    )
    worker = Worker(
        queue,
        orchestrator,
        store,
        backoff=exponential_backoff(base=config.queue.backoff_base),
        job_timeout=config.effective_job_timeout(),
    )
    return AnalysisService(
        config=config,
        llm=llm,
        cache=cache,
        store=store,
        queue=queue,
        orchestrator=orchestrator,
        worker=worker,
        run_log=run_log,
    )
