"""Durable SQLite job queue with single-flight per (entity_id, kind)."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterator, Protocol, TypeVar

from recruit_analysis.errors import StoreError
from recruit_analysis.models.job import AnalysisJob, EntityKind, JobStatus
from recruit_analysis.queue.single_flight import SingleFlightRegistry

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".recruit-analysis" / "queue.db"

T = TypeVar("T")

_COLUMNS = (
    "id, entity_id, entity_kind, status, attempt_count, max_attempts,"
    " created_at, updated_at, available_at, last_error"
)
_ACTIVE = (JobStatus.QUEUED.value, JobStatus.RUNNING.value)


class JobQueue(Protocol):
    async def enqueue(self, entity_id: str, kind: EntityKind) -> tuple[str, bool]: ...

    async def dequeue(self) -> AnalysisJob | None: ...

    async def ack(self, job: AnalysisJob) -> None: ...

    async def retry(self, job: AnalysisJob, delay: float, error: str) -> None: ...

    async def fail(self, job: AnalysisJob, error: str) -> None: ...


class SQLiteJobQueue:
    """Job queue persisted in SQLite with WAL mode.

    At most one queued-or-running job exists per (entity_id, kind). The
    in-memory registry answers that question for this process and a
    partial unique index enforces it for every process sharing the file.
    """

    def __init__(
        self,
        db_path: str | Path = DEFAULT_DB_PATH,
        *,
        registry: SingleFlightRegistry | None = None,
        max_attempts: int = 3,
        clock: Callable[[], float] = time.time,
    ):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.registry = registry if registry is not None else SingleFlightRegistry()
        self.max_attempts = max(1, max_attempts)
        self._clock = clock
        self._enqueue_lock = threading.Lock()
        self._init_db()
        self.registry.hydrate(self._active_keys())

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), timeout=5.0)
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS analysis_jobs (
                    id TEXT PRIMARY KEY,
                    entity_id TEXT NOT NULL,
                    entity_kind TEXT NOT NULL,
                    status TEXT NOT NULL,
                    attempt_count INTEGER NOT NULL DEFAULT 0,
                    max_attempts INTEGER NOT NULL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    available_at REAL NOT NULL,
                    last_error TEXT
                );
                CREATE UNIQUE INDEX IF NOT EXISTS idx_jobs_single_flight
                    ON analysis_jobs (entity_id, entity_kind)
                    WHERE status IN ('queued', 'running');
                CREATE INDEX IF NOT EXISTS idx_jobs_ready
                    ON analysis_jobs (status, available_at);
            """)

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.Error as exc:
            raise StoreError(f"queue operation {fn.__name__} failed: {exc}") from exc

    # --- async API ---

    async def enqueue(self, entity_id: str, kind: EntityKind) -> tuple[str, bool]:
        """Queue an analysis. Returns (job_id, created); an in-flight job is reused."""
        return await self._run(self.enqueue_sync, entity_id, EntityKind(kind))

    async def dequeue(self) -> AnalysisJob | None:
        return await self._run(self._claim_next)

    async def ack(self, job: AnalysisJob) -> None:
        await self._run(self._finish, job, JobStatus.SUCCEEDED, None)

    async def retry(self, job: AnalysisJob, delay: float, error: str) -> None:
        await self._run(self._requeue, job, delay, error)

    async def fail(self, job: AnalysisJob, error: str) -> None:
        await self._run(self._finish, job, JobStatus.FAILED, error)

    async def get(self, job_id: str) -> AnalysisJob | None:
        return await self._run(self.get_sync, job_id)

    async def recover_stalled(self, older_than: float) -> int:
        return await self._run(self.recover_stalled_sync, older_than)

    async def purge_finished(self, older_than: float) -> int:
        return await self._run(self.purge_finished_sync, older_than)

    async def stats(self) -> dict[str, int]:
        return await self._run(self.stats_sync)

    # --- sync implementation ---

    def enqueue_sync(self, entity_id: str, kind: EntityKind) -> tuple[str, bool]:
        key = (entity_id, kind.value)
        with self._enqueue_lock:
            if not self.registry.try_acquire(key):
                existing = self._active_job_id(key)
                if existing is not None:
                    logger.info(
                        "Analysis already in flight for %s (%s): job %s",
                        entity_id, kind.value, existing,
                    )
                    return existing, False
                # registry is ahead of storage; the key is ours now

            now = self._clock()
            job = AnalysisJob(entity_id=entity_id, entity_kind=kind, max_attempts=self.max_attempts)
            try:
                with self._connect() as conn:
                    conn.execute(
                        f"INSERT INTO analysis_jobs ({_COLUMNS})"
                        " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                        (
                            job.id, entity_id, kind.value, JobStatus.QUEUED.value,
                            0, job.max_attempts, now, now, now, None,
                        ),
                    )
            except sqlite3.IntegrityError:
                # another process sharing the file got there first
                existing = self._active_job_id(key)
                if existing is None:
                    self.registry.release(key)
                    raise
                return existing, False
            except sqlite3.Error:
                self.registry.release(key)
                raise

        logger.info("Queued %s analysis for %s: job %s", kind.value, entity_id, job.id)
        return job.id, True

    def _claim_next(self) -> AnalysisJob | None:
        now = self._clock()
        with self._connect() as conn:
            rows = conn.execute(
                f"""UPDATE analysis_jobs
                    SET status = ?, attempt_count = attempt_count + 1, updated_at = ?
                    WHERE id = (
                        SELECT id FROM analysis_jobs
                        WHERE status = ? AND available_at <= ?
                        ORDER BY available_at, created_at
                        LIMIT 1
                    )
                    RETURNING {_COLUMNS}""",
                (JobStatus.RUNNING.value, now, JobStatus.QUEUED.value, now),
            ).fetchall()
        return _row_to_job(rows[0]) if rows else None

    def _finish(self, job: AnalysisJob, status: JobStatus, error: str | None) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE analysis_jobs SET status = ?, updated_at = ?,"
                " last_error = COALESCE(?, last_error) WHERE id = ?",
                (status.value, self._clock(), error, job.id),
            )
        self.registry.release(job.key)

    def _requeue(self, job: AnalysisJob, delay: float, error: str) -> None:
        now = self._clock()
        with self._connect() as conn:
            conn.execute(
                "UPDATE analysis_jobs SET status = ?, updated_at = ?, available_at = ?,"
                " last_error = ? WHERE id = ?",
                (JobStatus.QUEUED.value, now, now + max(0.0, delay), error, job.id),
            )

    def get_sync(self, job_id: str) -> AnalysisJob | None:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM analysis_jobs WHERE id = ?", (job_id,)
            ).fetchone()
        return _row_to_job(row) if row else None

    def recover_stalled_sync(self, older_than: float) -> int:
        """Put running jobs untouched for ``older_than`` seconds back in the queue."""
        now = self._clock()
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE analysis_jobs SET status = ?, updated_at = ?, available_at = ?,"
                " last_error = 'stalled' WHERE status = ? AND updated_at < ?",
                (JobStatus.QUEUED.value, now, now, JobStatus.RUNNING.value, now - older_than),
            )
            recovered = cursor.rowcount
        if recovered:
            logger.warning("Re-queued %d stalled job(s)", recovered)
        return recovered

    def purge_finished_sync(self, older_than: float) -> int:
        """Delete succeeded and failed jobs finished more than ``older_than`` seconds ago."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM analysis_jobs WHERE status IN (?, ?) AND updated_at < ?",
                (JobStatus.SUCCEEDED.value, JobStatus.FAILED.value, self._clock() - older_than),
            )
            purged = cursor.rowcount
        if purged:
            logger.info("Purged %d finished job(s)", purged)
        return purged

    def stats_sync(self) -> dict[str, int]:
        with self._connect() as conn:
            counts = dict(
                conn.execute(
                    "SELECT status, COUNT(*) FROM analysis_jobs GROUP BY status"
                ).fetchall()
            )
        stats = {status.value: counts.get(status.value, 0) for status in JobStatus}
        stats["total"] = sum(counts.values())
        return stats

    def _active_job_id(self, key: tuple[str, str]) -> str | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id FROM analysis_jobs WHERE entity_id = ? AND entity_kind = ?"
                " AND status IN (?, ?)",
                (key[0], key[1], *_ACTIVE),
            ).fetchone()
        return row[0] if row else None

    def _active_keys(self) -> list[tuple[str, str]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT entity_id, entity_kind FROM analysis_jobs WHERE status IN (?, ?)",
                _ACTIVE,
            ).fetchall()
        return [(r[0], r[1]) for r in rows]


def _row_to_job(row: tuple) -> AnalysisJob:
    return AnalysisJob(
        id=row[0],
        entity_id=row[1],
        entity_kind=EntityKind(row[2]),
        status=JobStatus(row[3]),
        attempt_count=row[4],
        max_attempts=row[5],
        created_at=datetime.fromtimestamp(row[6]),
        updated_at=datetime.fromtimestamp(row[7]),
        available_at=datetime.fromtimestamp(row[8]),
        last_error=row[9],
    )
