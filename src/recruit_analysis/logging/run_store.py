"""SQLite-backed ledger of analysis runs."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from recruit_analysis.logging.models import AnalysisRunLog

DEFAULT_DB_PATH = Path.home() / ".recruit-analysis" / "runs.db"

_COLUMNS = (
    "id, timestamp, entity_id, entity_kind, outcome, attempts, failed_attempts,"
    " score, elapsed_seconds, success, error_message"
)


class RunLogStore:
    """SQLite-backed store for analysis run logs with WAL mode."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

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
            conn.execute("""
                CREATE TABLE IF NOT EXISTS analysis_runs (
                    id TEXT PRIMARY KEY,
                    timestamp TEXT NOT NULL,
                    entity_id TEXT NOT NULL,
                    entity_kind TEXT NOT NULL,
                    outcome TEXT NOT NULL,
                    attempts INTEGER NOT NULL DEFAULT 0,
                    failed_attempts INTEGER NOT NULL DEFAULT 0,
                    score INTEGER,
                    elapsed_seconds REAL NOT NULL DEFAULT 0.0,
                    success INTEGER NOT NULL DEFAULT 1,
                    error_message TEXT
                )
            """)

    def save_log(self, log: AnalysisRunLog) -> None:
        """Persist a run log entry."""
        with self._connect() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO analysis_runs ({_COLUMNS})"
                " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    log.id,
                    log.timestamp.isoformat(),
                    log.entity_id,
                    log.entity_kind,
                    log.outcome,
                    log.attempts,
                    log.failed_attempts,
                    log.score,
                    log.elapsed_seconds,
                    1 if log.success else 0,
                    log.error_message,
                ),
            )

    def get_logs(
        self,
        entity_id: str | None = None,
        limit: int = 50,
    ) -> list[AnalysisRunLog]:
        """Retrieve run logs, newest first, optionally for one entity."""
        with self._connect() as conn:
            if entity_id is not None:
                rows = conn.execute(
                    f"SELECT {_COLUMNS} FROM analysis_runs WHERE entity_id = ?"
                    " ORDER BY timestamp DESC LIMIT ?",
                    (entity_id, limit),
                ).fetchall()
            else:
                rows = conn.execute(
                    f"SELECT {_COLUMNS} FROM analysis_runs ORDER BY timestamp DESC LIMIT ?",
                    (limit,),
                ).fetchall()
        return [self._row_to_log(row) for row in rows]

    def get_stats(self) -> dict:
        """Aggregate counts per outcome."""
        with self._connect() as conn:
            outcomes = dict(
                conn.execute(
                    "SELECT outcome, COUNT(*) FROM analysis_runs GROUP BY outcome"
                ).fetchall()
            )
            row = conn.execute(
                """SELECT COUNT(*), AVG(score), SUM(CASE WHEN success = 1 THEN 1 ELSE 0 END)
                   FROM analysis_runs"""
            ).fetchone()
        total = row[0] or 0
        return {
            "total_runs": total,
            "outcomes": outcomes,
            "avg_score": round(row[1], 1) if row[1] is not None else None,
            "success_rate": (row[2] / total * 100) if total else 0.0,
        }

    @staticmethod
    def _row_to_log(row: tuple) -> AnalysisRunLog:
        return AnalysisRunLog(
            id=row[0],
            timestamp=datetime.fromisoformat(row[1]),
            entity_id=row[2],
            entity_kind=row[3],
            outcome=row[4],
            attempts=row[5],
            failed_attempts=row[6],
            score=row[7],
            elapsed_seconds=row[8],
            success=bool(row[9]),
            error_message=row[10],
        )
