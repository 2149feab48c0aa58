"""SQLite-backed document store for entities, analysis results and statuses."""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterator, Protocol, TypeVar

from recruit_analysis.errors import StoreError
from recruit_analysis.models.analysis import AnalysisResult
from recruit_analysis.models.entity import Application, Candidate, EntityData, JobPosting
from recruit_analysis.models.job import EntityKind, EntityStatus
from recruit_analysis.models.skill import ExtractedSkill

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".recruit-analysis" / "store.db"

T = TypeVar("T")


class AnalysisStore(Protocol):
    """What the pipeline needs from the datastore. Single-entity atomic writes."""

    async def load_entity(self, entity_id: str, kind: EntityKind) -> EntityData | None: ...

    async def save_analysis_result(
        self, entity_id: str, kind: EntityKind, result: AnalysisResult
    ) -> None: ...

    async def update_status(
        self,
        entity_id: str,
        kind: EntityKind,
        status: EntityStatus,
        error: str | None = None,
    ) -> None: ...

    async def replace_skills(self, candidate_id: str, skills: list[ExtractedSkill]) -> None: ...

    async def save_derived_fields(
        self, entity_id: str, kind: EntityKind, fields: dict[str, Any]
    ) -> None: ...


class SQLiteAnalysisStore:
    """SQLite implementation of AnalysisStore with WAL mode.

    Blocking sqlite calls run in a worker thread; any sqlite failure surfaces
    as StoreError so the queue can retry the job.
    """

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
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS candidates (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT,
                    cv_text TEXT,
                    cv_document BLOB,
                    cv_mime_type TEXT,
                    years_experience REAL,
                    education_json TEXT NOT NULL DEFAULT '[]',
                    skills_json TEXT NOT NULL DEFAULT '[]'
                );
                CREATE TABLE IF NOT EXISTS job_postings (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    company TEXT,
                    required_skills_json TEXT NOT NULL DEFAULT '[]'
                );
                CREATE TABLE IF NOT EXISTS applications (
                    id TEXT PRIMARY KEY,
                    candidate_id TEXT NOT NULL,
                    job_id TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS analyses (
                    entity_id TEXT NOT NULL,
                    entity_kind TEXT NOT NULL,
                    result_json TEXT NOT NULL,
                    derived_json TEXT,
                    analyzed_at TEXT NOT NULL,
                    PRIMARY KEY (entity_id, entity_kind)
                );
                CREATE TABLE IF NOT EXISTS entity_status (
                    entity_id TEXT NOT NULL,
                    entity_kind TEXT NOT NULL,
                    status TEXT NOT NULL,
                    error TEXT,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (entity_id, entity_kind)
                );
            """)

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.Error as exc:
            raise StoreError(f"store operation {fn.__name__} failed: {exc}") from exc

    # --- pipeline boundary ---

    async def load_entity(self, entity_id: str, kind: EntityKind) -> EntityData | None:
        return await self._run(self._load_entity, entity_id, kind)

    async def save_analysis_result(
        self, entity_id: str, kind: EntityKind, result: AnalysisResult
    ) -> None:
        await self._run(self._save_analysis_result, entity_id, kind, result)

    async def update_status(
        self,
        entity_id: str,
        kind: EntityKind,
        status: EntityStatus,
        error: str | None = None,
    ) -> None:
        await self._run(self._update_status, entity_id, kind, status, error)

    async def replace_skills(self, candidate_id: str, skills: list[ExtractedSkill]) -> None:
        await self._run(self._replace_skills, candidate_id, skills)

    async def save_derived_fields(
        self, entity_id: str, kind: EntityKind, fields: dict[str, Any]
    ) -> None:
        await self._run(self._save_derived_fields, entity_id, kind, fields)

    # --- reads ---

    async def get_analysis(self, entity_id: str, kind: EntityKind) -> AnalysisResult | None:
        return await self._run(self._get_analysis, entity_id, kind)

    async def get_derived_fields(self, entity_id: str, kind: EntityKind) -> dict | None:
        return await self._run(self._get_derived_fields, entity_id, kind)

    async def get_status(
        self, entity_id: str, kind: EntityKind
    ) -> tuple[EntityStatus, str | None] | None:
        return await self._run(self._get_status, entity_id, kind)

    async def get_candidate(self, candidate_id: str) -> Candidate | None:
        return await self._run(self._get_candidate, candidate_id)

    # --- seeding ---

    def upsert_candidate(self, candidate: Candidate) -> None:
        with self._connect() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO candidates
                   (id, name, email, cv_text, cv_document, cv_mime_type,
                    years_experience, education_json, skills_json)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    candidate.id,
                    candidate.name,
                    candidate.email,
                    candidate.cv_text,
                    candidate.cv_document,
                    candidate.cv_mime_type,
                    candidate.years_experience,
                    json.dumps(candidate.education, ensure_ascii=False),
                    _skills_json(candidate.skills),
                ),
            )

    def upsert_job(self, job: JobPosting) -> None:
        with self._connect() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO job_postings
                   (id, title, description, company, required_skills_json)
                   VALUES (?, ?, ?, ?, ?)""",
                (job.id, job.title, job.description, job.company, json.dumps(job.required_skills)),
            )

    def upsert_application(self, application: Application) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO applications (id, candidate_id, job_id) VALUES (?, ?, ?)",
                (application.id, application.candidate_id, application.job_id),
            )

    # --- blocking implementations ---

    def _load_entity(self, entity_id: str, kind: EntityKind) -> EntityData | None:
        if kind is EntityKind.JOB_MATCH:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT id, candidate_id, job_id FROM applications WHERE id = ?",
                    (entity_id,),
                ).fetchone()
            if row is None:
                return None
            application = Application(id=row[0], candidate_id=row[1], job_id=row[2])
            candidate = self._get_candidate(application.candidate_id)
            job = self._get_job(application.job_id)
            if candidate is None or job is None:
                logger.warning(
                    "Application %s references a missing %s",
                    entity_id,
                    "candidate" if candidate is None else "job",
                )
                return None
            return EntityData(
                entity_id=entity_id,
                kind=kind,
                candidate=candidate,
                job=job,
                application=application,
            )

        candidate = self._get_candidate(entity_id)
        if candidate is None:
            return None
        return EntityData(entity_id=entity_id, kind=kind, candidate=candidate)

    def _get_candidate(self, candidate_id: str) -> Candidate | None:
        with self._connect() as conn:
            row = conn.execute(
                """SELECT id, name, email, cv_text, cv_document, cv_mime_type,
                          years_experience, education_json, skills_json
                   FROM candidates WHERE id = ?""",
                (candidate_id,),
            ).fetchone()
        if row is None:
            return None
        return Candidate(
            id=row[0],
            name=row[1],
            email=row[2],
            cv_text=row[3],
            cv_document=row[4],
            cv_mime_type=row[5],
            years_experience=row[6],
            education=json.loads(row[7] or "[]"),
            skills=[ExtractedSkill(**s) for s in json.loads(row[8] or "[]")],
        )

    def _get_job(self, job_id: str) -> JobPosting | None:
        with self._connect() as conn:
            row = conn.execute(
                """SELECT id, title, description, company, required_skills_json
                   FROM job_postings WHERE id = ?""",
                (job_id,),
            ).fetchone()
        if row is None:
            return None
        return JobPosting(
            id=row[0],
            title=row[1],
            description=row[2],
            company=row[3],
            required_skills=json.loads(row[4] or "[]"),
        )

    def _save_analysis_result(
        self, entity_id: str, kind: EntityKind, result: AnalysisResult
    ) -> None:
        # Full overwrite: derived fields of the previous analysis go with it.
        with self._connect() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO analyses
                   (entity_id, entity_kind, result_json, derived_json, analyzed_at)
                   VALUES (?, ?, ?, NULL, ?)""",
                (
                    entity_id,
                    kind.value,
                    result.model_dump_json(),
                    result.analyzed_at.isoformat(),
                ),
            )

    def _update_status(
        self,
        entity_id: str,
        kind: EntityKind,
        status: EntityStatus,
        error: str | None,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO entity_status
                   (entity_id, entity_kind, status, error, updated_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (entity_id, kind.value, status.value, error, datetime.now().isoformat()),
            )

    def _replace_skills(self, candidate_id: str, skills: list[ExtractedSkill]) -> None:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE candidates SET skills_json = ? WHERE id = ?",
                (_skills_json(skills), candidate_id),
            )
            updated = cursor.rowcount
        if updated == 0:
            logger.warning("replace_skills: candidate %s not found", candidate_id)

    def _save_derived_fields(
        self, entity_id: str, kind: EntityKind, fields: dict[str, Any]
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE analyses SET derived_json = ? WHERE entity_id = ? AND entity_kind = ?",
                (json.dumps(fields, ensure_ascii=False), entity_id, kind.value),
            )

    def _get_analysis(self, entity_id: str, kind: EntityKind) -> AnalysisResult | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT result_json FROM analyses WHERE entity_id = ? AND entity_kind = ?",
                (entity_id, kind.value),
            ).fetchone()
        if row is None:
            return None
        return AnalysisResult.model_validate_json(row[0])

    def _get_derived_fields(self, entity_id: str, kind: EntityKind) -> dict | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT derived_json FROM analyses WHERE entity_id = ? AND entity_kind = ?",
                (entity_id, kind.value),
            ).fetchone()
        if row is None or row[0] is None:
            return None
        return json.loads(row[0])

    def _get_status(
        self, entity_id: str, kind: EntityKind
    ) -> tuple[EntityStatus, str | None] | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT status, error FROM entity_status WHERE entity_id = ? AND entity_kind = ?",
                (entity_id, kind.value),
            ).fetchone()
        if row is None:
            return None
        return EntityStatus(row[0]), row[1]


def _skills_json(skills: list[ExtractedSkill]) -> str:
    return json.dumps([s.model_dump(mode="json") for s in skills], ensure_ascii=False)
