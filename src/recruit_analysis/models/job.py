"""Models for queued analysis jobs and entity status."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class EntityKind(str, Enum):
    PROFILE_EXTRACTION = "profile-extraction"
    JOB_MATCH = "job-match"
    CV_FEEDBACK = "cv-feedback"


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class EntityStatus(str, Enum):
    PENDING = "pending"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"
    ANALYSIS_FAILED = "analysis_failed"  # entity missing, never retried
    ANALYSIS_ERROR = "analysis_error"  # job-level retries exhausted


class AnalysisJob(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    entity_id: str
    entity_kind: EntityKind
    attempt_count: int = 0
    max_attempts: int = 3
    status: JobStatus = JobStatus.QUEUED
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    available_at: datetime = Field(default_factory=datetime.now)
    last_error: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.entity_id, self.entity_kind.value)

    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.attempt_count)
