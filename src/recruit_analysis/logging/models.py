"""Run ledger data models."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class AnalysisRunLog(BaseModel):
    """Single ledger entry for one orchestrator run."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=datetime.now)
    entity_id: str
    entity_kind: str
    outcome: str  # "valid" | "recovered" | "fallback" | "not_found" | "error"
    attempts: int = 0
    failed_attempts: int = 0
    score: int | None = None
    elapsed_seconds: float = 0.0
    success: bool = True
    error_message: str | None = None
