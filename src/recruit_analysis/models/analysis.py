"""Pydantic models for analysis results."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator

from recruit_analysis.models.job import EntityKind

Severity = Literal["low", "medium", "high"]
SEVERITIES: tuple[str, ...] = ("low", "medium", "high")


def clamp_score(value: object) -> int:
    """Coerce a score-like value to an int in [0, 100].

    Raises ValueError when the value is not a number at all.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"score must be a number, got {value!r}")
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValueError(f"score must be a number, got {value!r}") from None
    if math.isnan(number):
        raise ValueError("score must not be NaN")
    return int(round(min(100.0, max(0.0, number))))


class AlertSignal(BaseModel):
    model_config = {"frozen": True}

    category: str = Field(min_length=1)
    problem: str = Field(min_length=1)
    severity: Severity
    score: int | None = None  # 0-100

    @field_validator("severity", mode="before")
    @classmethod
    def _lower_severity(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, value: object) -> int | None:
        if value is None:
            return None
        return clamp_score(value)


class AnalysisSummary(BaseModel):
    model_config = {"frozen": True, "populate_by_name": True}

    score: int  # 0-100
    breakdown: dict[str, int]  # sub-score name -> 0-100
    narrative: str = ""
    matched_keywords: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("matched_keywords", "matchedKeywords"),
    )
    highlights: list[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, value: object) -> int:
        return clamp_score(value)

    @field_validator("breakdown", mode="before")
    @classmethod
    def _clamp_breakdown(cls, value: object) -> dict[str, int]:
        if not isinstance(value, dict):
            raise ValueError("breakdown must be an object of sub-scores")
        return {str(k): clamp_score(v) for k, v in value.items()}


class AnalysisResult(BaseModel):
    """Structured outcome of one analysis run; replaced, never mutated."""

    model_config = {"frozen": True, "populate_by_name": True}

    kind: EntityKind
    summary: AnalysisSummary
    alert_signals: list[AlertSignal] = Field(
        validation_alias=AliasChoices("alert_signals", "alertSignals"),
    )
    suggestions: list[str]
    analyzed_at: datetime = Field(default_factory=datetime.now)
