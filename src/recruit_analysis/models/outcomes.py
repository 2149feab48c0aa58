"""Tagged outcomes for the parse/validate stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from recruit_analysis.models.analysis import AnalysisResult


@dataclass(frozen=True)
class Valid:
    result: AnalysisResult


@dataclass(frozen=True)
class Invalid:
    payload: Any
    errors: list[str] = field(default_factory=list)


ValidationOutcome = Union[Valid, Invalid]


@dataclass
class AttemptOutcome:
    """What happened on a single orchestrator attempt."""

    attempt: int
    status: str  # "valid" | "invalid" | "unparseable" | "generation_error"
    detail: str = ""
