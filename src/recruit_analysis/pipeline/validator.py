"""Schema validation and partial recovery for model-produced analysis payloads.

``validate_result`` is strict: a payload either satisfies the contract for its
entity kind or comes back as ``Invalid`` with the reasons. ``recover_partial``
is total: it salvages whatever fields are individually usable and always
returns a well-formed ``AnalysisResult`` carrying an alert that says so.
"""

from __future__ import annotations

import logging
import unicodedata
from typing import Any

from pydantic import ValidationError

from recruit_analysis.models.analysis import (
    SEVERITIES,
    AlertSignal,
    AnalysisResult,
    AnalysisSummary,
    clamp_score,
)
from recruit_analysis.models.job import EntityKind
from recruit_analysis.models.outcomes import Invalid, Valid, ValidationOutcome

logger = logging.getLogger(__name__)

BREAKDOWN_KEYS: dict[EntityKind, tuple[str, ...]] = {
    EntityKind.JOB_MATCH: ("skills", "experience", "education", "languages"),
    EntityKind.CV_FEEDBACK: ("content", "formatting", "impact", "clarity"),
    EntityKind.PROFILE_EXTRACTION: ("completeness", "clarity", "relevance"),
}

MISSING_NARRATIVE = "[narrative unavailable: analysis output was incomplete]"
PARTIAL_RECOVERY_PROBLEM = (
    "The automated analysis returned incomplete data; this result was only partially recovered"
)
FALLBACK_PROBLEM = "Automated analysis could not complete"
FALLBACK_SUGGESTION = "Review this profile manually"
MAX_RECOVERED_ALERTS = 10
MAX_RECOVERED_SUGGESTIONS = 5

_SEVERITY_SYNONYMS = {
    "low": "low",
    "minor": "low",
    "faible": "low",
    "basse": "low",
    "medium": "medium",
    "moderate": "medium",
    "moyenne": "medium",
    "moyen": "medium",
    "high": "high",
    "critical": "high",
    "severe": "high",
    "major": "high",
    "elevee": "high",
    "haute": "high",
}


def validate_result(payload: Any, kind: EntityKind) -> ValidationOutcome:
    """Check a decoded payload against the result contract for ``kind``."""
    errors: list[str] = []
    if not isinstance(payload, dict):
        return Invalid(payload, [f"payload must be an object, got {type(payload).__name__}"])

    for key, aliases in (
        ("summary", ("summary",)),
        ("alert_signals", ("alert_signals", "alertSignals")),
        ("suggestions", ("suggestions",)),
    ):
        if not any(alias in payload for alias in aliases):
            errors.append(f"missing required key '{key}'")

    summary = payload.get("summary")
    if isinstance(summary, dict):
        for key in ("score", "breakdown"):
            if key not in summary:
                errors.append(f"missing required key 'summary.{key}'")
        breakdown = summary.get("breakdown")
        if isinstance(breakdown, dict):
            for key in BREAKDOWN_KEYS[kind]:
                if key not in breakdown:
                    errors.append(f"missing breakdown score '{key}'")
        if kind is EntityKind.PROFILE_EXTRACTION and not _non_empty_str(summary.get("narrative")):
            errors.append("profile extraction requires a narrative")
    elif "summary" in payload:
        errors.append("'summary' must be an object")

    if errors:
        return Invalid(payload, errors)

    try:
        result = AnalysisResult.model_validate({**payload, "kind": kind})
    except ValidationError as exc:
        return Invalid(payload, [_format_error(e) for e in exc.errors()])
    return Valid(result)


def recover_partial(payload: Any, kind: EntityKind) -> AnalysisResult:
    """Build the best usable result from a payload that failed validation."""
    if not isinstance(payload, dict):
        logger.warning("Nothing recoverable in %s payload, using fallback", kind.value)
        return fallback_result(kind)

    summary = payload.get("summary") if isinstance(payload.get("summary"), dict) else {}

    score = _score_or(summary.get("score"), 0)
    raw_breakdown = summary.get("breakdown") if isinstance(summary.get("breakdown"), dict) else {}
    breakdown = {key: _score_or(raw_breakdown.get(key), 0) for key in BREAKDOWN_KEYS[kind]}
    narrative = summary.get("narrative")
    keywords = summary.get("matched_keywords", summary.get("matchedKeywords"))

    alerts = [
        alert
        for alert in (
            _recover_alert(raw)
            for raw in _as_list(payload.get("alert_signals", payload.get("alertSignals")))
        )
        if alert is not None
    ][:MAX_RECOVERED_ALERTS]
    alerts.append(
        AlertSignal(
            category="analysis",
            problem=PARTIAL_RECOVERY_PROBLEM,
            severity="medium",
            score=0,
        )
    )

    suggestions = _strings(payload.get("suggestions"))[:MAX_RECOVERED_SUGGESTIONS]
    if not suggestions:
        suggestions = [FALLBACK_SUGGESTION]

    result = AnalysisResult(
        kind=kind,
        summary=AnalysisSummary(
            score=score,
            breakdown=breakdown,
            narrative=narrative.strip() if _non_empty_str(narrative) else MISSING_NARRATIVE,
            matched_keywords=_strings(keywords),
            highlights=_strings(summary.get("highlights")),
        ),
        alert_signals=alerts,
        suggestions=suggestions,
    )
    logger.info(
        "Partially recovered %s result: score=%d, %d alerts kept",
        kind.value,
        score,
        len(alerts) - 1,
    )
    return result


def fallback_result(kind: EntityKind) -> AnalysisResult:
    """The fixed, always-valid result used when no attempt produced usable data."""
    return AnalysisResult(
        kind=kind,
        summary=AnalysisSummary(
            score=50,
            breakdown={key: 50 for key in BREAKDOWN_KEYS[kind]},
            narrative=MISSING_NARRATIVE,
        ),
        alert_signals=[
            AlertSignal(
                category="analysis",
                problem=FALLBACK_PROBLEM,
                severity="medium",
                score=0,
            )
        ],
        suggestions=[FALLBACK_SUGGESTION],
    )


def normalize_severity(value: Any) -> str | None:
    """Map a severity token (English or French) onto the closed set."""
    if not isinstance(value, str):
        return None
    token = _fold(value)
    if token in SEVERITIES:
        return token
    return _SEVERITY_SYNONYMS.get(token)


def is_degraded(result: AnalysisResult) -> bool:
    """True when the result came from partial recovery or the fallback."""
    return any(
        alert.problem in (PARTIAL_RECOVERY_PROBLEM, FALLBACK_PROBLEM)
        for alert in result.alert_signals
    )


def _recover_alert(raw: Any) -> AlertSignal | None:
    if not isinstance(raw, dict):
        return None
    problem = raw.get("problem", raw.get("probleme"))
    if not _non_empty_str(problem):
        return None
    category = raw.get("category", raw.get("type"))
    severity = normalize_severity(raw.get("severity", raw.get("severite"))) or "medium"
    return AlertSignal(
        category=category.strip() if _non_empty_str(category) else "general",
        problem=problem.strip(),
        severity=severity,
        score=_score_or(raw.get("score"), None),
    )


def _score_or(value: Any, default: int | None) -> int | None:
    try:
        return clamp_score(value)
    except ValueError:
        return default


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _strings(value: Any) -> list[str]:
    return [v.strip() for v in _as_list(value) if _non_empty_str(v)]


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _fold(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value.strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _format_error(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg', 'invalid')}" if location else error.get("msg", "invalid")
