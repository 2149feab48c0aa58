"""Notification boundary: tells a person their analysis is ready."""

from __future__ import annotations

import logging
from typing import Protocol

from recruit_analysis.models.analysis import AnalysisResult

logger = logging.getLogger(__name__)

SEVERITY_ORDER = {"high": 3, "medium": 2, "low": 1}


class Notifier(Protocol):
    async def send_analysis_result(self, address: str, payload: dict) -> None: ...


class LoggingNotifier:
    """Notifier that records what would have been sent; used when no mailer is wired."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, dict]] = []

    async def send_analysis_result(self, address: str, payload: dict) -> None:
        self.sent.append((address, payload))
        logger.info(
            "Analysis notification for %s: %s (score %s)",
            address,
            payload.get("subject"),
            payload.get("score"),
        )


def build_notification_payload(name: str, result: AnalysisResult) -> dict:
    """Summarize a result for a notification, most severe alerts first."""
    alerts = sorted(
        result.alert_signals,
        key=lambda a: SEVERITY_ORDER[a.severity],
        reverse=True,
    )
    return {
        "subject": f"Your {result.kind.value.replace('-', ' ')} results are ready",
        "recipient_name": name,
        "kind": result.kind.value,
        "score": result.summary.score,
        "breakdown": dict(result.summary.breakdown),
        "alerts": [{"category": a.category, "problem": a.problem, "severity": a.severity} for a in alerts],
        "suggestions": list(result.suggestions),
    }
