"""Shared behaviour of the per-kind analysis tasks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from recruit_analysis.clients.llm_client import LLMClient
from recruit_analysis.errors import PermanentAnalysisError
from recruit_analysis.models.analysis import AnalysisResult
from recruit_analysis.models.entity import Candidate, EntityData
from recruit_analysis.models.job import EntityKind
from recruit_analysis.store.analysis_store import AnalysisStore

MAX_CV_CHARS = 12000

RESPONSE_FORMAT = """\
Respond with ONLY a JSON object, no markdown and no commentary, in exactly this shape:
{{
  "summary": {{
    "score": 0-100,
    "breakdown": {{{breakdown}}},
    "narrative": "{narrative_hint}",
    "matched_keywords": ["keyword"],
    "highlights": ["point that makes the candidate stand out"]
  }},
  "alert_signals": [
    {{"category": "{categories}", "problem": "what is wrong", "severity": "low|medium|high", "score": 0-100}}
  ],
  "suggestions": ["concrete improvement"]
}}
All scores are integers between 0 and 100. "severity" must be exactly one of low, medium, high."""


class AnalysisTask(ABC):
    """One entity kind's prompt, generation call and side effects."""

    kind: EntityKind
    breakdown_keys: tuple[str, ...] = ()
    narrative_hint: str = "short narrative assessment"
    alert_categories: str = "skills|experience|education|languages"

    def __init__(self, llm: LLMClient):
        self.llm = llm

    def check(self, entity: EntityData) -> None:
        """Raise PermanentAnalysisError when the entity can never be analyzed."""
        candidate = entity.candidate
        if candidate is None or not (candidate.cv_text or candidate.cv_document):
            raise PermanentAnalysisError(f"candidate {entity.entity_id} has no CV to analyze")

    @abstractmethod
    def build_prompt(self, entity: EntityData) -> str:
        pass

    def response_format(self) -> str:
        return RESPONSE_FORMAT.format(
            breakdown=", ".join(f'"{k}": 0-100' for k in self.breakdown_keys),
            narrative_hint=self.narrative_hint,
            categories=self.alert_categories,
        )

    def attachment(self, entity: EntityData) -> tuple[bytes, str] | None:
        """The CV document to send alongside the prompt when there is no CV text."""
        candidate = entity.candidate
        if candidate is None or candidate.cv_text:
            return None
        if candidate.cv_document:
            return candidate.cv_document, candidate.cv_mime_type or "application/pdf"
        return None

    async def generate(self, entity: EntityData, prompt: str) -> str:
        document = self.attachment(entity)
        if document is not None:
            return await self.llm.generate_with_attachment(document[0], document[1], prompt)
        return await self.llm.generate(prompt)

    async def discard(self, entity: EntityData, prompt: str) -> None:
        """Forget an unusable response so a retry does not get it back from cache."""
        if self.attachment(entity) is None:
            await self.llm.invalidate(prompt)

    def derive_fields(self, entity: EntityData, result: AnalysisResult) -> dict[str, Any] | None:
        return None

    async def after_persist(
        self, entity: EntityData, result: AnalysisResult, store: AnalysisStore
    ) -> None:
        return None

    def recipient(self, entity: EntityData) -> tuple[str, str] | None:
        """(name, address) to notify, if anyone."""
        candidate = entity.candidate
        if candidate is not None and candidate.email:
            return candidate.name, candidate.email
        return None


def cv_section(candidate: Candidate) -> str:
    if candidate.cv_text:
        text = candidate.cv_text.strip()
        if len(text) > MAX_CV_CHARS:
            text = text[:MAX_CV_CHARS] + "\n[... truncated]"
        return text
    return "(the CV is provided as an attached document)"
