"""CV feedback: critique of the CV document itself, independent of any job."""

from __future__ import annotations

from typing import Any

from recruit_analysis.models.analysis import AnalysisResult
from recruit_analysis.models.entity import EntityData
from recruit_analysis.models.job import EntityKind
from recruit_analysis.pipeline.base_task import AnalysisTask, cv_section

INSTRUCTIONS = """\
You are a career coach reviewing a CV. Evaluate the CV as a document, not its
fit for any particular job.

Scoring rules:
- content: substance of experience descriptions, quantified achievements
- formatting: structure, section order, consistency, readability
- impact: how clearly results and ownership come across
- clarity: concise, unambiguous wording free of jargon and errors
- score: overall CV quality
- Each weakness becomes an alert signal; each suggestion must be actionable."""


def quality_band(score: int) -> str:
    if score >= 80:
        return "strong"
    if score >= 60:
        return "solid"
    if score >= 40:
        return "needs work"
    return "weak"


class CVFeedbackTask(AnalysisTask):
    kind = EntityKind.CV_FEEDBACK
    breakdown_keys = ("content", "formatting", "impact", "clarity")
    narrative_hint = "overall assessment of the CV"
    alert_categories = "content|formatting|impact|clarity"

    def build_prompt(self, entity: EntityData) -> str:
        candidate = entity.candidate
        return f"""{INSTRUCTIONS}

## CV of {candidate.name}
{cv_section(candidate)}

{self.response_format()}"""

    def derive_fields(self, entity: EntityData, result: AnalysisResult) -> dict[str, Any]:
        weakest = min(result.summary.breakdown.items(), key=lambda kv: kv[1], default=None)
        return {
            "quality": quality_band(result.summary.score),
            "weakest_area": weakest[0] if weakest else None,
        }
