"""Profile extraction: narrative profile of a candidate, then their skill list."""

from __future__ import annotations

import logging

from recruit_analysis.clients.llm_client import LLMClient
from recruit_analysis.models.analysis import AnalysisResult
from recruit_analysis.models.entity import EntityData
from recruit_analysis.models.job import EntityKind
from recruit_analysis.pipeline.base_task import AnalysisTask, cv_section
from recruit_analysis.pipeline.skill_extractor import SkillExtractor
from recruit_analysis.pipeline.validator import MISSING_NARRATIVE
from recruit_analysis.store.analysis_store import AnalysisStore

logger = logging.getLogger(__name__)

INSTRUCTIONS = """\
You are building a structured professional profile from a CV.

- narrative: a factual profile covering professional background, every skill
  mentioned (technical, interpersonal and spoken languages with their levels),
  experience and education. Later processing extracts skills from this text,
  so name each skill explicitly.
- completeness: how much of a full profile the CV provides
- clarity: how unambiguous the CV's information is
- relevance: how current and relevant the experience is
- score: overall profile quality
- Missing or contradictory information becomes an alert signal."""


class ProfileExtractionTask(AnalysisTask):
    kind = EntityKind.PROFILE_EXTRACTION
    breakdown_keys = ("completeness", "clarity", "relevance")
    narrative_hint = "full professional profile naming every skill and its level"
    alert_categories = "experience|education|skills|languages|contact"

    def __init__(self, llm: LLMClient, skill_extractor: SkillExtractor | None = None):
        super().__init__(llm)
        self.skill_extractor = skill_extractor or SkillExtractor(llm)

    def build_prompt(self, entity: EntityData) -> str:
        candidate = entity.candidate
        return f"""{INSTRUCTIONS}

## CV of {candidate.name}
{cv_section(candidate)}

{self.response_format()}"""

    async def after_persist(
        self, entity: EntityData, result: AnalysisResult, store: AnalysisStore
    ) -> None:
        if result.summary.narrative == MISSING_NARRATIVE:
            logger.info("Skipping skill extraction for %s: no narrative", entity.entity_id)
            return
        skills = await self.skill_extractor.extract_skills(result.summary.narrative)
        if not skills:
            logger.warning("No skills extracted for candidate %s; keeping previous set", entity.entity_id)
            return
        await store.replace_skills(entity.entity_id, skills)
        logger.info("Replaced skills for candidate %s (%d skills)", entity.entity_id, len(skills))
