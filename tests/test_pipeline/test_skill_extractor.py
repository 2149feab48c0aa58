"""Tests for the best-effort skill extractor."""

import json
from unittest.mock import AsyncMock

from recruit_analysis.errors import GenerationError
from recruit_analysis.models.skill import ProficiencyTier, SkillCategory
from recruit_analysis.pipeline.skill_extractor import SkillExtractor, normalize_skill, normalize_skills


def _response(skills) -> str:
    return json.dumps({"skills": skills})


class TestSkillExtractor:
    async def test_extracts_and_normalizes(self, mock_llm_client):
        mock_llm_client.generate = AsyncMock(
            return_value=_response(
                [
                    {"name": "Python", "category": "technical", "level": "expert"},
                    {"name": "Teamwork", "category": "soft skills", "level": "intermediate"},
                    {"name": "French", "category": "language", "level": "langue maternelle"},
                ]
            )
        )
        skills = await SkillExtractor(mock_llm_client).extract_skills("Python expert, native French")

        assert [(s.name, s.category) for s in skills] == [
            ("Python", SkillCategory.TECHNICAL),
            ("Teamwork", SkillCategory.INTERPERSONAL),
            ("French", SkillCategory.LANGUAGE),
        ]
        assert skills[0].level == 5
        assert skills[1].level == 3
        assert skills[2].proficiency is ProficiencyTier.NATIVE
        mock_llm_client.generate.assert_awaited_once()

    async def test_empty_narrative_skips_generation(self, mock_llm_client):
        assert await SkillExtractor(mock_llm_client).extract_skills("   ") == []
        mock_llm_client.generate.assert_not_awaited()

    async def test_generation_error_returns_empty(self, mock_llm_client):
        mock_llm_client.generate = AsyncMock(side_effect=GenerationError("down"))
        assert await SkillExtractor(mock_llm_client).extract_skills("narrative") == []
        # single attempt, no retry loop
        assert mock_llm_client.generate.await_count == 1

    async def test_unparseable_response_returns_empty(self, mock_llm_client):
        mock_llm_client.generate = AsyncMock(return_value="Here are the skills: Python, SQL")
        assert await SkillExtractor(mock_llm_client).extract_skills("narrative") == []

    async def test_missing_skills_array_returns_empty(self, mock_llm_client):
        mock_llm_client.generate = AsyncMock(return_value='{"competences": []}')
        assert await SkillExtractor(mock_llm_client).extract_skills("narrative") == []

    async def test_fenced_response(self, mock_llm_client):
        body = _response([{"name": "SQL", "category": "technical", "level": "beginner"}])
        mock_llm_client.generate = AsyncMock(return_value=f"```json\n{body}\n```")
        skills = await SkillExtractor(mock_llm_client).extract_skills("narrative")
        assert [(s.name, s.level) for s in skills] == [("SQL", 1)]


class TestNormalizeSkills:
    def test_drops_unusable_entries(self):
        skills = normalize_skills(
            [
                {"name": "", "category": "technical"},
                {"category": "technical", "level": "expert"},
                {"name": "Docker"},
                "Kubernetes",
                {"name": "Docker", "category": "tools", "level": "2 years"},
            ]
        )
        assert [(s.name, s.level) for s in skills] == [("Docker", 3)]

    def test_duplicates_keep_first(self):
        skills = normalize_skills(
            [
                {"name": "Python", "category": "technical", "level": "expert"},
                {"name": "python", "category": "technical", "level": "beginner"},
            ]
        )
        assert len(skills) == 1
        assert skills[0].level == 5

    def test_unknown_category_becomes_technical(self):
        skill = normalize_skill({"name": "Welding", "category": "crafts"})
        assert skill.category is SkillCategory.TECHNICAL
        assert skill.level == 3

    def test_language_without_level_is_intermediate(self):
        skill = normalize_skill({"name": "Spanish", "category": "langue"})
        assert skill.proficiency is ProficiencyTier.INTERMEDIATE
