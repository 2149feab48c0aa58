"""Second-stage skill extraction from a profile narrative.

Best effort by policy: one generation call, one parse, no retry loop. Any
failure yields an empty list, which callers must treat as "skip the update",
never as "the candidate has no skills".
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from recruit_analysis.clients.llm_client import LLMClient
from recruit_analysis.errors import GenerationError
from recruit_analysis.models.skill import ExtractedSkill, SkillCategory
from recruit_analysis.pipeline.skill_taxonomy import (
    map_category,
    normalize_language_level,
    normalize_skill_level,
)
from recruit_analysis.utils.json_parser import parse_json_object

logger = logging.getLogger(__name__)

SKILL_PROMPT = """\
Analyze the candidate profile below and extract every skill it mentions.
Return ONLY a JSON object, with no prose and no markdown, in this format:
{{
  "skills": [
    {{
      "name": "skill name (required)",
      "category": "one of: technical, interpersonal, language (required)",
      "level": "skill level based on context"
    }}
  ]
}}

Categories:
- "technical": programming languages, frameworks, tools, technical concepts
- "interpersonal": leadership, communication, teamwork, problem solving
- "language": spoken or written languages only

Levels:
- technical/interpersonal: "expert", "intermediate" or "beginner"
- language: "native", "professional", "intermediate" or "beginner"

Candidate profile:
{narrative}
"""


class SkillExtractor:
    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def extract_skills(self, narrative: str) -> list[ExtractedSkill]:
        """Extract and normalize skills; returns [] on any failure."""
        if not narrative or not narrative.strip():
            logger.warning("Skill extraction skipped: empty narrative")
            return []

        try:
            response = await self.llm.generate(SKILL_PROMPT.format(narrative=narrative.strip()))
        except GenerationError:
            logger.error("Skill extraction failed: generation error", exc_info=True)
            return []

        data = parse_json_object(response)
        if data is None or not isinstance(data.get("skills"), list):
            logger.warning("Skill extraction failed: no skills array in response")
            logger.debug("Raw skill response: %.500s", response)
            return []

        skills = normalize_skills(data["skills"])
        logger.info("Extracted %d skills from %d entries", len(skills), len(data["skills"]))
        return skills


def normalize_skills(entries: list) -> list[ExtractedSkill]:
    """Turn raw skill entries into taxonomy skills, dropping unusable ones."""
    skills: list[ExtractedSkill] = []
    seen: set[str] = set()
    for entry in entries:
        skill = normalize_skill(entry)
        if skill is None:
            continue
        key = skill.name.casefold()
        if key in seen:
            continue
        seen.add(key)
        skills.append(skill)
    return skills


def normalize_skill(entry: object) -> ExtractedSkill | None:
    if not isinstance(entry, dict):
        logger.warning("Skipping non-object skill entry: %r", entry)
        return None

    name = entry.get("name")
    if not isinstance(name, str) or not name.strip():
        logger.warning("Skipping skill with missing name: %r", entry)
        return None

    category = map_category(entry.get("category"))
    if category is None:
        logger.warning("Skipping skill %r: no category", name)
        return None

    level = entry.get("level")
    try:
        if category is SkillCategory.LANGUAGE:
            return ExtractedSkill(
                name=name.strip(),
                category=category,
                proficiency=normalize_language_level(level),
            )
        return ExtractedSkill(
            name=name.strip(),
            category=category,
            level=normalize_skill_level(level),
        )
    except ValidationError:
        logger.warning("Skipping invalid skill entry: %r", entry, exc_info=True)
        return None
