"""Normalize free-text skill categories and levels into the closed taxonomy."""

from __future__ import annotations

import logging
import re
import unicodedata

from recruit_analysis.models.skill import ProficiencyTier, SkillCategory

logger = logging.getLogger(__name__)

DEFAULT_LEVEL = 3

CATEGORY_KEYWORDS: dict[SkillCategory, tuple[str, ...]] = {
    SkillCategory.TECHNICAL: (
        "tech", "technique", "programming", "programmation", "database", "framework",
        "tool", "outil", "software", "logiciel", "hard", "cloud", "devops", "data",
    ),
    SkillCategory.INTERPERSONAL: (
        "interpersonal", "soft", "personal", "personnel", "social", "communication",
        "leadership", "management", "teamwork", "relationnel", "comportemental",
    ),
    SkillCategory.LANGUAGE: (
        "language", "languages", "langue", "langues", "linguistic", "linguistique",
        "spoken", "written",
    ),
}

# Checked in order: the first tier with a matching term wins.
PROFICIENCY_TERMS: tuple[tuple[ProficiencyTier, tuple[str, ...]], ...] = (
    (ProficiencyTier.NATIVE, (
        "natif", "native", "fluent", "couramment", "langue maternelle",
        "mother tongue", "first language", "bilingue", "bilingual", "c2",
        "mastery", "maitrise",
    )),
    (ProficiencyTier.PROFESSIONAL, (
        "professionnel", "professional", "advanced", "avance", "expert", "fluide",
        "c1", "proficiency", "business",
    )),
    (ProficiencyTier.INTERMEDIATE, (
        "intermediaire", "intermediate", "medium", "moyen", "b1", "b2",
        "conversational", "working knowledge",
    )),
    (ProficiencyTier.BEGINNER, (
        "debutant", "beginner", "basic", "basique", "elementary", "elementaire",
        "a1", "a2", "novice", "limited", "notions",
    )),
)

EXPERT_TERMS = (
    "expert", "advanced", "avance", "senior", "master", "extensive", "excellent",
    "lead", "architect", "specialist", "principal",
)
BEGINNER_TERMS = (
    "beginner", "basic", "elementary", "novice", "junior", "entry", "learning",
    "limited", "debutant", "basique", "notions",
)
INTERMEDIATE_TERMS = (
    "intermediate", "intermediaire", "medium", "moderate", "working knowledge",
    "competent", "familiar", "proficient", "experienced",
)

_YEARS = re.compile(r"(\d+)\s*(?:[-–]\s*(\d+))?\s*\+?\s*(?:years?|yrs?|ans?|annees?)")


def fold(text: str) -> str:
    """Lower-case and strip diacritics so 'Débutant' matches 'debutant'."""
    decomposed = unicodedata.normalize("NFKD", text.strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def map_category(raw: object) -> SkillCategory | None:
    """Map a supplied category token to the taxonomy.

    Returns None only when no usable token was supplied; an unrecognized
    token defaults to technical.
    """
    if not isinstance(raw, str) or not raw.strip():
        return None
    token = fold(raw)

    for category in SkillCategory:
        if token == category.value:
            return category

    words = set(re.split(r"[^a-z0-9]+", token))
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(k in words or (" " in k and k in token) for k in keywords):
            return category

    logger.warning("Unmapped skill category %r, defaulting to technical", raw)
    return SkillCategory.TECHNICAL


def normalize_skill_level(raw: object) -> int:
    """Map a free-text level to the 1-5 scale; unspecified is 3."""
    if isinstance(raw, bool) or raw is None:
        return DEFAULT_LEVEL
    if isinstance(raw, (int, float)):
        return min(5, max(1, int(round(raw))))
    if not isinstance(raw, str) or not raw.strip():
        return DEFAULT_LEVEL

    token = fold(raw)
    if token.isdigit():
        return min(5, max(1, int(token)))
    if any(term in token for term in EXPERT_TERMS):
        return 5
    if any(term in token for term in BEGINNER_TERMS):
        return 1

    match = _YEARS.search(token)
    if match:
        low = int(match.group(1))
        high = int(match.group(2)) if match.group(2) else low
        years = (low + high) / 2
        if years >= 4:
            return 5
        if years >= 1:
            return 3
        return 1

    if any(term in token for term in INTERMEDIATE_TERMS):
        return 3
    return DEFAULT_LEVEL


def normalize_language_level(raw: object) -> ProficiencyTier:
    """Map a free-text language level (English or French) to a tier."""
    if not isinstance(raw, str) or not raw.strip():
        return ProficiencyTier.INTERMEDIATE
    token = fold(raw)
    for tier, terms in PROFICIENCY_TERMS:
        if any(term in token for term in terms):
            return tier
    logger.debug("Unrecognized language level: %r", raw)
    return ProficiencyTier.INTERMEDIATE
