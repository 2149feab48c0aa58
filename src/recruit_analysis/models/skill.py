"""Pydantic models for extracted skills."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class SkillCategory(str, Enum):
    TECHNICAL = "technical"
    INTERPERSONAL = "interpersonal"
    LANGUAGE = "language"


class ProficiencyTier(str, Enum):
    NATIVE = "native"
    PROFESSIONAL = "professional"
    INTERMEDIATE = "intermediate"
    BEGINNER = "beginner"


class ExtractedSkill(BaseModel):
    model_config = {"frozen": True}

    name: str = Field(min_length=1)
    category: SkillCategory
    level: int | None = Field(default=None, ge=1, le=5)
    proficiency: ProficiencyTier | None = None

    @model_validator(mode="after")
    def _level_matches_category(self) -> "ExtractedSkill":
        if self.category is SkillCategory.LANGUAGE:
            if self.proficiency is None:
                raise ValueError("language skills need a proficiency tier")
        elif self.level is None:
            raise ValueError("non-language skills need a 1-5 level")
        return self
