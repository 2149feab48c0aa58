"""Boundary models for the entities the pipeline analyzes."""

from __future__ import annotations

from pydantic import BaseModel

from recruit_analysis.models.job import EntityKind
from recruit_analysis.models.skill import ExtractedSkill


class Candidate(BaseModel):
    id: str
    name: str
    email: str | None = None
    cv_text: str | None = None
    cv_document: bytes | None = None
    cv_mime_type: str | None = None
    years_experience: float | None = None
    education: list[str] = []
    skills: list[ExtractedSkill] = []


class JobPosting(BaseModel):
    id: str
    title: str
    description: str = ""
    company: str | None = None
    required_skills: list[str] = []


class Application(BaseModel):
    id: str
    candidate_id: str
    job_id: str


class EntityData(BaseModel):
    """Everything an analysis task needs, loaded in one read."""

    entity_id: str
    kind: EntityKind
    candidate: Candidate | None = None
    job: JobPosting | None = None
    application: Application | None = None
