"""Shared test fixtures."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from recruit_analysis.clients.llm_client import LLMClient
from recruit_analysis.models.entity import Application, Candidate, JobPosting
from recruit_analysis.models.skill import ExtractedSkill, SkillCategory
from recruit_analysis.store.analysis_store import SQLiteAnalysisStore


def make_payload(**overrides) -> dict:
    """A job-match payload that passes validation."""
    payload = {
        "summary": {
            "score": 78,
            "breakdown": {"skills": 80, "experience": 75, "education": 70, "languages": 90},
            "narrative": "Solid backend engineer with most of the required stack.",
            "matched_keywords": ["Python", "PostgreSQL"],
            "highlights": ["Led a platform migration"],
        },
        "alert_signals": [
            {"category": "skills", "problem": "No Kubernetes experience", "severity": "medium"},
        ],
        "suggestions": ["Ask about container orchestration in the interview"],
    }
    payload.update(overrides)
    return payload


def profile_payload(**overrides) -> dict:
    """A profile-extraction payload that passes validation."""
    payload = {
        "summary": {
            "score": 82,
            "breakdown": {"completeness": 85, "clarity": 80, "relevance": 78},
            "narrative": "Backend engineer, 6 years of Python, fluent English, native French.",
        },
        "alert_signals": [],
        "suggestions": [],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def valid_response() -> str:
    return json.dumps(make_payload())


@pytest.fixture
def sample_cv_text() -> str:
    return """Alice Martin
alice@example.com

Experience:
- Acme Corp (2019 - present), Backend Engineer
  - Built REST APIs in Python/Django serving 2M requests a day
  - Migrated reporting from MySQL to PostgreSQL
- Startup XYZ (2017 - 2019), Junior Developer
  - Node.js services on AWS

Education:
- MSc Computer Science, Université de Lyon (2017)

Languages: French (native), English (fluent)
"""


@pytest.fixture
def sample_candidate(sample_cv_text) -> Candidate:
    return Candidate(
        id="cand-1",
        name="Alice Martin",
        email="alice@example.com",
        cv_text=sample_cv_text,
        years_experience=6,
        education=["Master in Computer Science"],
        skills=[
            ExtractedSkill(name="Python", category=SkillCategory.TECHNICAL, level=5),
            ExtractedSkill(name="Postgres", category=SkillCategory.TECHNICAL, level=3),
        ],
    )


@pytest.fixture
def sample_job() -> JobPosting:
    return JobPosting(
        id="job-1",
        title="Senior Backend Engineer",
        description="Own our Python services and data layer.",
        company="Acme",
        required_skills=["Python", "PostgreSQL", "Kubernetes"],
    )


@pytest.fixture
def store(tmp_path) -> SQLiteAnalysisStore:
    return SQLiteAnalysisStore(tmp_path / "store.db")


@pytest.fixture
def seeded_store(store, sample_candidate, sample_job) -> SQLiteAnalysisStore:
    store.upsert_candidate(sample_candidate)
    store.upsert_job(sample_job)
    store.upsert_application(Application(id="app-1", candidate_id="cand-1", job_id="job-1"))
    return store


@pytest.fixture
def mock_llm_client() -> LLMClient:
    """Create a mock LLM client."""
    client = AsyncMock(spec=LLMClient)
    client.generate = AsyncMock(return_value=json.dumps(make_payload()))
    client.generate_with_attachment = AsyncMock(return_value=json.dumps(make_payload()))
    return client
