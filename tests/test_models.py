"""Tests for pydantic models."""

import pytest
from pydantic import ValidationError

from recruit_analysis.models.analysis import AlertSignal, AnalysisResult, AnalysisSummary, clamp_score
from recruit_analysis.models.job import AnalysisJob, EntityKind, JobStatus
from recruit_analysis.models.skill import ExtractedSkill, ProficiencyTier, SkillCategory


class TestClampScore:
    @pytest.mark.parametrize(
        "value,expected",
        [(50, 50), (-5, 0), (140, 100), (72.6, 73), ("85", 85), ("90%", 90)],
    )
    def test_clamps(self, value, expected):
        assert clamp_score(value) == expected

    @pytest.mark.parametrize("value", [None, True, "high", float("nan"), [1]])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(ValueError):
            clamp_score(value)


class TestAlertSignal:
    def test_severity_normalized_to_lowercase(self):
        alert = AlertSignal(category="skills", problem="Missing SQL", severity=" HIGH ")
        assert alert.severity == "high"

    def test_unknown_severity_rejected(self):
        with pytest.raises(ValidationError):
            AlertSignal(category="skills", problem="Missing SQL", severity="urgent")

    def test_empty_problem_rejected(self):
        with pytest.raises(ValidationError):
            AlertSignal(category="skills", problem="", severity="low")

    def test_score_clamped(self):
        assert AlertSignal(category="c", problem="p", severity="low", score=250).score == 100


class TestAnalysisResult:
    def test_accepts_camel_case_keys(self):
        result = AnalysisResult.model_validate(
            {
                "kind": "cv-feedback",
                "summary": {"score": 60, "breakdown": {"content": 60}, "matchedKeywords": ["Python"]},
                "alertSignals": [{"category": "content", "problem": "Too long", "severity": "low"}],
                "suggestions": [],
            }
        )
        assert result.kind is EntityKind.CV_FEEDBACK
        assert result.summary.matched_keywords == ["Python"]
        assert len(result.alert_signals) == 1

    def test_breakdown_scores_clamped(self):
        summary = AnalysisSummary(score=50, breakdown={"skills": 130, "experience": -2})
        assert summary.breakdown == {"skills": 100, "experience": 0}

    def test_breakdown_must_be_object(self):
        with pytest.raises(ValidationError):
            AnalysisSummary(score=50, breakdown=[50, 60])

    def test_frozen(self):
        summary = AnalysisSummary(score=50, breakdown={})
        with pytest.raises(ValidationError):
            summary.score = 10

    def test_json_round_trip_keeps_kind(self):
        result = AnalysisResult(
            kind=EntityKind.JOB_MATCH,
            summary=AnalysisSummary(score=70, breakdown={"skills": 70}),
            alert_signals=[],
            suggestions=["Interview"],
        )
        restored = AnalysisResult.model_validate_json(result.model_dump_json())
        assert restored == result


class TestExtractedSkill:
    def test_language_requires_proficiency(self):
        with pytest.raises(ValidationError):
            ExtractedSkill(name="French", category=SkillCategory.LANGUAGE)

    def test_technical_requires_level(self):
        with pytest.raises(ValidationError):
            ExtractedSkill(name="Python", category=SkillCategory.TECHNICAL)

    def test_level_bounds(self):
        with pytest.raises(ValidationError):
            ExtractedSkill(name="Python", category=SkillCategory.TECHNICAL, level=6)

    def test_language_skill(self):
        skill = ExtractedSkill(
            name="English", category=SkillCategory.LANGUAGE, proficiency=ProficiencyTier.PROFESSIONAL
        )
        assert skill.level is None


class TestAnalysisJob:
    def test_defaults(self):
        job = AnalysisJob(entity_id="cand-1", entity_kind=EntityKind.PROFILE_EXTRACTION)
        assert job.status is JobStatus.QUEUED
        assert job.attempt_count == 0
        assert job.key == ("cand-1", "profile-extraction")
        assert job.attempts_remaining == 3

    def test_attempts_remaining_never_negative(self):
        job = AnalysisJob(
            entity_id="cand-1", entity_kind=EntityKind.CV_FEEDBACK, attempt_count=5, max_attempts=3
        )
        assert job.attempts_remaining == 0
