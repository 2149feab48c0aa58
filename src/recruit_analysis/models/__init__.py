"""Data models for the analysis pipeline."""

from recruit_analysis.models.analysis import AlertSignal, AnalysisResult, AnalysisSummary
from recruit_analysis.models.entity import Application, Candidate, EntityData, JobPosting
from recruit_analysis.models.job import AnalysisJob, EntityKind, EntityStatus, JobStatus
from recruit_analysis.models.outcomes import AttemptOutcome, Invalid, Valid
from recruit_analysis.models.skill import ExtractedSkill, ProficiencyTier, SkillCategory

__all__ = [
    "AlertSignal",
    "AnalysisJob",
    "AnalysisResult",
    "AnalysisSummary",
    "Application",
    "AttemptOutcome",
    "Candidate",
    "EntityData",
    "EntityKind",
    "EntityStatus",
    "ExtractedSkill",
    "Invalid",
    "JobPosting",
    "JobStatus",
    "ProficiencyTier",
    "SkillCategory",
    "Valid",
]
