"""Job match analysis: how well a candidate fits the job they applied to."""

from __future__ import annotations

from typing import Any

from recruit_analysis.errors import PermanentAnalysisError
from recruit_analysis.models.analysis import AlertSignal, AnalysisResult
from recruit_analysis.models.entity import EntityData
from recruit_analysis.models.job import EntityKind
from recruit_analysis.pipeline.base_task import AnalysisTask, cv_section
from recruit_analysis.pipeline.salary import estimate_salary

INSTRUCTIONS = """\
You are an experienced technical recruiter. Compare the candidate with the job
posting and assess how well they match.

Scoring rules:
- skills: coverage of the required skills, counting close technology variants
- experience: relevance and length of professional experience (internships excluded)
- education: fit of degrees and certifications with the role
- languages: spoken/written language fit with the role
- score: overall match, weighted experience 45%, skills 25%, education 20%, languages 10%
- Only use information present in the candidate data; do not invent experience.
- Report each gap as an alert signal with its severity."""

TECH_VARIANTS: dict[str, tuple[str, ...]] = {
    "mongodb": ("mongo", "nosql"),
    "javascript": ("js", "ecmascript"),
    "typescript": ("ts",),
    "reactjs": ("react",),
    "react.js": ("react",),
    "nodejs": ("node",),
    "node.js": ("node",),
    "expressjs": ("express",),
    "postgresql": ("postgres", "psql"),
    "mysql": ("sql", "mariadb"),
    "aws": ("amazon", "cloud"),
    "azure": ("microsoft", "cloud"),
    "docker": ("container",),
    "kubernetes": ("k8s", "container orchestration"),
}

SEVERITY_RANK = {"high": 3, "medium": 2, "low": 1}


def find_potential_matches(candidate_skills: list[str], job_skills: list[str]) -> list[str]:
    """Candidate skills that plausibly satisfy a job requirement, in candidate order."""
    matches: list[str] = []
    job_lower = [s.lower() for s in job_skills if s]
    for skill in candidate_skills:
        if not skill:
            continue
        lower = skill.lower()
        for required in job_lower:
            direct = lower in required or required in lower
            variant = any(
                (tech in lower and any(v in required for v in variants))
                or (tech in required and any(v in lower for v in variants))
                for tech, variants in TECH_VARIANTS.items()
            )
            if (direct or variant) and skill not in matches:
                matches.append(skill)
                break
    return matches


def fit_level(score: int) -> str:
    if score >= 85:
        return "excellent"
    if score >= 70:
        return "good"
    if score >= 50:
        return "average"
    return "weak"


def decision(score: int) -> str:
    if score >= 85:
        return "strongly recommended"
    if score >= 70:
        return "recommended"
    if score >= 50:
        return "consider"
    return "not recommended"


def hiring_potential(score: int) -> str:
    if score >= 65:
        return "high"
    if score >= 50:
        return "medium"
    return "low"


def suggested_action(alerts: list[AlertSignal]) -> str:
    for severity, prefix in (("high", "Priority: "), ("medium", "")):
        alert = next((a for a in alerts if a.severity == severity), None)
        if alert is not None:
            return prefix + alert.problem
    return "Proceed with the standard evaluation"


def candidate_feedback(alerts: list[AlertSignal]) -> list[str]:
    ordered = sorted(alerts, key=lambda a: SEVERITY_RANK[a.severity], reverse=True)
    return [a.problem for a in ordered]


class JobMatchTask(AnalysisTask):
    kind = EntityKind.JOB_MATCH
    breakdown_keys = ("skills", "experience", "education", "languages")
    narrative_hint = "why the candidate does or does not fit this job"
    alert_categories = "skills|experience|education|languages"

    def check(self, entity: EntityData) -> None:
        super().check(entity)
        if entity.job is None:
            raise PermanentAnalysisError(f"application {entity.entity_id} has no job posting")

    def build_prompt(self, entity: EntityData) -> str:
        # check() has already rejected entities missing either side
        candidate = entity.candidate
        job = entity.job

        skill_names = [s.name for s in candidate.skills]
        matches = find_potential_matches(skill_names, job.required_skills)
        years = (
            f"{candidate.years_experience:g}" if candidate.years_experience is not None else "unknown"
        )
        return f"""{INSTRUCTIONS}

## Job posting
Title: {job.title}
Company: {job.company or "unspecified"}
Required skills: {", ".join(job.required_skills) or "none listed"}
Description:
{job.description.strip() or "(no description)"}

## Candidate
Name: {candidate.name}
Years of experience: {years}
Education: {", ".join(candidate.education) or "not recorded"}
Known skills: {", ".join(skill_names) or "none recorded"}
Potential skill matches: {", ".join(matches) or "none found"}
CV:
{cv_section(candidate)}

{self.response_format()}"""

    def derive_fields(self, entity: EntityData, result: AnalysisResult) -> dict[str, Any]:
        score = result.summary.score
        return {
            "recommended": score > 50,
            "fit_level": fit_level(score),
            "decision": decision(score),
            "hiring_potential": hiring_potential(score),
            "suggested_action": suggested_action(result.alert_signals),
            "candidate_feedback": candidate_feedback(result.alert_signals),
            "potential_salary": estimate_salary(
                entity.candidate.years_experience,
                [s.name for s in entity.candidate.skills],
                entity.candidate.education,
                entity.job.title,
            ).model_dump(),
        }
