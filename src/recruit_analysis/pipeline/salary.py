"""Potential salary estimate attached to job-match results.

Monthly ranges in TND for the Tunisian market, banded by years of
experience and adjusted for education, in-demand skills and the job title.
"""

from __future__ import annotations

from pydantic import BaseModel

CURRENCY = "TND"
MARKET_CAP = 5000

# (minimum years, band, (min, max))
LEVEL_BANDS: tuple[tuple[float, str, tuple[int, int]], ...] = (
    (7, "expert", (4000, 5000)),
    (4, "senior", (2500, 4000)),
    (2, "mid-level", (1500, 2500)),
    (0, "junior", (800, 1500)),
)

HIGH_DEMAND_SKILLS = (
    "javascript", "typescript", "react", "angular", "vue", "node", "python", "java",
    "devops", "cloud", "aws", "azure", "docker", "kubernetes", "data science",
    "machine learning", "ai", "blockchain", "security", "mongodb", "mongoose", "nosql",
)


class SalaryRange(BaseModel):
    min: int
    max: int
    currency: str = CURRENCY
    level: str


def experience_band(years: float | None) -> tuple[str, tuple[int, int]]:
    years = years or 0
    for threshold, band, bounds in LEVEL_BANDS:
        if years >= threshold:
            return band, bounds
    return LEVEL_BANDS[-1][1], LEVEL_BANDS[-1][2]


def count_high_demand(skills: list[str]) -> int:
    # substring match, so "React Native" and "Node.js" both count
    return sum(1 for s in skills if any(term in s.lower() for term in HIGH_DEMAND_SKILLS))


def estimate_salary(
    years_experience: float | None,
    skills: list[str],
    education: list[str],
    job_title: str,
) -> SalaryRange:
    level, (low, high) = experience_band(years_experience)

    degrees = " ".join(education).lower()
    if "master" in degrees or "mba" in degrees:
        low, high = low + 300, high + 500
    elif "phd" in degrees or "doctorat" in degrees:
        low, high = low + 500, high + 1000

    in_demand = count_high_demand(skills)
    if in_demand >= 3:
        low, high = low + 400, high + 800
    elif in_demand >= 1:
        low, high = low + 200, high + 400

    title = job_title.lower()
    if "lead" in title or "senior" in title:
        low, high = low + 300, high + 600
    elif "manager" in title or "director" in title:
        low, high = low + 800, high + 1500

    high = min(high, MARKET_CAP)
    return SalaryRange(min=min(low, high), max=high, level=level)
