"""Tests for the potential salary estimate."""

import pytest

from recruit_analysis.pipeline.salary import count_high_demand, estimate_salary, experience_band


@pytest.mark.parametrize(
    "years,band",
    [(None, "junior"), (0, "junior"), (1.5, "junior"), (2, "mid-level"), (4, "senior"), (7, "expert")],
)
def test_experience_bands(years, band):
    assert experience_band(years)[0] == band


def test_junior_without_adjustments():
    salary = estimate_salary(1, ["Excel"], [], "Assistant")
    assert (salary.min, salary.max, salary.currency) == (800, 1500, "TND")


def test_education_adjustments():
    assert estimate_salary(2, [], ["MBA"], "Analyst").model_dump()["min"] == 1800
    phd = estimate_salary(2, [], ["PhD Physics"], "Analyst")
    assert (phd.min, phd.max) == (2000, 3500)


def test_high_demand_skill_tiers():
    assert count_high_demand(["React Native", "Node.js", "Docker", "Excel"]) == 3
    one = estimate_salary(0, ["Python"], [], "Developer")
    three = estimate_salary(0, ["Python", "AWS", "Docker"], [], "Developer")
    assert (one.min, one.max) == (1000, 1900)
    assert (three.min, three.max) == (1200, 2300)


def test_title_adjustments():
    lead = estimate_salary(2, [], [], "Tech Lead")
    manager = estimate_salary(2, [], [], "Engineering Manager")
    assert (lead.min, lead.max) == (1800, 3100)
    assert (manager.min, manager.max) == (2300, 4000)


def test_market_cap_keeps_range_ordered():
    salary = estimate_salary(10, ["Python", "AWS", "Docker"], ["PhD"], "Director")
    assert salary.max == 5000
    assert salary.min <= salary.max
    assert salary.level == "expert"
