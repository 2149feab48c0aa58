"""Tests for backoff functions."""

import pytest

from recruit_analysis.utils.backoff import exponential_backoff, linear_backoff, make_backoff


def test_exponential_doubles():
    backoff = exponential_backoff(base=2.0)
    assert [backoff(n) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]


def test_exponential_cap():
    backoff = exponential_backoff(base=1.0, cap=5.0)
    assert backoff(10) == 5.0


def test_linear():
    backoff = linear_backoff(base=1.5)
    assert [backoff(n) for n in (1, 2, 3)] == [1.5, 3.0, 4.5]


def test_make_backoff_unknown_kind():
    with pytest.raises(ValueError, match="Unknown backoff"):
        make_backoff("fibonacci", 1.0)
