"""Backoff functions shared by the client retry loop and the job queue.

A backoff function maps a 1-based attempt number to the delay in seconds
before the next attempt.
"""

from __future__ import annotations

from typing import Callable

BackoffFn = Callable[[int], float]


def exponential_backoff(base: float = 1.0, cap: float | None = None) -> BackoffFn:
    def _delay(attempt: int) -> float:
        delay = base * (2 ** max(0, attempt - 1))
        return min(delay, cap) if cap is not None else delay

    return _delay


def linear_backoff(base: float = 1.0, cap: float | None = None) -> BackoffFn:
    def _delay(attempt: int) -> float:
        delay = base * max(1, attempt)
        return min(delay, cap) if cap is not None else delay

    return _delay


def make_backoff(kind: str, base: float, cap: float | None = None) -> BackoffFn:
    if kind == "exponential":
        return exponential_backoff(base, cap)
    if kind == "linear":
        return linear_backoff(base, cap)
    raise ValueError(f"Unknown backoff kind: {kind!r}")


def as_tenacity_wait(backoff: BackoffFn) -> Callable:
    """Adapt a backoff function to tenacity's ``wait=`` callable protocol."""

    def _wait(retry_state) -> float:
        return backoff(retry_state.attempt_number)

    return _wait
