"""Derived batting, bowling and team metrics.

Every function is pure and works on balls rather than fractional overs, so
19.4 overs is always 118 balls and never 19.4 / 19.666 confusion. All
rates are zero-guarded: a zero denominator yields 0.0, never an error.
"""

from __future__ import annotations

import math
from typing import Optional

BALLS_PER_OVER = 6

# Required rate when runs remain but no balls do
UNACHIEVABLE = math.inf


def strike_rate(runs: int, balls_faced: int) -> float:
    """Runs per 100 balls faced."""
    if balls_faced <= 0:
        return 0.0
    return runs / balls_faced * 100


def economy(runs_conceded: int, legal_balls: int) -> float:
    """Runs conceded per six legal balls."""
    if legal_balls <= 0:
        return 0.0
    return runs_conceded / legal_balls * BALLS_PER_OVER


def run_rate(runs: int, legal_balls: int) -> float:
    """Runs per over."""
    if legal_balls <= 0:
        return 0.0
    return runs / legal_balls * BALLS_PER_OVER


def required_run_rate(runs_remaining: int, balls_remaining: int) -> float:
    """
    Runs per over needed to reach the target.

    Returns 0.0 once nothing remains to be scored and UNACHIEVABLE when runs
    remain but the innings has no balls left.
    """
    if runs_remaining <= 0:
        return 0.0
    if balls_remaining <= 0:
        return UNACHIEVABLE
    return runs_remaining / balls_remaining * BALLS_PER_OVER


def is_unachievable(rate: float) -> bool:
    return math.isinf(rate)


def batting_average(runs: int, dismissals: int) -> float:
    if dismissals <= 0:
        return 0.0
    return runs / dismissals


def bowling_average(runs_conceded: int, wickets: int) -> float:
    if wickets <= 0:
        return 0.0
    return runs_conceded / wickets


def normalize_innings_balls(balls: int, all_out: bool, overs_limit: Optional[int]) -> int:
    """
    Net run rate rule: an all-out side is charged its full quota of overs.

    Formats without an overs limit keep the balls actually faced.
    """
    if balls < 0:
        raise ValueError("Balls cannot be negative")
    if all_out and overs_limit is not None:
        return overs_limit * BALLS_PER_OVER
    return balls


def net_run_rate(runs_for: int, balls_faced: int, runs_against: int, balls_bowled: int) -> float:
    """
    Net Run Rate = (runs_for / overs_faced) - (runs_against / overs_bowled)
    """
    return run_rate(runs_for, balls_faced) - run_rate(runs_against, balls_bowled)
