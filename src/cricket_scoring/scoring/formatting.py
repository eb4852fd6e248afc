"""Display helpers for overs, figures and ball-by-ball tokens.

The data model keeps overs as integers; the "18.4" notation only exists here.
"""

from __future__ import annotations

from typing import Optional

from .metrics import BALLS_PER_OVER


def format_overs(legal_balls: int) -> str:
    """118 balls -> "19.4"."""
    return f"{legal_balls // BALLS_PER_OVER}.{legal_balls % BALLS_PER_OVER}"


def overs_to_balls(overs: str) -> int:
    """Parse overs notation ("19.4", "20") back into balls."""
    s = str(overs).strip()
    if not s:
        raise ValueError("Overs cannot be empty")
    if "." not in s:
        whole = int(s)
        if whole < 0:
            raise ValueError(f"Invalid overs: {overs}")
        return whole * BALLS_PER_OVER
    whole_part, ball_part = s.split(".", 1)
    whole = int(whole_part) if whole_part else 0
    balls = int(ball_part) if ball_part else 0
    if whole < 0 or not 0 <= balls < BALLS_PER_OVER:
        raise ValueError(f"Invalid overs: {overs} (balls part must be 0-5)")
    return whole * BALLS_PER_OVER + balls


def format_figures(wickets: int, runs: int) -> str:
    """Bowling figures as shown on scorecards, e.g. "3/24"."""
    return f"{wickets}/{runs}"


def format_score(runs: int, wickets: int) -> str:
    return f"{runs}/{wickets}"


def ball_token(ball) -> str:
    """Compact token for the recent balls strip: "4", "W", "wd", "2lb", "nb"."""
    if ball.wicket is not None:
        return "W"
    extras = ball.extras
    if extras is None:
        return str(ball.runs_off_bat)
    suffix = {
        "wide": "wd",
        "no_ball": "nb",
        "bye": "b",
        "leg_bye": "lb",
    }[extras.type.value]
    if extras.is_illegal_delivery:
        total = ball.total_runs
        return suffix if total == 1 else f"{total}{suffix}"
    return f"{extras.runs}{suffix}"


def plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def chase_text(team_name: str, runs_needed: int, balls_remaining: Optional[int]) -> str:
    """"Kathmandu Kings needs 62 runs in 42 balls"."""
    if balls_remaining is None:
        return f"{team_name} needs {plural(runs_needed, 'run')} to win"
    return f"{team_name} needs {plural(runs_needed, 'run')} in {plural(balls_remaining, 'ball')}"
