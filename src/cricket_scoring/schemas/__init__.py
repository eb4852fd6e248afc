"""Pydantic schemas shared by the engine and its callers."""

from .teams import Player, Team, TeamRef, TeamMembership
from .ball_by_ball import Ball, BallEvent, Extras, ExtraType, Wicket, DismissalKind
from .matches import (
    TossInfo,
    MatchResult,
    ExtrasBreakdown,
    BattingLine,
    BowlingLine,
    FallOfWicket,
    Partnership,
    InningsView,
    MatchView,
)
from .player_stats import (
    PlayerMatchStats,
    CareerStat,
    TeamMatchResult,
    TeamSeasonStats,
    ReconcileIssue,
)

__all__ = [
    "Player",
    "Team",
    "TeamRef",
    "TeamMembership",
    "Ball",
    "BallEvent",
    "Extras",
    "ExtraType",
    "Wicket",
    "DismissalKind",
    "TossInfo",
    "MatchResult",
    "ExtrasBreakdown",
    "BattingLine",
    "BowlingLine",
    "FallOfWicket",
    "Partnership",
    "InningsView",
    "MatchView",
    "PlayerMatchStats",
    "CareerStat",
    "TeamMatchResult",
    "TeamSeasonStats",
    "ReconcileIssue",
]
