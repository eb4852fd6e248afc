"""Database models for the cricket scoring engine."""

from .base import Base
from .teams import Team, TeamMembership
from .players import Player, PlayerRole
from .matches import (
    Match,
    MatchEvent,
    MatchFormat,
    MatchStatus,
    TossDecision,
    InningsEndReason,
    ResultType,
    WinMargin,
    EventKind,
)
from .player_stats import PlayerCareerStats, AggregatedMatch
from .team_stats import TeamSeasonRecord

__all__ = [
    "Base",
    "Team",
    "TeamMembership",
    "Player",
    "PlayerRole",
    "Match",
    "MatchEvent",
    "MatchFormat",
    "MatchStatus",
    "TossDecision",
    "InningsEndReason",
    "ResultType",
    "WinMargin",
    "EventKind",
    "PlayerCareerStats",
    "AggregatedMatch",
    "TeamSeasonRecord",
]
