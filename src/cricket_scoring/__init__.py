"""Cricket scoring engine: ball-by-ball match scoring with career and season statistics."""

__version__ = "0.1.0"

from .config import settings
from .database import create_tables, get_session, reset_engine
from .errors import (
    ScoringError,
    InvalidConfiguration,
    MatchNotFound,
    MatchNotLive,
    TossNotRecorded,
    FirstInningsIncomplete,
    OverComplete,
    OverInProgress,
    WrongBowler,
    InvalidBallEvent,
    MatchNotCompleted,
)
from .scoring.service import ScoringService

__all__ = [
    "settings",
    "create_tables",
    "get_session",
    "reset_engine",
    "ScoringService",
    "ScoringError",
    "InvalidConfiguration",
    "MatchNotFound",
    "MatchNotLive",
    "TossNotRecorded",
    "FirstInningsIncomplete",
    "OverComplete",
    "OverInProgress",
    "WrongBowler",
    "InvalidBallEvent",
    "MatchNotCompleted",
]
