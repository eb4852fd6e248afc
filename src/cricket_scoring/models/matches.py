"""Match header and event log models for the scoring database."""

from enum import Enum

from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, Index, UniqueConstraint, Enum as SQLEnum

from .base import Base


class MatchFormat(str, Enum):
    """Enumeration of supported match formats."""
    T20 = "t20"
    ODI = "odi"
    TEST = "test"


class MatchStatus(str, Enum):
    """Enumeration of match statuses."""
    UPCOMING = "upcoming"
    LIVE = "live"
    INNINGS_BREAK = "innings_break"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class TossDecision(str, Enum):
    """What the toss winner chose to do."""
    BAT = "bat"
    BOWL = "bowl"


class InningsEndReason(str, Enum):
    """Why an innings closed."""
    ALL_OUT = "all_out"
    OVERS_COMPLETE = "overs_complete"
    DECLARED = "declared"
    TARGET_REACHED = "target_reached"


class ResultType(str, Enum):
    """Enumeration of match result types."""
    WIN = "win"
    TIE = "tie"
    NO_RESULT = "no_result"


class WinMargin(str, Enum):
    """Unit of a winning margin."""
    RUNS = "runs"
    WICKETS = "wickets"


class EventKind(str, Enum):
    """Kinds of entries in a match's append-only event log."""
    MATCH_CREATED = "match_created"
    TOSS_RECORDED = "toss_recorded"
    INNINGS_STARTED = "innings_started"
    OVER_STARTED = "over_started"
    BALL_RECORDED = "ball_recorded"
    BALL_CORRECTED = "ball_corrected"
    INNINGS_DECLARED = "innings_declared"
    MATCH_ABANDONED = "match_abandoned"


class Match(Base):
    """Read model of a match, rewritten after every accepted event."""

    __tablename__ = "matches"

    match_id = Column(String(64), nullable=False, unique=True, index=True)
    match_format = Column(SQLEnum(MatchFormat), nullable=False, index=True)
    status = Column(SQLEnum(MatchStatus), nullable=False, index=True)

    # Teams
    home_team_id = Column(String(64), nullable=False, index=True)
    away_team_id = Column(String(64), nullable=False, index=True)

    # Match details
    venue = Column(String(200), nullable=True, index=True)
    scheduled_at = Column(DateTime, nullable=False, index=True)

    # Toss and result
    toss_winner_id = Column(String(64), nullable=True)
    toss_decision = Column(SQLEnum(TossDecision), nullable=True)
    result_type = Column(SQLEnum(ResultType), nullable=True)
    winner_id = Column(String(64), nullable=True, index=True)
    win_margin = Column(Integer, nullable=True)
    win_margin_type = Column(SQLEnum(WinMargin), nullable=True)
    result_summary = Column(String(200), nullable=True)
    abandon_reason = Column(Text, nullable=True)

    # Number of events applied so far
    last_seq = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        Index("idx_match_status_date", "status", "scheduled_at"),
        Index("idx_match_teams", "home_team_id", "away_team_id"),
    )

    def __repr__(self) -> str:
        return f"<Match({self.match_id}, {self.home_team_id} vs {self.away_team_id}, {self.status})>"


class MatchEvent(Base):
    """One entry of a match's append-only event log."""

    __tablename__ = "match_events"

    match_id = Column(String(64), nullable=False, index=True)
    seq = Column(Integer, nullable=False)
    kind = Column(SQLEnum(EventKind), nullable=False, index=True)
    payload = Column(JSON, nullable=False)

    __table_args__ = (
        UniqueConstraint("match_id", "seq", name="uq_match_event_seq"),
    )

    def __repr__(self) -> str:
        return f"<MatchEvent({self.match_id}#{self.seq}, {self.kind})>"
