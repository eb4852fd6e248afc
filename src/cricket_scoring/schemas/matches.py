"""Pydantic schemas for match state and read projections."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.matches import (
    MatchFormat,
    MatchStatus,
    TossDecision,
    InningsEndReason,
    ResultType,
    WinMargin,
)
from .teams import TeamRef


class TossInfo(BaseModel):
    """Toss outcome."""

    model_config = ConfigDict(frozen=True)

    winner_team_id: str
    decision: TossDecision


class MatchResult(BaseModel):
    """Final result of a completed or abandoned match."""

    model_config = ConfigDict(frozen=True)

    result_type: ResultType
    winner_team_id: Optional[str] = None
    margin: Optional[int] = Field(None, ge=0)
    margin_type: Optional[WinMargin] = None
    summary: str


class ExtrasBreakdown(BaseModel):
    """Extras conceded in an innings."""

    byes: int = 0
    leg_byes: int = 0
    wides: int = 0
    no_balls: int = 0

    @property
    def total(self) -> int:
        return self.byes + self.leg_byes + self.wides + self.no_balls


class BattingLine(BaseModel):
    """One row of a batting scorecard."""

    player_id: str
    name: str
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    strike_rate: float = 0.0
    is_out: bool = False
    dismissal: str = "not out"


class BowlingLine(BaseModel):
    """One row of a bowling scorecard."""

    player_id: str
    name: str
    overs: str = "0.0"
    balls: int = 0
    maidens: int = 0
    runs: int = 0
    wickets: int = 0
    economy: float = 0.0
    wides: int = 0
    no_balls: int = 0
    overs_remaining: Optional[int] = Field(None, description="Overs left in the bowler's quota; None without a quota")


class FallOfWicket(BaseModel):
    """The most recent dismissal of the current innings."""

    player_id: str
    name: str
    runs: int
    balls: int
    dismissal: str
    over: str = Field(..., description="Over and ball of the dismissal, e.g. 12.3")
    score: str = Field(..., description="Team score at the fall, e.g. 87/3")


class Partnership(BaseModel):
    """Runs and legal balls since the last wicket fell."""

    runs: int = 0
    balls: int = 0


class InningsView(BaseModel):
    """Read-only summary and scorecard of an innings."""

    number: int
    batting_team_id: str
    bowling_team_id: str
    runs: int
    wickets: int
    legal_balls: int
    overs: str = Field(..., description="Display overs, e.g. 18.4")
    run_rate: float
    extras: ExtrasBreakdown
    extras_total: int
    target: Optional[int] = None
    is_complete: bool = False
    end_reason: Optional[InningsEndReason] = None
    batting: List[BattingLine] = Field(default_factory=list)
    bowling: List[BowlingLine] = Field(default_factory=list)


class MatchView(BaseModel):
    """Snapshot of a match consumed by match detail screens and dashboards."""

    model_config = ConfigDict(frozen=True)

    match_id: str
    format: MatchFormat
    status: MatchStatus
    venue: Optional[str] = None
    scheduled_at: datetime
    teams: List[TeamRef]
    toss: Optional[TossInfo] = None
    innings: List[InningsView] = Field(default_factory=list)
    current_innings: Optional[int] = None
    striker_id: Optional[str] = None
    non_striker_id: Optional[str] = None
    bowler_id: Optional[str] = None
    free_hit: bool = False
    recent_balls: List[str] = Field(default_factory=list)
    current_run_rate: float = 0.0
    required_run_rate: Optional[float] = None
    chase_unachievable: bool = False
    runs_needed: Optional[int] = None
    balls_remaining: Optional[int] = None
    last_wicket: Optional[FallOfWicket] = None
    partnership: Optional[Partnership] = None
    status_text: str = ""
    result: Optional[MatchResult] = None
    events_applied: int = 0
