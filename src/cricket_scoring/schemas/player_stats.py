"""Pydantic schemas for per-match deltas, career statistics and team records."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ..models.matches import ResultType
from ..scoring import metrics
from ..scoring.formatting import format_overs, format_figures


class PlayerMatchStats(BaseModel):
    """What one match adds to a player's career statistics."""

    player_id: str
    match_id: str
    team_id: str
    batted: bool = False
    runs: int = Field(0, ge=0)
    balls_faced: int = Field(0, ge=0)
    fours: int = Field(0, ge=0)
    sixes: int = Field(0, ge=0)
    out: bool = False
    bowled: bool = False
    balls_bowled: int = Field(0, ge=0)
    runs_conceded: int = Field(0, ge=0)
    wickets: int = Field(0, ge=0)
    maidens: int = Field(0, ge=0)
    catches: int = Field(0, ge=0)
    stumpings: int = Field(0, ge=0)
    run_outs: int = Field(0, ge=0)


class CareerStat(BaseModel):
    """Career statistics of a player, folded from finalized matches."""

    model_config = ConfigDict(from_attributes=True)

    player_id: str
    matches: int = 0
    batting_innings: int = 0
    bowling_innings: int = 0
    runs: int = 0
    balls_faced: int = 0
    fours: int = 0
    sixes: int = 0
    not_outs: int = 0
    high_score: int = 0
    fifties: int = 0
    hundreds: int = 0
    ducks: int = 0
    balls_bowled: int = 0
    runs_conceded: int = 0
    wickets: int = 0
    maidens: int = 0
    best_wickets: int = 0
    best_runs: Optional[int] = None
    catches: int = 0
    stumpings: int = 0
    run_outs: int = 0

    @computed_field
    @property
    def batting_average(self) -> float:
        return round(metrics.batting_average(self.runs, self.batting_innings - self.not_outs), 2)

    @computed_field
    @property
    def strike_rate(self) -> float:
        return round(metrics.strike_rate(self.runs, self.balls_faced), 2)

    @computed_field
    @property
    def bowling_average(self) -> float:
        return round(metrics.bowling_average(self.runs_conceded, self.wickets), 2)

    @computed_field
    @property
    def economy(self) -> float:
        return round(metrics.economy(self.runs_conceded, self.balls_bowled), 2)

    @computed_field
    @property
    def overs_bowled(self) -> str:
        return format_overs(self.balls_bowled)

    @computed_field
    @property
    def best_figures(self) -> Optional[str]:
        if self.best_runs is None:
            return None
        return format_figures(self.best_wickets, self.best_runs)

    def counters(self) -> dict:
        """Stored fields only, without the derived rates."""
        return self.model_dump(exclude=set(type(self).model_computed_fields))


class TeamMatchResult(BaseModel):
    """What one match adds to a team's season record."""

    team_id: str
    match_id: str
    season: int
    result: ResultType
    won: bool = False
    runs_for: int = 0
    balls_faced: int = 0
    runs_against: int = 0
    balls_bowled: int = 0


class TeamSeasonStats(BaseModel):
    """A team's record for one season."""

    model_config = ConfigDict(from_attributes=True)

    team_id: str
    season: int
    played: int = 0
    won: int = 0
    lost: int = 0
    tied: int = 0
    no_result: int = 0
    runs_for: int = 0
    balls_faced: int = 0
    runs_against: int = 0
    balls_bowled: int = 0
    highest_total: int = 0

    @computed_field
    @property
    def win_percentage(self) -> float:
        decided = self.played - self.no_result
        if decided <= 0:
            return 0.0
        return round(self.won / decided * 100, 2)

    @computed_field
    @property
    def net_run_rate(self) -> float:
        return round(
            metrics.net_run_rate(self.runs_for, self.balls_faced, self.runs_against, self.balls_bowled),
            3,
        )

    def counters(self) -> dict:
        return self.model_dump(exclude=set(type(self).model_computed_fields))


class ReconcileIssue(BaseModel):
    """A cached statistic that differs from a replay of the event log."""

    subject: str = Field(..., description="player or team")
    key: str
    field: str
    stored: Optional[int] = None
    replayed: Optional[int] = None
