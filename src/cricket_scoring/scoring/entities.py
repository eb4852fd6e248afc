"""In-memory match aggregate: Match owns its Innings, Innings own their Overs.

Running totals on an Innings are maintained incrementally by the ball
recorder; the Ball objects themselves are immutable and corrections are
kept beside the originals rather than replacing them.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple, Union

from ..errors import InvalidConfiguration
from ..models.matches import MatchFormat, MatchStatus, InningsEndReason
from ..schemas.ball_by_ball import Ball, ExtraType
from ..schemas.matches import MatchResult, TossInfo
from ..schemas.teams import Team
from .formats import FormatRules, rules_for
from .metrics import BALLS_PER_OVER


@dataclass
class Over:
    """Deliveries bowled by one bowler; closed by the sixth legal ball."""
    innings_number: int
    number: int
    bowler_id: str
    balls: List[Ball] = field(default_factory=list)
    legal_count: int = 0

    @property
    def is_complete(self) -> bool:
        return self.legal_count >= BALLS_PER_OVER


@dataclass
class Innings:
    """One side's turn at batting."""
    number: int
    batting_team_id: str
    bowling_team_id: str
    team_size: int
    max_legal_balls: Optional[int]
    target: Optional[int] = None
    overs: List[Over] = field(default_factory=list)

    # Running totals
    runs: int = 0
    wickets: int = 0
    legal_balls: int = 0
    deliveries: int = 0
    extras: Dict[ExtraType, int] = field(default_factory=lambda: {t: 0 for t in ExtraType})

    dismissed: Set[str] = field(default_factory=set)
    corrections: Dict[int, Ball] = field(default_factory=dict)
    free_hit_pending: bool = False
    end_reason: Optional[InningsEndReason] = None

    @property
    def is_complete(self) -> bool:
        return self.end_reason is not None

    @property
    def current_over(self) -> Optional[Over]:
        return self.overs[-1] if self.overs else None

    @property
    def all_out_wickets(self) -> int:
        return self.team_size - 1

    @property
    def wickets_in_hand(self) -> int:
        return max(self.all_out_wickets - self.wickets, 0)

    @property
    def balls_remaining(self) -> Optional[int]:
        if self.max_legal_balls is None:
            return None
        return max(self.max_legal_balls - self.legal_balls, 0)

    @property
    def runs_needed(self) -> Optional[int]:
        if self.target is None:
            return None
        return max(self.target - self.runs, 0)

    def effective_balls(self) -> Iterator[Ball]:
        """Deliveries in order, with the latest correction standing in for each original."""
        for over in self.overs:
            for ball in over.balls:
                yield self.corrections.get(ball.seq, ball)

    def find_ball(self, seq: int) -> Optional[Ball]:
        for ball in self.effective_balls():
            if ball.seq == seq:
                return ball
        return None

    def last_ball(self) -> Optional[Ball]:
        for over in reversed(self.overs):
            if over.balls:
                ball = over.balls[-1]
                return self.corrections.get(ball.seq, ball)
        return None

    def count(self, ball: Ball, sign: int = 1) -> None:
        """Add (or with sign=-1 remove) a delivery's runs, extras and wicket from the totals."""
        self.runs += sign * ball.total_runs
        if ball.extras is not None:
            self.extras[ball.extras.type] += sign * ball.extras.runs
        if ball.wicket is not None:
            self.wickets += sign


@dataclass
class Match:
    """A match and everything scored in it."""
    match_id: str
    rules: FormatRules
    teams: Tuple[Team, Team]
    venue: Optional[str]
    scheduled_at: datetime
    players_per_side: int
    status: MatchStatus = MatchStatus.UPCOMING
    toss: Optional[TossInfo] = None
    innings: List[Innings] = field(default_factory=list)
    result: Optional[MatchResult] = None
    abandon_reason: Optional[str] = None
    events_applied: int = 0

    @property
    def format(self) -> MatchFormat:
        return self.rules.format

    @property
    def team_ids(self) -> Tuple[str, str]:
        return self.teams[0].team_id, self.teams[1].team_id

    @property
    def season(self) -> int:
        return self.scheduled_at.year

    @property
    def current_innings(self) -> Optional[Innings]:
        return self.innings[-1] if self.innings else None

    @property
    def is_terminal(self) -> bool:
        return self.status in (MatchStatus.COMPLETED, MatchStatus.ABANDONED)

    def team(self, team_id: str) -> Team:
        for team in self.teams:
            if team.team_id == team_id:
                return team
        raise KeyError(team_id)

    def team_name(self, team_id: str) -> str:
        return self.team(team_id).name

    def opponent(self, team_id: str) -> str:
        first, second = self.team_ids
        return second if team_id == first else first

    def team_size(self, team_id: str) -> int:
        roster = self.team(team_id).roster
        if roster:
            return min(len(roster), self.players_per_side)
        return self.players_per_side

    def roster(self, team_id: str) -> Set[str]:
        return set(self.team(team_id).roster)


def create_match(
    teams: Sequence[Union[Team, dict]],
    format: Union[MatchFormat, str],
    venue: Optional[str],
    scheduled_at: datetime,
    match_id: Optional[str] = None,
    players_per_side: int = 11,
) -> Match:
    """Validate a match setup and return its skeleton in the upcoming state."""
    rules = rules_for(format)
    if len(teams) != 2:
        raise InvalidConfiguration(f"A match needs exactly 2 teams, got {len(teams)}")
    try:
        home, away = (t if isinstance(t, Team) else Team.model_validate(t) for t in teams)
    except ValueError as e:
        raise InvalidConfiguration(f"Invalid team: {e}") from e
    if home.team_id == away.team_id:
        raise InvalidConfiguration(f"A team cannot play itself ({home.team_id})")
    for team in (home, away):
        if team.roster and len(team.roster) < 2:
            raise InvalidConfiguration(f"Team {team.team_id} needs at least 2 players in its roster")
    shared = set(home.roster) & set(away.roster)
    if shared:
        raise InvalidConfiguration(f"Players listed for both teams: {', '.join(sorted(shared))}")
    if players_per_side < 2:
        raise InvalidConfiguration("players_per_side must be at least 2")
    if not isinstance(scheduled_at, datetime):
        raise InvalidConfiguration("scheduled_at must be a datetime")

    return Match(
        match_id=match_id or uuid.uuid4().hex,
        rules=rules,
        teams=(home, away),
        venue=venue,
        scheduled_at=scheduled_at,
        players_per_side=players_per_side,
    )
