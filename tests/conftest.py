"""Shared fixtures: an in-memory database, a service and two T20 sides."""

from datetime import datetime
from typing import List, Optional

import pytest

from cricket_scoring.config import Settings
from cricket_scoring.database import create_tables, drop_tables, reset_engine
from cricket_scoring.schemas import Team
from cricket_scoring.scoring.service import ScoringService

KINGS = Team(
    team_id="KTM",
    name="Kathmandu Kings",
    short_name="KTM",
    roster=[f"k{i}" for i in range(1, 12)],
)
RHINOS = Team(
    team_id="PKR",
    name="Pokhara Rhinos",
    short_name="PKR",
    roster=[f"p{i}" for i in range(1, 12)],
)
KINGS_BOWLERS = KINGS.roster[6:]
RHINOS_BOWLERS = RHINOS.roster[6:]
MATCH_DAY = datetime(2024, 4, 1, 15, 0)


class InningsScorer:
    """Feeds deliveries to the service, rotating strike and bowlers like a scorer would."""

    def __init__(self, service: ScoringService, match_id: str, batters: List[str], bowlers: List[str]):
        self.service = service
        self.match_id = match_id
        self.queue = list(batters)
        self.striker = self.queue.pop(0)
        self.non_striker = self.queue.pop(0)
        self.bowlers = list(bowlers)
        self.over = 0
        self.legal_in_over = 0

    @property
    def bowler(self) -> str:
        return self.bowlers[self.over % len(self.bowlers)]

    def event(self, runs: int = 0, extras=None, wicket: Optional[str] = None,
              fielder: Optional[str] = None, out: Optional[str] = None) -> dict:
        event = {
            "striker_id": self.striker,
            "non_striker_id": self.non_striker,
            "bowler_id": self.bowler,
            "runs_off_bat": runs,
        }
        if extras is not None:
            event["extras"] = {"type": extras[0], "runs": extras[1]}
        if wicket is not None:
            event["wicket"] = {"player_out_id": out or self.striker, "kind": wicket, "fielder_id": fielder}
        return event

    def deliver(self, runs: int = 0, extras=None, wicket: Optional[str] = None,
                fielder: Optional[str] = None, out: Optional[str] = None):
        if self.legal_in_over == 6:
            self.over += 1
            self.legal_in_over = 0
            self.service.start_next_over(self.match_id, self.bowler)
        ball = self.service.record_ball(self.match_id, self.event(runs, extras, wicket, fielder, out))

        if ball.is_legal:
            self.legal_in_over += 1
        if ball.runs_run % 2 == 1:
            self.striker, self.non_striker = self.non_striker, self.striker
        if ball.wicket is not None:
            replacement = self.queue.pop(0) if self.queue else None
            if ball.wicket.player_out_id == self.striker:
                self.striker = replacement
            else:
                self.non_striker = replacement
        if self.legal_in_over == 6:
            self.striker, self.non_striker = self.non_striker, self.striker
        return ball

    def play(self, plan):
        """Deliver a list of legal balls: ints are runs off the bat, "W" is a bowled wicket."""
        for outcome in plan:
            if outcome == "W":
                self.deliver(wicket="bowled")
            else:
                self.deliver(outcome)

    def complete_over(self, runs: int = 0):
        while self.legal_in_over < 6:
            self.deliver(runs)


def spread(runs: int, balls: int, wickets_at=()) -> list:
    """A plan of `balls` legal deliveries scoring exactly `runs`, with bowled wickets at the given indices.

    Runs are spread evenly, so a chase only reaches its target on the last ball.
    """
    scoring = [i for i in range(balls) if i not in wickets_at]
    base, extra = divmod(runs, len(scoring))
    plan = ["W"] * balls
    for n, i in enumerate(scoring):
        plan[i] = base + (1 if n < extra else 0)
    return plan


@pytest.fixture(autouse=True)
def database():
    """Fresh in-memory SQLite schema for every test."""
    reset_engine("sqlite://")
    create_tables()
    yield
    drop_tables()


@pytest.fixture
def config():
    return Settings()


@pytest.fixture
def service(config):
    return ScoringService(config=config)


@pytest.fixture
def match_id(service):
    return service.create_match([KINGS, RHINOS], "t20", "Tribhuvan University Ground", MATCH_DAY)


@pytest.fixture
def live_match(service, match_id):
    service.record_toss(match_id, "KTM", "bat")
    service.start_innings(match_id)
    return match_id


@pytest.fixture
def kings_batting(service, live_match):
    return InningsScorer(service, live_match, KINGS.roster, RHINOS_BOWLERS)


@pytest.fixture
def rhinos_batting(service, live_match):
    """Factory for the second innings scorer, once the first innings has ended."""
    def start():
        service.start_innings(live_match)
        return InningsScorer(service, live_match, RHINOS.roster, KINGS_BOWLERS)
    return start
