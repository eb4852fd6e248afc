"""Event log replay, failure recovery, concurrency and the team/player registry."""

import random
import threading
from datetime import date

import pytest
from sqlalchemy.exc import SQLAlchemyError

from cricket_scoring.errors import FirstInningsIncomplete, InvalidConfiguration, MatchNotFound
from cricket_scoring.models import MatchStatus
from cricket_scoring.repository import ScoringRepository
from cricket_scoring.scoring.service import ScoringService

from .conftest import KINGS, MATCH_DAY, RHINOS, RHINOS_BOWLERS, InningsScorer, spread


class FlakyRepository(ScoringRepository):
    """Fails the header write on demand, after the event row has been staged."""

    fail = False

    def upsert_match(self, session, match):
        if self.fail:
            raise SQLAlchemyError("database unavailable")
        return super().upsert_match(session, match)


def test_match_is_rebuilt_from_event_log(service, config, live_match, kings_batting):
    kings_batting.play([1, 4, "W", 6, 0, 2, 1])
    kings_batting.deliver(extras=("no_ball", 1))
    service.correct_ball(live_match, 2, {"striker_id": "k2", "non_striker_id": "k1", "bowler_id": "p7", "runs_off_bat": 6})
    original = service.get_match_snapshot(live_match)

    fresh = ScoringService(config=config)
    assert fresh.get_match_snapshot(live_match) == original
    assert service.load_match(live_match) == original

    # the rebuilt match keeps scoring where the log left off
    ball = fresh.record_ball(live_match, kings_batting.event(1))
    assert ball.seq == 9
    assert ball.free_hit


def test_completed_match_replays_to_same_result(service, config, live_match, kings_batting, rhinos_batting):
    kings_batting.play(spread(120, 120, wickets_at={3, 50}))
    rhinos_batting().play(spread(100, 120, wickets_at={7}))

    fresh = ScoringService(config=config)
    view = fresh.get_match_snapshot(live_match)
    assert view.status == MatchStatus.COMPLETED
    assert view.result == service.get_match_snapshot(live_match).result
    assert view.result.summary == "Kathmandu Kings won by 20 runs"


def test_failed_write_leaves_match_unchanged(config):
    repository = FlakyRepository()
    service = ScoringService(repository=repository, config=config)
    match_id = service.create_match([KINGS, RHINOS], "t20", None, MATCH_DAY)
    service.record_toss(match_id, "KTM", "bat")
    service.start_innings(match_id)
    scorer = InningsScorer(service, match_id, KINGS.roster, RHINOS_BOWLERS)
    scorer.deliver(4)
    before = service.get_match_snapshot(match_id)

    repository.fail = True
    with pytest.raises(SQLAlchemyError):
        service.record_ball(match_id, scorer.event(6))
    repository.fail = False

    after = service.get_match_snapshot(match_id)
    assert after == before
    assert after.innings[0].runs == 4
    assert len(repository.load_events(match_id)) == before.events_applied

    ball = scorer.deliver(1)
    assert ball.seq == 2
    assert service.get_match_snapshot(match_id).innings[0].runs == 5


def test_in_memory_mode_has_no_event_log(config):
    config.scoring.persist_events = False
    service = ScoringService(config=config)
    match_id = service.create_match([KINGS, RHINOS], "t20", None, MATCH_DAY)
    service.record_toss(match_id, "PKR", "bowl")

    assert service.repository.load_events(match_id) == []
    assert service.get_match_snapshot(match_id).events_applied == 2
    with pytest.raises(MatchNotFound):
        ScoringService(config=config).get_match_snapshot(match_id)


def test_matches_are_scored_concurrently(config):
    config.scoring.persist_events = False
    service = ScoringService(config=config)
    match_ids = [
        service.create_match([KINGS, RHINOS], "t20", f"Ground {n}", MATCH_DAY) for n in range(4)
    ]
    for match_id in match_ids:
        service.record_toss(match_id, "KTM", "bat")
        service.start_innings(match_id)

    errors = []
    done = threading.Event()

    def score(match_id, runs):
        try:
            InningsScorer(service, match_id, KINGS.roster, RHINOS_BOWLERS).play(spread(runs, 120))
        except Exception as e:
            errors.append(e)

    def watch():
        while not done.is_set():
            for match_id in match_ids:
                view = service.get_match_snapshot(match_id)
                if view.innings and view.innings[0].legal_balls > 120:
                    errors.append(AssertionError(f"{match_id} exceeded the overs limit"))

    writers = [threading.Thread(target=score, args=(m, 100 + i)) for i, m in enumerate(match_ids)]
    reader = threading.Thread(target=watch)
    reader.start()
    for thread in writers:
        thread.start()
    for thread in writers:
        thread.join()
    done.set()
    reader.join()

    assert errors == []
    for i, match_id in enumerate(match_ids):
        view = service.get_match_snapshot(match_id)
        assert view.status == MatchStatus.INNINGS_BREAK
        assert view.innings[0].runs == 100 + i


def test_concurrent_transitions_on_one_match_are_serialized(config):
    config.scoring.persist_events = False
    service = ScoringService(config=config)
    match_id = service.create_match([KINGS, RHINOS], "t20", None, MATCH_DAY)
    service.record_toss(match_id, "KTM", "bat")

    outcomes = []
    barrier = threading.Barrier(8)

    def start():
        barrier.wait()
        try:
            service.start_innings(match_id)
            outcomes.append("started")
        except FirstInningsIncomplete:
            outcomes.append("rejected")

    threads = [threading.Thread(target=start) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["rejected"] * 7 + ["started"]
    assert len(service.get_match_snapshot(match_id).innings) == 1


@pytest.mark.parametrize("seed", [1, 7, 42, 2024])
def test_random_innings_totals_are_consistent(service, live_match, kings_batting, seed):
    rng = random.Random(seed)
    balls = []
    while service.get_match_snapshot(live_match).status == MatchStatus.LIVE:
        free_hit = service.get_match_snapshot(live_match).free_hit
        roll = rng.random()
        if roll < 0.05:
            ball = kings_batting.deliver(extras=("wide", rng.choice([1, 1, 2, 5])))
        elif roll < 0.09:
            ball = kings_batting.deliver(rng.choice([0, 0, 1, 4, 6]), extras=("no_ball", 1))
        elif roll < 0.12:
            ball = kings_batting.deliver(extras=(rng.choice(["bye", "leg_bye"]), rng.choice([1, 2, 4])))
        elif roll < 0.18:
            if free_hit:
                ball = kings_batting.deliver(wicket="run_out", fielder="p1")
            else:
                ball = kings_batting.deliver(wicket=rng.choice(["bowled", "lbw"]))
        else:
            ball = kings_batting.deliver(rng.choice([0, 0, 0, 1, 1, 1, 2, 3, 4, 6]))
        balls.append(ball)

    innings = service.get_match_snapshot(live_match).innings[0]
    assert innings.runs == sum(b.total_runs for b in balls)
    assert innings.legal_balls == sum(1 for b in balls if b.is_legal) <= 120
    assert innings.wickets == sum(1 for b in balls if b.wicket) <= 10
    assert innings.legal_balls == 120 or innings.wickets == 10
    assert [b.seq for b in balls] == list(range(1, len(balls) + 1))
    assert all(1 <= b.ball_in_over <= 6 for b in balls)
    assert sum(line.runs for line in innings.batting) + innings.extras_total == innings.runs
    assert sum(line.balls for line in innings.bowling) == innings.legal_balls
    assert sum(line.runs for line in innings.bowling) + innings.extras.byes + innings.extras.leg_byes == innings.runs


def test_player_and_team_registry(service):
    team = service.register_team({"team_id": "LAL", "name": "Lalitpur Patriots", "short_name": "LAL"})
    assert team.name == "Lalitpur Patriots"
    player = service.register_player({"player_id": "l1", "name": "Sandeep Lamichhane", "role": "bowler"})
    assert player.role.value == "bowler"
    assert service.repository.get_player("l1").name == "Sandeep Lamichhane"

    service.register_player({"player_id": "l1", "name": "Sandeep Lamichhane", "role": "all_rounder"})
    assert service.repository.get_player("l1").role.value == "all_rounder"

    with pytest.raises(InvalidConfiguration):
        service.register_player({"player_id": "", "name": "Nobody"})
    with pytest.raises(InvalidConfiguration):
        service.register_team({"team_id": "X", "name": "X", "roster": ["x1", "x1"]})


def test_memberships_track_team_changes(service):
    service.register_team(KINGS)
    service.register_team(RHINOS)
    service.register_player({"player_id": "m1", "name": "Aasif Sheikh", "role": "wicket_keeper"})

    service.add_membership({"player_id": "m1", "team_id": "KTM",
                            "effective_from": date(2022, 1, 1), "effective_to": date(2023, 12, 31)})
    service.add_membership({"player_id": "m1", "team_id": "PKR", "effective_from": date(2024, 1, 1)})

    assert service.team_for_player("m1", date(2023, 6, 1)) == "KTM"
    assert service.team_for_player("m1", date(2024, 6, 1)) == "PKR"
    assert service.team_for_player("m1", date(2021, 6, 1)) is None
    assert service.repository.get_player("m1").team_id == "PKR"

    with pytest.raises(InvalidConfiguration):
        service.add_membership({"player_id": "m1", "team_id": "KTM", "effective_from": date(2024, 3, 1)})
    with pytest.raises(InvalidConfiguration):
        service.add_membership({"player_id": "m2", "team_id": "KTM",
                                "effective_from": date(2024, 3, 1), "effective_to": date(2024, 1, 1)})


def test_registered_names_appear_in_snapshot(service, live_match, kings_batting):
    service.register_player({"player_id": "k1", "name": "Kushal Malla"})
    kings_batting.deliver(2)
    batting = service.get_match_snapshot(live_match).innings[0].batting
    assert batting[0].name == "Kushal Malla"
    assert batting[1].name == "k2"


def test_list_matches_by_status(service, match_id):
    other = service.create_match([KINGS, RHINOS], "odi", None, MATCH_DAY)
    service.record_toss(other, "KTM", "bat")
    service.start_innings(other)

    live = service.list_matches(MatchStatus.LIVE)
    assert [view.match_id for view in live] == [other]
    assert len(service.list_matches()) == 2
