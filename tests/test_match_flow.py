"""End-to-end match flows through the public service."""

import pytest

from cricket_scoring.errors import (
    FirstInningsIncomplete,
    InvalidConfiguration,
    MatchNotFound,
    MatchNotLive,
    TossNotRecorded,
)
from cricket_scoring.models import InningsEndReason, MatchStatus, ResultType, WinMargin
from cricket_scoring.schemas import Team

from .conftest import KINGS, MATCH_DAY, RHINOS, InningsScorer, spread

KINGS_PLAN = spread(165, 120, wickets_at={10, 25, 40, 55, 70, 85, 100})
RHINOS_PLAN = spread(166, 112, wickets_at={20, 50, 80})


def test_t20_chase_won_by_wickets(service, live_match, kings_batting, rhinos_batting):
    kings_batting.play(KINGS_PLAN)

    view = service.get_match_snapshot(live_match)
    assert view.status == MatchStatus.INNINGS_BREAK
    first = view.innings[0]
    assert (first.runs, first.wickets, first.overs) == (165, 7, "20.0")
    assert first.end_reason == InningsEndReason.OVERS_COMPLETE
    assert view.status_text == "Innings break: Pokhara Rhinos needs 166 runs to win"

    chase = rhinos_batting()
    chase.play(RHINOS_PLAN[:70])
    view = service.get_match_snapshot(live_match)
    scored = sum(p for p in RHINOS_PLAN[:70] if p != "W")
    assert view.runs_needed == 166 - scored
    assert view.balls_remaining == 50
    assert view.status_text == f"Pokhara Rhinos needs {166 - scored} runs in 50 balls"
    assert view.required_run_rate == round((166 - scored) / 50 * 6, 2)

    chase.play(RHINOS_PLAN[70:])
    view = service.get_match_snapshot(live_match)
    assert view.status == MatchStatus.COMPLETED
    second = view.innings[1]
    assert (second.runs, second.wickets, second.overs) == (166, 3, "18.4")
    assert second.end_reason == InningsEndReason.TARGET_REACHED
    assert view.result.result_type == ResultType.WIN
    assert view.result.winner_team_id == "PKR"
    assert (view.result.margin, view.result.margin_type) == (7, WinMargin.WICKETS)
    assert view.result.summary == "Pokhara Rhinos won by 7 wickets"
    assert view.status_text == view.result.summary


def test_defended_total_wins_by_runs(service, live_match, kings_batting, rhinos_batting):
    kings_batting.play(spread(150, 120))
    chase = rhinos_batting()
    chase.play(spread(131, 120, wickets_at={5, 30}))

    result = service.get_match_snapshot(live_match).result
    assert result.winner_team_id == "KTM"
    assert (result.margin, result.margin_type) == (19, WinMargin.RUNS)
    assert result.summary == "Kathmandu Kings won by 19 runs"


def test_equal_scores_tie(service, live_match, kings_batting, rhinos_batting):
    kings_batting.play(spread(140, 120))
    rhinos_batting().play(spread(140, 120))

    view = service.get_match_snapshot(live_match)
    assert view.result.result_type == ResultType.TIE
    assert view.result.winner_team_id is None
    assert view.result.summary == "Match tied"


def test_all_out_ends_innings_at_team_size_minus_one(service):
    small_a = Team(team_id="A", name="Alpha", roster=["a1", "a2", "a3", "a4", "a5"])
    small_b = Team(team_id="B", name="Beta", roster=["b1", "b2", "b3", "b4", "b5"])
    match_id = service.create_match([small_a, small_b], "t20", None, MATCH_DAY)
    service.record_toss(match_id, "B", "bowl")
    service.start_innings(match_id)

    scorer = InningsScorer(service, match_id, small_a.roster, ["b4", "b5"])
    scorer.play([4, "W", 1, "W", "W", "W"])

    view = service.get_match_snapshot(match_id)
    assert view.status == MatchStatus.INNINGS_BREAK
    assert view.innings[0].wickets == 4
    assert view.innings[0].end_reason == InningsEndReason.ALL_OUT
    assert view.innings[0].runs == 5


def test_first_innings_all_out_chase_margin_uses_team_size(service):
    small_a = Team(team_id="A", name="Alpha", roster=["a1", "a2", "a3", "a4", "a5"])
    small_b = Team(team_id="B", name="Beta", roster=["b1", "b2", "b3", "b4", "b5"])
    match_id = service.create_match([small_a, small_b], "t20", None, MATCH_DAY)
    service.record_toss(match_id, "A", "bat")
    service.start_innings(match_id)
    InningsScorer(service, match_id, small_a.roster, ["b4", "b5"]).play(["W", "W", "W", "W"])

    service.start_innings(match_id)
    InningsScorer(service, match_id, small_b.roster, ["a4", "a5"]).play(["W", 1])

    result = service.get_match_snapshot(match_id).result
    assert result.winner_team_id == "B"
    assert (result.margin, result.margin_type) == (3, WinMargin.WICKETS)
    assert result.summary == "Beta won by 3 wickets"


def test_toss_decision_bowl_puts_opponent_in(service, match_id):
    service.record_toss(match_id, "KTM", "bowl")
    service.start_innings(match_id)

    view = service.get_match_snapshot(match_id)
    assert view.status == MatchStatus.LIVE
    assert view.innings[0].batting_team_id == "PKR"
    assert view.toss.winner_team_id == "KTM"


def test_start_innings_requires_toss(service, match_id):
    with pytest.raises(TossNotRecorded):
        service.start_innings(match_id)
    assert service.get_match_snapshot(match_id).status == MatchStatus.UPCOMING


@pytest.mark.parametrize("winner, decision", [("XYZ", "bat"), ("KTM", "field")])
def test_invalid_toss_is_rejected(service, match_id, winner, decision):
    with pytest.raises(TossNotRecorded):
        service.record_toss(match_id, winner, decision)
    assert service.get_match_snapshot(match_id).toss is None


def test_toss_cannot_be_recorded_after_play_starts(service, live_match):
    with pytest.raises(TossNotRecorded):
        service.record_toss(live_match, "PKR", "bat")


def test_second_innings_cannot_start_while_first_is_live(service, live_match, kings_batting):
    kings_batting.deliver(1)
    with pytest.raises(FirstInningsIncomplete):
        service.start_innings(live_match)


def test_declaration_sets_target(service, live_match, kings_batting):
    kings_batting.play([6, 4, 1, 0, 2])
    service.declare_innings(live_match)

    view = service.get_match_snapshot(live_match)
    assert view.status == MatchStatus.INNINGS_BREAK
    assert view.innings[0].end_reason == InningsEndReason.DECLARED

    service.start_innings(live_match)
    view = service.get_match_snapshot(live_match)
    assert view.innings[1].target == 14
    assert view.runs_needed == 14
    assert view.balls_remaining == 120


def test_declare_needs_live_match(service, match_id):
    with pytest.raises(MatchNotLive):
        service.declare_innings(match_id)


def test_abandoned_match_has_no_result(service, live_match, kings_batting):
    kings_batting.play([1, 2, 3])
    service.abandon_match(live_match, "rain")

    view = service.get_match_snapshot(live_match)
    assert view.status == MatchStatus.ABANDONED
    assert view.result.result_type == ResultType.NO_RESULT
    assert view.result.summary == "No result (rain)"
    with pytest.raises(MatchNotLive):
        kings_batting.deliver(1)
    with pytest.raises(MatchNotLive):
        service.abandon_match(live_match, "again")
    with pytest.raises(MatchNotLive):
        service.start_innings(live_match)


def test_upcoming_match_can_be_abandoned(service, match_id):
    service.abandon_match(match_id)
    view = service.get_match_snapshot(match_id)
    assert view.status == MatchStatus.ABANDONED
    assert view.result.summary == "No result"


def test_completed_match_rejects_more_balls(service, live_match, kings_batting, rhinos_batting):
    kings_batting.play(spread(20, 120))
    chase = rhinos_batting()
    chase.play([6, 6, 6, 4])
    assert service.get_match_snapshot(live_match).status == MatchStatus.COMPLETED

    with pytest.raises(MatchNotLive):
        chase.deliver(1)


def test_test_format_innings_only_ends_by_wickets_or_declaration(service):
    match_id = service.create_match([KINGS, RHINOS], "Test", "Kirtipur", MATCH_DAY)
    service.record_toss(match_id, "PKR", "bowl")
    service.start_innings(match_id)
    scorer = InningsScorer(service, match_id, KINGS.roster, ["p10", "p11"])
    scorer.play(spread(200, 60 * 6))

    view = service.get_match_snapshot(match_id)
    assert view.status == MatchStatus.LIVE
    assert view.innings[0].overs == "60.0"
    service.declare_innings(match_id)

    service.start_innings(match_id)
    view = service.get_match_snapshot(match_id)
    assert view.innings[1].target == 201
    assert view.balls_remaining is None
    assert view.status_text == "Pokhara Rhinos needs 201 runs to win"


def test_create_match_validation(service):
    with pytest.raises(InvalidConfiguration):
        service.create_match([KINGS], "t20", None, MATCH_DAY)
    with pytest.raises(InvalidConfiguration):
        service.create_match([KINGS, KINGS], "t20", None, MATCH_DAY)
    with pytest.raises(InvalidConfiguration):
        service.create_match([KINGS, RHINOS], "t10", None, MATCH_DAY)
    with pytest.raises(InvalidConfiguration):
        service.create_match(
            [KINGS, {"team_id": "X", "name": "X", "roster": ["x1", "x1"]}], "t20", None, MATCH_DAY
        )
    with pytest.raises(InvalidConfiguration):
        service.create_match([KINGS, {"team_id": "X", "name": "X", "roster": ["x1"]}], "t20", None, MATCH_DAY)
    with pytest.raises(InvalidConfiguration):
        service.create_match([KINGS, {"team_id": "X", "name": "X", "roster": ["k1", "x2"]}], "t20", None, MATCH_DAY)


def test_duplicate_match_id_is_rejected(service):
    service.create_match([KINGS, RHINOS], "odi", None, MATCH_DAY, match_id="final")
    with pytest.raises(InvalidConfiguration):
        service.create_match([KINGS, RHINOS], "odi", None, MATCH_DAY, match_id="final")


def test_unknown_match(service):
    with pytest.raises(MatchNotFound):
        service.get_match_snapshot("nope")
    with pytest.raises(MatchNotFound):
        service.record_toss("nope", "KTM", "bat")


def test_upcoming_snapshot(service, match_id):
    view = service.get_match_snapshot(match_id)
    assert view.status == MatchStatus.UPCOMING
    assert [t.team_id for t in view.teams] == ["KTM", "PKR"]
    assert view.status_text == "Match yet to begin"

    service.record_toss(match_id, "PKR", "bowl")
    view = service.get_match_snapshot(match_id)
    assert view.status_text == "Pokhara Rhinos won the toss and elected to bowl"
    assert view.events_applied == 2


def test_odi_innings_runs_fifty_overs(service):
    match_id = service.create_match([KINGS, RHINOS], "ODI", None, MATCH_DAY)
    service.record_toss(match_id, "KTM", "bat")
    service.start_innings(match_id)
    InningsScorer(service, match_id, KINGS.roster, ["p9", "p10", "p11"]).play([1] * 300)

    view = service.get_match_snapshot(match_id)
    assert view.status == MatchStatus.INNINGS_BREAK
    assert view.innings[0].overs == "50.0"
    assert view.innings[0].runs == 300

