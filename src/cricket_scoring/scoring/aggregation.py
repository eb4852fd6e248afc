"""Statistics aggregation: fold completed matches into career and season stats.

Per-match deltas are computed from the effective deliveries only, so a
corrected ball contributes its latest revision. Folding is a pure function
of (current stats, delta); the repository applies it inside the same
transaction that writes the idempotency marker.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from loguru import logger

from ..errors import MatchNotCompleted
from ..models.matches import InningsEndReason, MatchStatus, ResultType
from ..schemas.ball_by_ball import BOWLER_CREDITED, DismissalKind, ExtraType
from ..schemas.player_stats import (
    CareerStat,
    PlayerMatchStats,
    ReconcileIssue,
    TeamMatchResult,
    TeamSeasonStats,
)
from .entities import Match
from .metrics import normalize_innings_balls

FIFTY = 50
HUNDRED = 100

_FIELDING_COUNTERS = {
    DismissalKind.CAUGHT: "catches",
    DismissalKind.STUMPED: "stumpings",
    DismissalKind.RUN_OUT: "run_outs",
}


def player_match_stats(match: Match) -> Dict[str, PlayerMatchStats]:
    """Per-player contributions to one match, keyed by player id."""
    deltas: Dict[str, PlayerMatchStats] = {}

    def entry(player_id: str, team_id: str) -> PlayerMatchStats:
        if player_id not in deltas:
            deltas[player_id] = PlayerMatchStats(
                player_id=player_id, match_id=match.match_id, team_id=team_id
            )
        return deltas[player_id]

    for innings in match.innings:
        batting, bowling = innings.batting_team_id, innings.bowling_team_id
        for over in innings.overs:
            if not over.balls:
                continue
            conceded = 0
            bowler = entry(over.bowler_id, bowling)
            bowler.bowled = True
            for original in over.balls:
                ball = innings.corrections.get(original.seq, original)
                striker = entry(ball.striker_id, batting)
                striker.batted = True
                entry(ball.non_striker_id, batting).batted = True

                striker.runs += ball.runs_off_bat
                if ball.extras is None or ball.extras.type != ExtraType.WIDE:
                    striker.balls_faced += 1
                if ball.runs_off_bat == 4:
                    striker.fours += 1
                elif ball.runs_off_bat == 6:
                    striker.sixes += 1

                if ball.is_legal:
                    bowler.balls_bowled += 1
                bowler.runs_conceded += ball.runs_conceded
                conceded += ball.runs_conceded

                wicket = ball.wicket
                if wicket is None:
                    continue
                entry(wicket.player_out_id, batting).out = True
                if wicket.kind in BOWLER_CREDITED:
                    bowler.wickets += 1
                counter = _FIELDING_COUNTERS.get(wicket.kind)
                if counter and wicket.fielder_id:
                    fielder = entry(wicket.fielder_id, bowling)
                    setattr(fielder, counter, getattr(fielder, counter) + 1)
            if over.is_complete and conceded == 0:
                bowler.maidens += 1
    return deltas


def team_match_results(match: Match) -> List[TeamMatchResult]:
    """What the match adds to each side's season record, with NRR-normalised balls."""
    result = match.result
    overs_limit = match.rules.overs_limit
    totals = {team_id: [0, 0, 0, 0] for team_id in match.team_ids}
    for innings in match.innings:
        balls = normalize_innings_balls(
            innings.legal_balls, innings.end_reason == InningsEndReason.ALL_OUT, overs_limit
        )
        totals[innings.batting_team_id][0] += innings.runs
        totals[innings.batting_team_id][1] += balls
        totals[innings.bowling_team_id][2] += innings.runs
        totals[innings.bowling_team_id][3] += balls

    results = []
    for team_id, (runs_for, balls_faced, runs_against, balls_bowled) in totals.items():
        results.append(TeamMatchResult(
            team_id=team_id,
            match_id=match.match_id,
            season=match.season,
            result=result.result_type,
            won=result.winner_team_id == team_id,
            runs_for=runs_for,
            balls_faced=balls_faced,
            runs_against=runs_against,
            balls_bowled=balls_bowled,
        ))
    return results


def _better_figures(wickets: int, runs: int, best_wickets: int, best_runs) -> bool:
    if best_runs is None:
        return True
    return wickets > best_wickets or (wickets == best_wickets and runs < best_runs)


def fold_career(stat: CareerStat, delta: PlayerMatchStats) -> CareerStat:
    """Add one match's delta to a player's career record."""
    data = stat.counters()
    data["matches"] += 1
    if delta.batted:
        data["batting_innings"] += 1
        data["runs"] += delta.runs
        data["balls_faced"] += delta.balls_faced
        data["fours"] += delta.fours
        data["sixes"] += delta.sixes
        data["high_score"] = max(data["high_score"], delta.runs)
        if not delta.out:
            data["not_outs"] += 1
        if delta.runs >= HUNDRED:
            data["hundreds"] += 1
        elif delta.runs >= FIFTY:
            data["fifties"] += 1
        if delta.out and delta.runs == 0:
            data["ducks"] += 1
    if delta.bowled:
        data["bowling_innings"] += 1
        data["balls_bowled"] += delta.balls_bowled
        data["runs_conceded"] += delta.runs_conceded
        data["wickets"] += delta.wickets
        data["maidens"] += delta.maidens
        if _better_figures(delta.wickets, delta.runs_conceded, data["best_wickets"], data["best_runs"]):
            data["best_wickets"] = delta.wickets
            data["best_runs"] = delta.runs_conceded
    data["catches"] += delta.catches
    data["stumpings"] += delta.stumpings
    data["run_outs"] += delta.run_outs
    return CareerStat(**data)


def fold_team(record: TeamSeasonStats, delta: TeamMatchResult) -> TeamSeasonStats:
    """Add one match's result to a team's season record."""
    data = record.counters()
    data["played"] += 1
    if delta.result == ResultType.NO_RESULT:
        data["no_result"] += 1
    elif delta.result == ResultType.TIE:
        data["tied"] += 1
    elif delta.won:
        data["won"] += 1
    else:
        data["lost"] += 1
    data["runs_for"] += delta.runs_for
    data["balls_faced"] += delta.balls_faced
    data["runs_against"] += delta.runs_against
    data["balls_bowled"] += delta.balls_bowled
    data["highest_total"] = max(data["highest_total"], delta.runs_for)
    return TeamSeasonStats(**data)


def replay_career_stats(
    matches: Iterable[Match],
) -> Tuple[Dict[str, CareerStat], Dict[Tuple[str, int], TeamSeasonStats]]:
    """Recompute every career and season record from scratch."""
    careers: Dict[str, CareerStat] = {}
    seasons: Dict[Tuple[str, int], TeamSeasonStats] = {}
    for match in matches:
        for player_id, delta in player_match_stats(match).items():
            current = careers.get(player_id) or CareerStat(player_id=player_id)
            careers[player_id] = fold_career(current, delta)
        for delta in team_match_results(match):
            key = (delta.team_id, delta.season)
            current = seasons.get(key) or TeamSeasonStats(team_id=delta.team_id, season=delta.season)
            seasons[key] = fold_team(current, delta)
    return careers, seasons


def _compare(subject: str, key: str, stored: dict, replayed: dict) -> List[ReconcileIssue]:
    issues = []
    for name in sorted(set(stored) | set(replayed)):
        if name in ("player_id", "team_id", "season"):
            continue
        if stored.get(name) != replayed.get(name):
            issues.append(ReconcileIssue(
                subject=subject, key=key, field=name,
                stored=stored.get(name), replayed=replayed.get(name),
            ))
    return issues


class AggregationEngine:
    """Applies finalized matches to the statistics store exactly once."""

    def __init__(self, repository):
        self.repository = repository

    def finalize(self, match: Match) -> bool:
        """Fold a completed match into the stats store; False if it was already folded."""
        if match.status != MatchStatus.COMPLETED:
            raise MatchNotCompleted(
                f"Match {match.match_id} is {match.status.value}; only completed matches are aggregated",
                match.match_id,
            )
        players = player_match_stats(match)
        teams = team_match_results(match)
        applied = self.repository.apply_match_deltas(match.match_id, list(players.values()), teams)
        if applied:
            logger.info(
                f"match={match.match_id} aggregated: {len(players)} players, {len(teams)} team records"
            )
        else:
            logger.info(f"match={match.match_id} already aggregated, skipping")
        return applied

    def reconcile(self, matches: Iterable[Match]) -> List[ReconcileIssue]:
        """Compare the cached stats with a fresh replay of the given matches."""
        careers, seasons = replay_career_stats(matches)
        stored_careers = self.repository.all_career_stats()
        stored_seasons = self.repository.all_team_records()

        issues: List[ReconcileIssue] = []
        for player_id in sorted(set(careers) | set(stored_careers)):
            stored = stored_careers[player_id].counters() if player_id in stored_careers else {}
            replayed = careers[player_id].counters() if player_id in careers else {}
            issues.extend(_compare("player", player_id, stored, replayed))
        for key in sorted(set(seasons) | set(stored_seasons)):
            label = f"{key[0]}:{key[1]}"
            stored = stored_seasons[key].counters() if key in stored_seasons else {}
            replayed = seasons[key].counters() if key in seasons else {}
            issues.extend(_compare("team", label, stored, replayed))

        if issues:
            logger.warning(f"Reconcile found {len(issues)} mismatched statistics")
        else:
            logger.info("Reconcile found no mismatches")
        return issues
