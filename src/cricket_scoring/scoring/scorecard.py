"""Read projections: scorecards, the live strip and the published MatchView."""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Tuple

from ..models.matches import MatchStatus, TossDecision
from ..schemas.ball_by_ball import BOWLER_CREDITED, Ball, DismissalKind, ExtraType, Wicket
from ..schemas.matches import (
    BattingLine,
    BowlingLine,
    ExtrasBreakdown,
    FallOfWicket,
    InningsView,
    MatchView,
    Partnership,
)
from ..schemas.teams import TeamRef
from . import metrics
from .entities import Innings, Match
from .formatting import ball_token, chase_text, format_overs, format_score


def dismissal_text(wicket: Wicket, bowler: str, names: Mapping[str, str]) -> str:
    """Scorecard dismissal column: "c Rohit b Bumrah", "lbw b Shami", "run out (Jadeja)"."""
    fielder = names.get(wicket.fielder_id, wicket.fielder_id) if wicket.fielder_id else None
    kind = wicket.kind
    if kind == DismissalKind.BOWLED:
        return f"b {bowler}"
    if kind == DismissalKind.CAUGHT:
        if wicket.fielder_id and fielder == bowler:
            return f"c & b {bowler}"
        return f"c {fielder} b {bowler}"
    if kind == DismissalKind.LBW:
        return f"lbw b {bowler}"
    if kind == DismissalKind.STUMPED:
        return f"st {fielder} b {bowler}"
    if kind == DismissalKind.HIT_WICKET:
        return f"hit wicket b {bowler}"
    if kind == DismissalKind.RUN_OUT:
        return f"run out ({fielder})" if fielder else "run out"
    return kind.value.replace("_", " ")


def batting_card(innings: Innings, names: Mapping[str, str]) -> List[BattingLine]:
    lines: Dict[str, BattingLine] = {}

    def line(player_id: str) -> BattingLine:
        if player_id not in lines:
            lines[player_id] = BattingLine(player_id=player_id, name=names.get(player_id, player_id))
        return lines[player_id]

    for ball in innings.effective_balls():
        striker = line(ball.striker_id)
        line(ball.non_striker_id)
        if ball.extras is None or ball.extras.type != ExtraType.WIDE:
            striker.balls += 1
        striker.runs += ball.runs_off_bat
        if ball.runs_off_bat == 4:
            striker.fours += 1
        elif ball.runs_off_bat == 6:
            striker.sixes += 1
        if ball.wicket is not None:
            out = line(ball.wicket.player_out_id)
            out.is_out = True
            out.dismissal = dismissal_text(ball.wicket, names.get(ball.bowler_id, ball.bowler_id), names)

    for batting in lines.values():
        batting.strike_rate = round(metrics.strike_rate(batting.runs, batting.balls), 2)
    return list(lines.values())


def bowling_card(
    innings: Innings, names: Mapping[str, str], quota: Optional[int] = None
) -> List[BowlingLine]:
    lines: Dict[str, BowlingLine] = {}
    for over in innings.overs:
        # An over opened but never bowled, e.g. before a declaration
        if not over.balls:
            continue
        bowler = lines.get(over.bowler_id)
        if bowler is None:
            bowler = lines[over.bowler_id] = BowlingLine(
                player_id=over.bowler_id, name=names.get(over.bowler_id, over.bowler_id)
            )
        conceded = 0
        for original in over.balls:
            ball = innings.corrections.get(original.seq, original)
            if ball.is_legal:
                bowler.balls += 1
            bowler.runs += ball.runs_conceded
            conceded += ball.runs_conceded
            if ball.wicket is not None and ball.wicket.kind in BOWLER_CREDITED:
                bowler.wickets += 1
            if ball.extras is not None and ball.extras.type == ExtraType.WIDE:
                bowler.wides += 1
            elif ball.extras is not None and ball.extras.type == ExtraType.NO_BALL:
                bowler.no_balls += 1
        if over.is_complete and conceded == 0:
            bowler.maidens += 1

    for bowling in lines.values():
        bowling.overs = format_overs(bowling.balls)
        bowling.economy = round(metrics.economy(bowling.runs, bowling.balls), 2)
        if quota is not None:
            bowling.overs_remaining = max(quota - bowling.balls // metrics.BALLS_PER_OVER, 0)
    return list(lines.values())


def current_batters(innings: Innings) -> Tuple[Optional[str], Optional[str]]:
    """Who is on strike for the next delivery, derived from the last one.

    Odd runs completed swap the batters, as does the end of an over. A
    dismissed batter's end is left empty until the next delivery names a
    replacement.
    """
    last: Optional[Ball] = innings.last_ball()
    if last is None or innings.is_complete:
        return None, None
    striker, non_striker = last.striker_id, last.non_striker_id
    if last.runs_run % 2 == 1:
        striker, non_striker = non_striker, striker
    if last.wicket is not None:
        if last.wicket.player_out_id == striker:
            striker = None
        else:
            non_striker = None
    last_over = next(over for over in reversed(innings.overs) if over.balls)
    if last_over.is_complete:
        striker, non_striker = non_striker, striker
    return striker, non_striker


def fall_of_last_wicket(innings: Innings, names: Mapping[str, str]) -> Optional[FallOfWicket]:
    runs: Dict[str, int] = {}
    faced: Dict[str, int] = {}
    total = wickets = 0
    fallen = None
    for ball in innings.effective_balls():
        runs[ball.striker_id] = runs.get(ball.striker_id, 0) + ball.runs_off_bat
        if ball.extras is None or ball.extras.type != ExtraType.WIDE:
            faced[ball.striker_id] = faced.get(ball.striker_id, 0) + 1
        total += ball.total_runs
        if ball.wicket is None:
            continue
        wickets += 1
        out = ball.wicket.player_out_id
        fallen = FallOfWicket(
            player_id=out,
            name=names.get(out, out),
            runs=runs.get(out, 0),
            balls=faced.get(out, 0),
            dismissal=dismissal_text(ball.wicket, names.get(ball.bowler_id, ball.bowler_id), names),
            over=f"{ball.over_number}.{ball.ball_in_over}",
            score=format_score(total, wickets),
        )
    return fallen


def current_partnership(innings: Innings) -> Partnership:
    """Runs and legal balls since the last wicket; the wicket ball belongs to the broken stand."""
    partnership = Partnership()
    for ball in innings.effective_balls():
        if ball.wicket is not None:
            partnership = Partnership()
            continue
        partnership.runs += ball.total_runs
        if ball.is_legal:
            partnership.balls += 1
    return partnership


def innings_view(innings: Innings, names: Mapping[str, str], quota: Optional[int] = None) -> InningsView:
    extras = ExtrasBreakdown(
        byes=innings.extras[ExtraType.BYE],
        leg_byes=innings.extras[ExtraType.LEG_BYE],
        wides=innings.extras[ExtraType.WIDE],
        no_balls=innings.extras[ExtraType.NO_BALL],
    )
    return InningsView(
        number=innings.number,
        batting_team_id=innings.batting_team_id,
        bowling_team_id=innings.bowling_team_id,
        runs=innings.runs,
        wickets=innings.wickets,
        legal_balls=innings.legal_balls,
        overs=format_overs(innings.legal_balls),
        run_rate=round(metrics.run_rate(innings.runs, innings.legal_balls), 2),
        extras=extras,
        extras_total=extras.total,
        target=innings.target,
        is_complete=innings.is_complete,
        end_reason=innings.end_reason,
        batting=batting_card(innings, names),
        bowling=bowling_card(innings, names, quota),
    )


def status_text(match: Match) -> str:
    """One-line headline shown above the scorecard."""
    if match.result is not None:
        return match.result.summary
    innings = match.current_innings
    if match.status == MatchStatus.UPCOMING:
        if match.toss is None:
            return "Match yet to begin"
        choice = "bat" if match.toss.decision == TossDecision.BAT else "bowl"
        return f"{match.team_name(match.toss.winner_team_id)} won the toss and elected to {choice}"
    if match.status == MatchStatus.INNINGS_BREAK:
        chasing = match.team_name(innings.bowling_team_id)
        return f"Innings break: {chasing} needs {innings.runs + 1} runs to win"
    batting = match.team_name(innings.batting_team_id)
    if innings.target is not None:
        return chase_text(batting, innings.runs_needed, innings.balls_remaining)
    return (
        f"{batting} {format_score(innings.runs, innings.wickets)} "
        f"({format_overs(innings.legal_balls)} ov)"
    )


def build_match_view(match: Match, names: Mapping[str, str], recent_window: int = 6) -> MatchView:
    """Project the aggregate into the immutable snapshot readers see."""
    innings = match.current_innings
    view = dict(
        match_id=match.match_id,
        format=match.format,
        status=match.status,
        venue=match.venue,
        scheduled_at=match.scheduled_at,
        teams=[TeamRef(team_id=t.team_id, name=t.name) for t in match.teams],
        toss=match.toss,
        innings=[innings_view(i, names, match.rules.bowler_overs_quota) for i in match.innings],
        status_text=status_text(match),
        result=match.result,
        events_applied=match.events_applied,
    )
    if innings is not None:
        balls = list(innings.effective_balls())
        striker, non_striker = current_batters(innings)
        over = innings.current_over
        view.update(
            current_innings=innings.number,
            striker_id=striker,
            non_striker_id=non_striker,
            bowler_id=over.bowler_id if over is not None and not over.is_complete else None,
            free_hit=innings.free_hit_pending,
            recent_balls=[ball_token(b) for b in balls[-recent_window:]] if recent_window > 0 else [],
            current_run_rate=round(metrics.run_rate(innings.runs, innings.legal_balls), 2),
            last_wicket=fall_of_last_wicket(innings, names),
            partnership=current_partnership(innings),
        )
        if innings.target is not None and not innings.is_complete:
            view.update(runs_needed=innings.runs_needed, balls_remaining=innings.balls_remaining)
            if innings.balls_remaining is not None:
                rate = metrics.required_run_rate(innings.runs_needed, innings.balls_remaining)
                if metrics.is_unachievable(rate):
                    view.update(chase_unachievable=True)
                else:
                    view.update(required_run_rate=round(rate, 2))
    return MatchView(**view)
