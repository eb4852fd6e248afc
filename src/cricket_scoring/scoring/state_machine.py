"""Match lifecycle: toss, innings transitions, declarations and results.

    upcoming --start_innings--> live --innings ends--> innings_break
    innings_break --start_innings--> live --innings ends--> completed
    any non-terminal state --abandon--> abandoned
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from ..errors import FirstInningsIncomplete, MatchNotLive, TossNotRecorded
from ..models.matches import InningsEndReason, MatchStatus, ResultType, TossDecision, WinMargin
from ..schemas.matches import MatchResult, TossInfo
from .entities import Innings, Match
from .formatting import plural


class MatchStateMachine:
    """Owns every status transition of a Match."""

    # Toss

    def validate_toss(self, match: Match, winner_team_id: str, decision) -> TossInfo:
        if match.status != MatchStatus.UPCOMING:
            raise TossNotRecorded(
                f"The toss can only be recorded before play; match is {match.status.value}",
                match.match_id,
            )
        if winner_team_id not in match.team_ids:
            raise TossNotRecorded(f"{winner_team_id} is not playing in this match", match.match_id)
        try:
            decision = TossDecision(getattr(decision, "value", decision))
        except ValueError:
            raise TossNotRecorded(
                f"Toss decision must be 'bat' or 'bowl', got '{decision}'", match.match_id
            ) from None
        return TossInfo(winner_team_id=winner_team_id, decision=decision)

    def record_toss(self, match: Match, toss: TossInfo) -> None:
        match.toss = toss
        logger.info(
            f"match={match.match_id} toss won by {toss.winner_team_id}, elected to {toss.decision.value}"
        )

    # Innings

    def validate_start_innings(self, match: Match) -> None:
        if match.status == MatchStatus.UPCOMING:
            if match.toss is None:
                raise TossNotRecorded("Record the toss before starting the first innings", match.match_id)
            return
        if match.status == MatchStatus.INNINGS_BREAK:
            return
        if match.status == MatchStatus.LIVE:
            raise FirstInningsIncomplete(
                f"Innings {match.current_innings.number} is still in progress", match.match_id
            )
        raise MatchNotLive(f"Match {match.match_id} is {match.status.value}", match.match_id)

    def start_innings(self, match: Match) -> Innings:
        previous = match.current_innings
        if previous is None:
            toss = match.toss
            batting = (
                toss.winner_team_id
                if toss.decision == TossDecision.BAT
                else match.opponent(toss.winner_team_id)
            )
            target = None
        else:
            batting = previous.bowling_team_id
            target = previous.runs + 1
        innings = Innings(
            number=len(match.innings) + 1,
            batting_team_id=batting,
            bowling_team_id=match.opponent(batting),
            team_size=match.team_size(batting),
            max_legal_balls=match.rules.max_legal_balls,
            target=target,
        )
        match.innings.append(innings)
        match.status = MatchStatus.LIVE
        logger.info(
            f"match={match.match_id} innings {innings.number} started: {batting} batting"
            + (f", target {target}" if target is not None else "")
        )
        return innings

    def check_innings_end(self, innings: Innings) -> Optional[InningsEndReason]:
        """Why the innings is over now, or None while it continues."""
        if innings.target is not None and innings.runs >= innings.target:
            return InningsEndReason.TARGET_REACHED
        if innings.wickets >= innings.all_out_wickets:
            return InningsEndReason.ALL_OUT
        if innings.max_legal_balls is not None and innings.legal_balls >= innings.max_legal_balls:
            return InningsEndReason.OVERS_COMPLETE
        return None

    def after_delivery(self, match: Match) -> Optional[InningsEndReason]:
        innings = match.current_innings
        reason = self.check_innings_end(innings)
        if reason is not None:
            self.end_innings(match, reason)
        return reason

    def end_innings(self, match: Match, reason: InningsEndReason) -> None:
        innings = match.current_innings
        innings.end_reason = reason
        innings.free_hit_pending = False
        logger.info(
            f"match={match.match_id} innings {innings.number} closed ({reason.value}) at "
            f"{innings.runs}/{innings.wickets}"
        )
        if innings.number < match.rules.innings_count:
            match.status = MatchStatus.INNINGS_BREAK
            return
        match.status = MatchStatus.COMPLETED
        match.result = self.compute_result(match)
        logger.info(f"match={match.match_id} completed: {match.result.summary}")

    def validate_declare(self, match: Match) -> None:
        if match.status != MatchStatus.LIVE:
            raise MatchNotLive(
                f"Only a live innings can be declared; match is {match.status.value}", match.match_id
            )

    def declare(self, match: Match) -> None:
        self.end_innings(match, InningsEndReason.DECLARED)

    # Abandonment

    def validate_abandon(self, match: Match) -> None:
        if match.is_terminal:
            raise MatchNotLive(f"Match {match.match_id} is already {match.status.value}", match.match_id)

    def abandon(self, match: Match, reason: Optional[str] = None) -> None:
        match.status = MatchStatus.ABANDONED
        match.abandon_reason = reason
        summary = f"No result ({reason})" if reason else "No result"
        match.result = MatchResult(result_type=ResultType.NO_RESULT, summary=summary)
        logger.warning(f"match={match.match_id} abandoned: {reason or 'no reason given'}")

    # Result

    def compute_result(self, match: Match) -> MatchResult:
        first, second = match.innings[0], match.innings[-1]
        if second.target is not None and second.runs >= second.target:
            margin = second.wickets_in_hand
            winner = second.batting_team_id
            return MatchResult(
                result_type=ResultType.WIN,
                winner_team_id=winner,
                margin=margin,
                margin_type=WinMargin.WICKETS,
                summary=f"{match.team_name(winner)} won by {plural(margin, 'wicket')}",
            )
        if first.runs > second.runs:
            margin = first.runs - second.runs
            winner = first.batting_team_id
            return MatchResult(
                result_type=ResultType.WIN,
                winner_team_id=winner,
                margin=margin,
                margin_type=WinMargin.RUNS,
                summary=f"{match.team_name(winner)} won by {plural(margin, 'run')}",
            )
        return MatchResult(result_type=ResultType.TIE, summary="Match tied")
