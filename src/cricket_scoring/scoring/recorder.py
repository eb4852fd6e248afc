"""Ball event recorder: append-only ingestion of deliveries into the open over.

Each operation is split into a validating step that raises without touching
the match and an applying step that cannot fail, so a rejected delivery
never leaves a half-updated innings behind.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from ..errors import InvalidBallEvent, MatchNotLive, OverComplete, OverInProgress, WrongBowler
from ..models.matches import MatchStatus
from ..schemas.ball_by_ball import (
    ALWAYS_POSSIBLE,
    WIDE_POSSIBLE,
    Ball,
    BallEvent,
    ExtraType,
)
from .entities import Innings, Match, Over


@dataclass(frozen=True)
class PreparedBall:
    """A validated delivery waiting to be appended."""
    ball: Ball
    opens_over: bool


def _free_hit_pending_before(innings: Innings, seq: int) -> bool:
    """Whether a free hit was in force when delivery `seq` was bowled."""
    pending = False
    for ball in innings.effective_balls():
        if ball.seq == seq:
            break
        if ball.is_legal:
            pending = False
        if ball.extras is not None and ball.extras.type == ExtraType.NO_BALL:
            pending = True
    return pending


def _delivery_class(event: BallEvent) -> str:
    if event.extras is not None and event.extras.is_illegal_delivery:
        return event.extras.type.value
    return "legal"


class BallRecorder:
    """Validates deliveries against the match state and appends them."""

    def _open_innings(self, match: Match) -> Innings:
        if match.status != MatchStatus.LIVE:
            raise MatchNotLive(
                f"Match {match.match_id} is {match.status.value}, not live", match.match_id
            )
        innings = match.current_innings
        if innings is None or innings.is_complete:
            raise MatchNotLive(f"Match {match.match_id} has no innings in progress", match.match_id)
        return innings

    def _validate_participants(self, match: Match, innings: Innings, event: BallEvent) -> None:
        batting = match.roster(innings.batting_team_id)
        bowling = match.roster(innings.bowling_team_id)
        for batter in (event.striker_id, event.non_striker_id):
            if batting and batter not in batting:
                raise InvalidBallEvent(
                    f"{batter} is not in the batting side {innings.batting_team_id}", match.match_id
                )
            if batter in innings.dismissed:
                raise InvalidBallEvent(f"{batter} has already been dismissed", match.match_id)
        if bowling and event.bowler_id not in bowling:
            raise WrongBowler(
                f"{event.bowler_id} is not in the bowling side {innings.bowling_team_id}", match.match_id
            )
        if event.bowler_id in (event.striker_id, event.non_striker_id):
            raise InvalidBallEvent("The bowler cannot also be batting", match.match_id)
        fielder = event.wicket.fielder_id if event.wicket else None
        if fielder and bowling and fielder not in bowling:
            raise InvalidBallEvent(
                f"Fielder {fielder} is not in the bowling side {innings.bowling_team_id}", match.match_id
            )

    def _validate_dismissal(self, match: Match, event: BallEvent, free_hit: bool) -> None:
        if event.wicket is None:
            return
        kind = event.wicket.kind
        extra_type = event.extras.type if event.extras else None
        if extra_type == ExtraType.NO_BALL or free_hit:
            allowed = ALWAYS_POSSIBLE
            context = "a no-ball" if extra_type == ExtraType.NO_BALL else "a free hit"
        elif extra_type == ExtraType.WIDE:
            allowed = WIDE_POSSIBLE
            context = "a wide"
        else:
            return
        if kind not in allowed:
            raise InvalidBallEvent(f"A batter cannot be out {kind.value} off {context}", match.match_id)

    def prepare(self, match: Match, event: BallEvent, auto_advance: bool = False) -> PreparedBall:
        """Validate a delivery and build the Ball it will become."""
        innings = self._open_innings(match)
        over = innings.current_over
        opens_over = False
        if over is None:
            # The first delivery of an innings opens over 0 for its bowler
            opens_over = True
        elif over.is_complete:
            if not auto_advance:
                raise OverComplete(
                    f"Over {over.number + 1} is complete; start the next over first", match.match_id
                )
            if event.bowler_id == over.bowler_id:
                raise WrongBowler(
                    f"{event.bowler_id} bowled the previous over and cannot bowl the next one",
                    match.match_id,
                )
            opens_over = True
        elif event.bowler_id != over.bowler_id:
            raise WrongBowler(
                f"Over {over.number + 1} is being bowled by {over.bowler_id}, not {event.bowler_id}",
                match.match_id,
            )

        self._validate_participants(match, innings, event)
        free_hit = innings.free_hit_pending
        self._validate_dismissal(match, event, free_hit)

        if opens_over:
            over_number = over.number + 1 if over is not None else 0
            legal_so_far = 0
        else:
            over_number = over.number
            legal_so_far = over.legal_count

        ball = Ball(
            **event.model_dump(),
            seq=innings.deliveries + 1,
            innings_number=innings.number,
            over_number=over_number,
            ball_in_over=legal_so_far + 1,
            free_hit=free_hit and event.is_legal,
        )
        return PreparedBall(ball=ball, opens_over=opens_over)

    def apply(self, match: Match, prepared: PreparedBall) -> Ball:
        """Append a prepared delivery and update the running totals."""
        innings = match.current_innings
        ball = prepared.ball
        if prepared.opens_over:
            self.open_over(innings, ball.bowler_id)
        over = innings.current_over
        over.balls.append(ball)
        innings.deliveries += 1
        innings.count(ball)
        if ball.is_legal:
            over.legal_count += 1
            innings.legal_balls += 1
            innings.free_hit_pending = False
        if ball.extras is not None and ball.extras.type == ExtraType.NO_BALL:
            innings.free_hit_pending = True
        if ball.wicket is not None:
            innings.dismissed.add(ball.wicket.player_out_id)
        logger.debug(
            f"match={match.match_id} inns={innings.number} {ball.over_number}.{ball.ball_in_over} "
            f"+{ball.total_runs} total={innings.runs}/{innings.wickets}"
        )
        return ball

    def validate_next_over(self, match: Match, bowler_id: str) -> None:
        innings = self._open_innings(match)
        over = innings.current_over
        if over is not None and not over.is_complete:
            raise OverInProgress(
                f"Over {over.number + 1} has {over.legal_count} legal balls; it is not finished",
                match.match_id,
            )
        if over is not None and over.bowler_id == bowler_id:
            raise WrongBowler(
                f"{bowler_id} bowled the previous over and cannot bowl the next one", match.match_id
            )
        bowling = match.roster(innings.bowling_team_id)
        if bowling and bowler_id not in bowling:
            raise WrongBowler(
                f"{bowler_id} is not in the bowling side {innings.bowling_team_id}", match.match_id
            )

    def open_over(self, innings: Innings, bowler_id: str) -> Over:
        current = innings.current_over
        over = Over(
            innings_number=innings.number,
            number=current.number + 1 if current is not None else 0,
            bowler_id=bowler_id,
        )
        innings.overs.append(over)
        return over

    def prepare_correction(self, match: Match, seq: int, event: BallEvent) -> Ball:
        """Validate a compensating event for an already recorded delivery."""
        innings = self._open_innings(match)
        original = innings.find_ball(seq)
        if original is None:
            raise InvalidBallEvent(
                f"No delivery #{seq} in innings {innings.number}", match.match_id
            )
        if (event.striker_id, event.non_striker_id, event.bowler_id) != (
            original.striker_id, original.non_striker_id, original.bowler_id
        ):
            raise InvalidBallEvent("A correction cannot change the batters or the bowler", match.match_id)
        if _delivery_class(event) != _delivery_class(original):
            raise InvalidBallEvent(
                f"A correction cannot turn a {_delivery_class(original)} delivery into a "
                f"{_delivery_class(event)} one",
                match.match_id,
            )
        original_out: Optional[str] = original.wicket.player_out_id if original.wicket else None
        corrected_out: Optional[str] = event.wicket.player_out_id if event.wicket else None
        if original_out != corrected_out:
            raise InvalidBallEvent("A correction cannot add, remove or move a dismissal", match.match_id)
        self._validate_participants_for_correction(match, innings, event)
        self._validate_dismissal(match, event, _free_hit_pending_before(innings, seq))
        return Ball(
            **event.model_dump(),
            seq=original.seq,
            innings_number=original.innings_number,
            over_number=original.over_number,
            ball_in_over=original.ball_in_over,
            free_hit=original.free_hit,
            revision=original.revision + 1,
        )

    def _validate_participants_for_correction(self, match: Match, innings: Innings, event: BallEvent) -> None:
        fielder = event.wicket.fielder_id if event.wicket else None
        bowling = match.roster(innings.bowling_team_id)
        if fielder and bowling and fielder not in bowling:
            raise InvalidBallEvent(
                f"Fielder {fielder} is not in the bowling side {innings.bowling_team_id}", match.match_id
            )

    def apply_correction(self, match: Match, corrected: Ball) -> Ball:
        innings = match.current_innings
        previous = innings.find_ball(corrected.seq)
        innings.count(previous, -1)
        innings.count(corrected)
        innings.corrections[corrected.seq] = corrected
        logger.info(
            f"match={match.match_id} inns={innings.number} delivery #{corrected.seq} corrected "
            f"({previous.total_runs} -> {corrected.total_runs} runs)"
        )
        return corrected
