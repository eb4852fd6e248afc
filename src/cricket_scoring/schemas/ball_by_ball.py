"""Pydantic schemas for deliveries."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ExtraType(str, Enum):
    """Kinds of extras."""
    BYE = "bye"
    LEG_BYE = "leg_bye"
    WIDE = "wide"
    NO_BALL = "no_ball"


class DismissalKind(str, Enum):
    """Ways a batter can be dismissed."""
    BOWLED = "bowled"
    CAUGHT = "caught"
    LBW = "lbw"
    RUN_OUT = "run_out"
    STUMPED = "stumped"
    HIT_WICKET = "hit_wicket"
    OBSTRUCTING_FIELD = "obstructing_field"
    HANDLED_BALL = "handled_ball"
    HIT_BALL_TWICE = "hit_ball_twice"
    TIMED_OUT = "timed_out"


BOWLER_CREDITED = frozenset({
    DismissalKind.BOWLED,
    DismissalKind.CAUGHT,
    DismissalKind.LBW,
    DismissalKind.STUMPED,
    DismissalKind.HIT_WICKET,
})

# Possible off any delivery, including no-balls and free hits
ALWAYS_POSSIBLE = frozenset({
    DismissalKind.RUN_OUT,
    DismissalKind.OBSTRUCTING_FIELD,
    DismissalKind.HANDLED_BALL,
    DismissalKind.HIT_BALL_TWICE,
})

WIDE_POSSIBLE = ALWAYS_POSSIBLE | {DismissalKind.STUMPED, DismissalKind.HIT_WICKET}

NON_STRIKER_POSSIBLE = frozenset({DismissalKind.RUN_OUT, DismissalKind.OBSTRUCTING_FIELD})

# Penalty run awarded for a wide or a no-ball
ILLEGAL_DELIVERY_PENALTY = 1


class Extras(BaseModel):
    """Extras conceded on a delivery; wide and no-ball runs include the penalty."""

    model_config = ConfigDict(frozen=True)

    type: ExtraType
    runs: int = Field(1, ge=1, le=10, description="Total extras on the delivery")

    @property
    def is_illegal_delivery(self) -> bool:
        return self.type in (ExtraType.WIDE, ExtraType.NO_BALL)

    @property
    def runs_run(self) -> int:
        """Runs physically completed by the batters."""
        if self.is_illegal_delivery:
            return self.runs - ILLEGAL_DELIVERY_PENALTY
        return self.runs

    @property
    def charged_to_bowler(self) -> int:
        return self.runs if self.is_illegal_delivery else 0


class Wicket(BaseModel):
    """A dismissal on a delivery."""

    model_config = ConfigDict(frozen=True)

    player_out_id: str = Field(..., min_length=1, description="Dismissed batter")
    kind: DismissalKind
    fielder_id: Optional[str] = Field(None, description="Catcher, wicket-keeper or run-out fielder")

    @model_validator(mode="after")
    def validate_fielder(self):
        """Caught and stumped dismissals always name a fielder."""
        if self.kind in (DismissalKind.CAUGHT, DismissalKind.STUMPED) and not self.fielder_id:
            raise ValueError(f"{self.kind.value} dismissal requires a fielder")
        return self


class BallEvent(BaseModel):
    """A delivery as reported by the scorer."""

    model_config = ConfigDict(frozen=True)

    striker_id: str = Field(..., min_length=1)
    non_striker_id: str = Field(..., min_length=1)
    bowler_id: str = Field(..., min_length=1)
    runs_off_bat: int = Field(0, ge=0, le=7)
    extras: Optional[Extras] = None
    wicket: Optional[Wicket] = None

    @model_validator(mode="after")
    def validate_delivery(self):
        """Validate the parts of a delivery that do not depend on the match."""
        if self.striker_id == self.non_striker_id:
            raise ValueError("Striker and non-striker must be different players")
        if self.extras is not None and self.runs_off_bat:
            if self.extras.type in (ExtraType.WIDE, ExtraType.BYE, ExtraType.LEG_BYE):
                raise ValueError(f"No runs off the bat on a {self.extras.type.value}")
        if self.wicket is not None:
            if self.wicket.player_out_id not in (self.striker_id, self.non_striker_id):
                raise ValueError("Dismissed player must be one of the batters")
            if (
                self.wicket.player_out_id == self.non_striker_id
                and self.wicket.kind not in NON_STRIKER_POSSIBLE
            ):
                raise ValueError(f"Non-striker cannot be out {self.wicket.kind.value}")
        return self

    @property
    def is_legal(self) -> bool:
        return self.extras is None or not self.extras.is_illegal_delivery

    @property
    def extras_runs(self) -> int:
        return self.extras.runs if self.extras else 0

    @property
    def total_runs(self) -> int:
        return self.runs_off_bat + self.extras_runs

    @property
    def runs_run(self) -> int:
        """Runs completed between the wickets, which decide strike."""
        return self.runs_off_bat + (self.extras.runs_run if self.extras else 0)

    @property
    def runs_conceded(self) -> int:
        """Runs charged to the bowler's analysis."""
        return self.runs_off_bat + (self.extras.charged_to_bowler if self.extras else 0)


class Ball(BallEvent):
    """A recorded delivery. Immutable; corrections are recorded as new balls with the same seq."""

    seq: int = Field(..., ge=1, description="Position of the delivery in the innings")
    innings_number: int = Field(..., ge=1)
    over_number: int = Field(..., ge=0, description="0-based over number")
    ball_in_over: int = Field(..., ge=1, le=6, description="Legal ball number, not advanced by wides or no-balls")
    free_hit: bool = False
    revision: int = Field(0, ge=0, description="0 for the original record, >0 for corrections")

    def event(self) -> BallEvent:
        return BallEvent(
            striker_id=self.striker_id,
            non_striker_id=self.non_striker_id,
            bowler_id=self.bowler_id,
            runs_off_bat=self.runs_off_bat,
            extras=self.extras,
            wicket=self.wicket,
        )
