"""Pydantic schemas for teams, players and memberships."""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.players import PlayerRole


class Player(BaseModel):
    """A player; identity is fixed, role and team may change over seasons."""

    model_config = ConfigDict(from_attributes=True)

    player_id: str = Field(..., min_length=1, max_length=64, description="Player ID")
    name: str = Field(..., min_length=1, max_length=100, description="Player name")
    role: PlayerRole = Field(PlayerRole.BATSMAN, description="Playing role")
    team_id: Optional[str] = Field(None, max_length=64, description="Current team ID")


class Team(BaseModel):
    """A team and the ids of its squad."""

    model_config = ConfigDict(from_attributes=True)

    team_id: str = Field(..., min_length=1, max_length=64, description="Team ID")
    name: str = Field(..., min_length=1, max_length=100, description="Team name")
    short_name: Optional[str] = Field(None, max_length=10, description="Short team name")
    roster: List[str] = Field(default_factory=list, description="Player IDs in the squad")

    @field_validator("roster")
    @classmethod
    def validate_unique_roster(cls, v):
        """Validate that the roster lists each player once."""
        if len(set(v)) != len(v):
            raise ValueError("Roster must not contain duplicate player IDs")
        return v


class TeamRef(BaseModel):
    """Lightweight team reference used in projections."""

    team_id: str
    name: str


class TeamMembership(BaseModel):
    """A player's membership of a team between two dates."""

    model_config = ConfigDict(from_attributes=True)

    player_id: str = Field(..., min_length=1, max_length=64)
    team_id: str = Field(..., min_length=1, max_length=64)
    effective_from: date
    effective_to: Optional[date] = None

    def covers(self, on: date) -> bool:
        if on < self.effective_from:
            return False
        return self.effective_to is None or on <= self.effective_to

    def overlaps(self, other: "TeamMembership") -> bool:
        self_end = self.effective_to or date.max
        other_end = other.effective_to or date.max
        return self.effective_from <= other_end and other.effective_from <= self_end
