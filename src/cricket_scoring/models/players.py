"""Player model for the scoring database."""

from enum import Enum

from sqlalchemy import Column, String, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship

from .base import Base


class PlayerRole(str, Enum):
    """Enumeration of playing roles."""
    BATSMAN = "batsman"
    BOWLER = "bowler"
    ALL_ROUNDER = "all_rounder"
    WICKET_KEEPER = "wicket_keeper"


class Player(Base):
    """Player model representing cricket players."""

    __tablename__ = "players"

    player_id = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    role = Column(SQLEnum(PlayerRole), nullable=False, index=True)
    # Current team only; history lives in team_memberships
    team_id = Column(String(64), ForeignKey("teams.team_id"), nullable=True, index=True)

    # Relationships
    memberships = relationship("TeamMembership", back_populates="player")

    def __repr__(self) -> str:
        return f"<Player(player_id='{self.player_id}', name='{self.name}', role='{self.role}')>"
