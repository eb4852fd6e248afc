"""Team and membership models for the scoring database."""

from sqlalchemy import Column, String, Date, ForeignKey, Index
from sqlalchemy.orm import relationship

from .base import Base


class Team(Base):
    """Team model representing cricket teams."""

    __tablename__ = "teams"

    team_id = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    short_name = Column(String(10), nullable=True)

    # Relationships
    memberships = relationship("TeamMembership", back_populates="team")

    def __repr__(self) -> str:
        return f"<Team(team_id='{self.team_id}', name='{self.name}')>"


class TeamMembership(Base):
    """A player's membership of a team over an effective date range."""

    __tablename__ = "team_memberships"

    team_id = Column(String(64), ForeignKey("teams.team_id"), nullable=False, index=True)
    player_id = Column(String(64), ForeignKey("players.player_id"), nullable=False, index=True)
    effective_from = Column(Date, nullable=False)
    effective_to = Column(Date, nullable=True)

    # Relationships
    team = relationship("Team", back_populates="memberships")
    player = relationship("Player", back_populates="memberships")

    __table_args__ = (
        Index("idx_membership_player_from", "player_id", "effective_from"),
    )

    def __repr__(self) -> str:
        return f"<TeamMembership(player_id='{self.player_id}', team_id='{self.team_id}', from={self.effective_from}, to={self.effective_to})>"
