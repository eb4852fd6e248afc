"""Team season record model for the scoring database."""

from sqlalchemy import Column, String, Integer, UniqueConstraint

from .base import Base


class TeamSeasonRecord(Base):
    """Per-team, per-season results and net run rate aggregates."""

    __tablename__ = "team_season_records"

    team_id = Column(String(64), nullable=False, index=True)
    season = Column(Integer, nullable=False, index=True)

    played = Column(Integer, default=0, nullable=False)
    won = Column(Integer, default=0, nullable=False)
    lost = Column(Integer, default=0, nullable=False)
    tied = Column(Integer, default=0, nullable=False)
    no_result = Column(Integer, default=0, nullable=False)

    # Balls are stored after all-out normalisation
    runs_for = Column(Integer, default=0, nullable=False)
    balls_faced = Column(Integer, default=0, nullable=False)
    runs_against = Column(Integer, default=0, nullable=False)
    balls_bowled = Column(Integer, default=0, nullable=False)
    highest_total = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("team_id", "season", name="uq_team_season"),
    )

    def __repr__(self) -> str:
        return f"<TeamSeasonRecord(team_id='{self.team_id}', season={self.season}, won={self.won}, lost={self.lost})>"
