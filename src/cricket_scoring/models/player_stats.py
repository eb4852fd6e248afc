"""Career statistics models for the scoring database."""

from sqlalchemy import Column, String, Integer, DateTime, func

from .base import Base


class PlayerCareerStats(Base):
    """Player career statistics, a cache over finalized matches."""

    __tablename__ = "player_career_stats"

    player_id = Column(String(64), nullable=False, unique=True, index=True)

    # Match counts
    matches = Column(Integer, default=0, nullable=False)
    batting_innings = Column(Integer, default=0, nullable=False)
    bowling_innings = Column(Integer, default=0, nullable=False)

    # Batting
    runs = Column(Integer, default=0, nullable=False)
    balls_faced = Column(Integer, default=0, nullable=False)
    fours = Column(Integer, default=0, nullable=False)
    sixes = Column(Integer, default=0, nullable=False)
    not_outs = Column(Integer, default=0, nullable=False)
    high_score = Column(Integer, default=0, nullable=False)
    fifties = Column(Integer, default=0, nullable=False)
    hundreds = Column(Integer, default=0, nullable=False)
    ducks = Column(Integer, default=0, nullable=False)

    # Bowling
    balls_bowled = Column(Integer, default=0, nullable=False)
    runs_conceded = Column(Integer, default=0, nullable=False)
    wickets = Column(Integer, default=0, nullable=False)
    maidens = Column(Integer, default=0, nullable=False)
    best_wickets = Column(Integer, default=0, nullable=False)
    best_runs = Column(Integer, nullable=True)

    # Fielding
    catches = Column(Integer, default=0, nullable=False)
    stumpings = Column(Integer, default=0, nullable=False)
    run_outs = Column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<PlayerCareerStats(player_id='{self.player_id}', runs={self.runs}, wickets={self.wickets})>"


class AggregatedMatch(Base):
    """Marker row written once a match has been folded into the stats."""

    __tablename__ = "aggregated_matches"

    match_id = Column(String(64), nullable=False, unique=True, index=True)
    aggregated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<AggregatedMatch(match_id='{self.match_id}')>"
