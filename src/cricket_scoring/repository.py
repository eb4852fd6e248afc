"""Persistence of the event log, match headers, registry data and statistics."""

from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from .database import get_session
from .models import (
    AggregatedMatch,
    Match as MatchRow,
    MatchEvent,
    Player as PlayerRow,
    PlayerCareerStats,
    Team as TeamRow,
    TeamMembership as MembershipRow,
    TeamSeasonRecord,
)
from .models.matches import EventKind
from .schemas import CareerStat, Player, PlayerMatchStats, Team, TeamMatchResult, TeamMembership, TeamSeasonStats
from .scoring.aggregation import fold_career, fold_team
from .scoring.entities import Match


class ScoringRepository:
    """SQL-backed store with idempotent upserts, in the style of a batch loader."""

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """One unit of work; committed on success and rolled back on any error."""
        with get_session() as session:
            yield session

    # Event log

    def add_event(self, session: Session, match_id: str, seq: int, kind: EventKind, payload: dict) -> None:
        session.add(MatchEvent(match_id=match_id, seq=seq, kind=kind, payload=payload))

    def load_events(self, match_id: str) -> List[Tuple[int, EventKind, dict]]:
        with get_session() as session:
            rows = session.execute(
                select(MatchEvent).where(MatchEvent.match_id == match_id).order_by(MatchEvent.seq)
            ).scalars().all()
            return [(row.seq, row.kind, row.payload) for row in rows]

    def match_exists(self, match_id: str) -> bool:
        with get_session() as session:
            return session.execute(
                select(MatchRow.id).where(MatchRow.match_id == match_id)
            ).first() is not None

    def upsert_match(self, session: Session, match: Match) -> str:
        """Rewrite the header row of a match from the in-memory aggregate."""
        row = session.execute(
            select(MatchRow).where(MatchRow.match_id == match.match_id)
        ).scalar_one_or_none()
        result = "updated"
        if row is None:
            home, away = match.team_ids
            row = MatchRow(
                match_id=match.match_id,
                match_format=match.format,
                home_team_id=home,
                away_team_id=away,
                venue=match.venue,
                scheduled_at=match.scheduled_at,
            )
            session.add(row)
            result = "inserted"

        row.status = match.status
        row.last_seq = match.events_applied
        if match.toss is not None:
            row.toss_winner_id = match.toss.winner_team_id
            row.toss_decision = match.toss.decision
        if match.result is not None:
            row.result_type = match.result.result_type
            row.winner_id = match.result.winner_team_id
            row.win_margin = match.result.margin
            row.win_margin_type = match.result.margin_type
            row.result_summary = match.result.summary
        row.abandon_reason = match.abandon_reason
        return result

    # Registry

    def upsert_team(self, session: Session, team: Team) -> str:
        row = session.execute(select(TeamRow).where(TeamRow.team_id == team.team_id)).scalar_one_or_none()
        if row is None:
            session.add(TeamRow(team_id=team.team_id, name=team.name, short_name=team.short_name))
            return "inserted"
        row.name = team.name
        row.short_name = team.short_name
        return "updated"

    def save_team(self, team: Team) -> str:
        with get_session() as session:
            result = self.upsert_team(session, team)
        logger.debug(f"Team {team.team_id} {result}")
        return result

    def save_player(self, player: Player) -> str:
        with get_session() as session:
            row = session.execute(
                select(PlayerRow).where(PlayerRow.player_id == player.player_id)
            ).scalar_one_or_none()
            if row is None:
                session.add(PlayerRow(**player.model_dump()))
                result = "inserted"
            else:
                row.name = player.name
                row.role = player.role
                row.team_id = player.team_id
                result = "updated"
        logger.debug(f"Player {player.player_id} {result}")
        return result

    def get_player(self, player_id: str) -> Optional[Player]:
        with get_session() as session:
            row = session.execute(
                select(PlayerRow).where(PlayerRow.player_id == player_id)
            ).scalar_one_or_none()
            return Player.model_validate(row) if row is not None else None

    def player_names(self, player_ids: Optional[Iterable[str]] = None) -> Dict[str, str]:
        query = select(PlayerRow.player_id, PlayerRow.name)
        if player_ids is not None:
            query = query.where(PlayerRow.player_id.in_(list(player_ids)))
        with get_session() as session:
            return {player_id: name for player_id, name in session.execute(query)}

    def memberships_for(self, player_id: str) -> List[TeamMembership]:
        with get_session() as session:
            rows = session.execute(
                select(MembershipRow)
                .where(MembershipRow.player_id == player_id)
                .order_by(MembershipRow.effective_from)
            ).scalars().all()
            return [TeamMembership.model_validate(row) for row in rows]

    def add_membership(self, membership: TeamMembership, current_on: Optional[date] = None) -> None:
        """Store a membership; the player's current team follows it when it covers current_on."""
        with get_session() as session:
            session.add(MembershipRow(**membership.model_dump()))
            if current_on is not None and membership.covers(current_on):
                row = session.execute(
                    select(PlayerRow).where(PlayerRow.player_id == membership.player_id)
                ).scalar_one_or_none()
                if row is not None:
                    row.team_id = membership.team_id

    # Statistics

    def apply_match_deltas(
        self,
        match_id: str,
        player_deltas: List[PlayerMatchStats],
        team_deltas: List[TeamMatchResult],
    ) -> bool:
        """Fold one match into the stats; the marker row makes a second call a no-op."""
        with get_session() as session:
            marker = session.execute(
                select(AggregatedMatch).where(AggregatedMatch.match_id == match_id)
            ).scalar_one_or_none()
            if marker is not None:
                return False

            for delta in player_deltas:
                row = session.execute(
                    select(PlayerCareerStats).where(PlayerCareerStats.player_id == delta.player_id)
                ).scalar_one_or_none()
                if row is None:
                    current = CareerStat(player_id=delta.player_id)
                    row = PlayerCareerStats(player_id=delta.player_id)
                    session.add(row)
                else:
                    current = CareerStat.model_validate(row)
                row.update_from(fold_career(current, delta).counters())

            for delta in team_deltas:
                row = session.execute(
                    select(TeamSeasonRecord).where(
                        TeamSeasonRecord.team_id == delta.team_id,
                        TeamSeasonRecord.season == delta.season,
                    )
                ).scalar_one_or_none()
                if row is None:
                    current = TeamSeasonStats(team_id=delta.team_id, season=delta.season)
                    row = TeamSeasonRecord(team_id=delta.team_id, season=delta.season)
                    session.add(row)
                else:
                    current = TeamSeasonStats.model_validate(row)
                row.update_from(fold_team(current, delta).counters())

            session.add(AggregatedMatch(match_id=match_id))
        return True

    def aggregated_match_ids(self) -> List[str]:
        with get_session() as session:
            return list(session.execute(
                select(AggregatedMatch.match_id).order_by(AggregatedMatch.id)
            ).scalars())

    def get_career_stats(self, player_id: str) -> Optional[CareerStat]:
        with get_session() as session:
            row = session.execute(
                select(PlayerCareerStats).where(PlayerCareerStats.player_id == player_id)
            ).scalar_one_or_none()
            return CareerStat.model_validate(row) if row is not None else None

    def all_career_stats(self) -> Dict[str, CareerStat]:
        with get_session() as session:
            rows = session.execute(select(PlayerCareerStats)).scalars().all()
            return {row.player_id: CareerStat.model_validate(row) for row in rows}

    def get_team_record(self, team_id: str, season: int) -> Optional[TeamSeasonStats]:
        with get_session() as session:
            row = session.execute(
                select(TeamSeasonRecord).where(
                    TeamSeasonRecord.team_id == team_id, TeamSeasonRecord.season == season
                )
            ).scalar_one_or_none()
            return TeamSeasonStats.model_validate(row) if row is not None else None

    def all_team_records(self) -> Dict[Tuple[str, int], TeamSeasonStats]:
        with get_session() as session:
            rows = session.execute(select(TeamSeasonRecord)).scalars().all()
            return {(row.team_id, row.season): TeamSeasonStats.model_validate(row) for row in rows}
