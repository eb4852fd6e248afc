"""ScoringService: the public facade over the scoring engine.

Every write is a command that becomes one entry in the match's append-only
event log. A command is first validated against the current state; only
then is the event stored and applied, inside one transaction, under the
match's lock. Readers never take that lock: they get the MatchView that was
published after the last successful write.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from loguru import logger
from pydantic import ValidationError

from ..config import Settings, settings as default_settings
from ..errors import InvalidBallEvent, InvalidConfiguration, MatchNotFound, ScoringError
from ..models.matches import EventKind, MatchFormat, MatchStatus, TossDecision
from ..repository import ScoringRepository
from ..schemas.ball_by_ball import Ball, BallEvent
from ..schemas.matches import MatchView
from ..schemas.player_stats import CareerStat, ReconcileIssue, TeamSeasonStats
from ..schemas.teams import Player, Team, TeamMembership
from . import entities
from .aggregation import AggregationEngine
from .recorder import BallRecorder
from .scorecard import build_match_view
from .state_machine import MatchStateMachine

Apply = Callable[[], Any]


@dataclass
class _MatchEntry:
    match: entities.Match
    lock: threading.RLock = field(default_factory=threading.RLock)
    view: Optional[MatchView] = None
    next_seq: int = 1


class ScoringService:
    """Scores matches ball by ball and maintains career and season statistics."""

    def __init__(self, repository: Optional[ScoringRepository] = None, config: Optional[Settings] = None):
        self.settings = config or default_settings
        self.repository = repository or ScoringRepository()
        self.recorder = BallRecorder()
        self.state_machine = MatchStateMachine()
        self.aggregation = AggregationEngine(self.repository)

        self._matches: Dict[str, _MatchEntry] = {}
        self._registry_lock = threading.Lock()
        self._names: Dict[str, str] = {}
        self._handlers: Dict[EventKind, Callable[[entities.Match, dict], Apply]] = {
            EventKind.TOSS_RECORDED: self._on_toss_recorded,
            EventKind.INNINGS_STARTED: self._on_innings_started,
            EventKind.OVER_STARTED: self._on_over_started,
            EventKind.BALL_RECORDED: self._on_ball_recorded,
            EventKind.BALL_CORRECTED: self._on_ball_corrected,
            EventKind.INNINGS_DECLARED: self._on_innings_declared,
            EventKind.MATCH_ABANDONED: self._on_match_abandoned,
        }

    @property
    def persist_events(self) -> bool:
        return self.settings.scoring.persist_events

    # Event handlers: validate now, return the mutation to run later

    def _on_toss_recorded(self, match: entities.Match, payload: dict) -> Apply:
        toss = self.state_machine.validate_toss(match, payload["winner_team_id"], payload["decision"])
        return lambda: self.state_machine.record_toss(match, toss)

    def _on_innings_started(self, match: entities.Match, payload: dict) -> Apply:
        self.state_machine.validate_start_innings(match)
        return lambda: self.state_machine.start_innings(match)

    def _on_over_started(self, match: entities.Match, payload: dict) -> Apply:
        bowler_id = payload["bowler_id"]
        self.recorder.validate_next_over(match, bowler_id)
        return lambda: self.recorder.open_over(match.current_innings, bowler_id)

    def _on_ball_recorded(self, match: entities.Match, payload: dict) -> Apply:
        event = self._parse_event(payload["event"], match.match_id)
        prepared = self.recorder.prepare(match, event, auto_advance=payload.get("auto_advance", False))

        def apply() -> Ball:
            ball = self.recorder.apply(match, prepared)
            self.state_machine.after_delivery(match)
            return ball

        return apply

    def _on_ball_corrected(self, match: entities.Match, payload: dict) -> Apply:
        event = self._parse_event(payload["event"], match.match_id)
        corrected = self.recorder.prepare_correction(match, payload["seq"], event)

        def apply() -> Ball:
            ball = self.recorder.apply_correction(match, corrected)
            self.state_machine.after_delivery(match)
            return ball

        return apply

    def _on_innings_declared(self, match: entities.Match, payload: dict) -> Apply:
        self.state_machine.validate_declare(match)
        return lambda: self.state_machine.declare(match)

    def _on_match_abandoned(self, match: entities.Match, payload: dict) -> Apply:
        self.state_machine.validate_abandon(match)
        return lambda: self.state_machine.abandon(match, payload.get("reason"))

    # Plumbing

    @staticmethod
    def _parse_event(event: Union[BallEvent, dict], match_id: Optional[str] = None) -> BallEvent:
        if isinstance(event, BallEvent):
            return event
        try:
            return BallEvent.model_validate(event)
        except ValidationError as e:
            raise InvalidBallEvent(f"Invalid delivery: {e}", match_id) from e

    def _publish(self, entry: _MatchEntry) -> None:
        # Readers pick up the new view through this single assignment
        entry.view = build_match_view(entry.match, self._names, self.settings.scoring.recent_balls_window)

    def _execute(self, entry: _MatchEntry, kind: EventKind, payload: dict) -> Any:
        """Validate, persist and apply one command. The caller holds entry.lock."""
        match = entry.match
        try:
            apply = self._handlers[kind](match, payload)
        except ScoringError as e:
            logger.warning(f"match={match.match_id} rejected {kind.value}: {e.message}")
            raise

        seq = entry.next_seq
        if not self.persist_events:
            result = apply()
            match.events_applied = seq
        else:
            applied = False
            try:
                with self.repository.transaction() as session:
                    self.repository.add_event(session, match.match_id, seq, kind, payload)
                    applied = True
                    result = apply()
                    match.events_applied = seq
                    self.repository.upsert_match(session, match)
            except Exception:
                logger.exception(f"match={match.match_id} failed to persist {kind.value} #{seq}")
                if applied:
                    entry.match = self._replay(self.repository.load_events(match.match_id))
                    self._publish(entry)
                raise
        entry.next_seq = seq + 1
        self._publish(entry)
        return result

    def _replay(self, events: Sequence[Tuple[int, EventKind, dict]]) -> entities.Match:
        """Rebuild a match by running its logged events through the normal handlers."""
        if not events or events[0][1] != EventKind.MATCH_CREATED:
            raise MatchNotFound("Event log does not start with match creation")
        seq, _, payload = events[0]
        match = self._build_match(payload)
        match.events_applied = seq
        for seq, kind, payload in events[1:]:
            self._handlers[EventKind(kind)](match, payload)()
            match.events_applied = seq
        return match

    def _build_match(self, payload: dict) -> entities.Match:
        return entities.create_match(
            teams=payload["teams"],
            format=payload["format"],
            venue=payload.get("venue"),
            scheduled_at=datetime.fromisoformat(payload["scheduled_at"]),
            match_id=payload["match_id"],
            players_per_side=payload.get("players_per_side", self.settings.scoring.players_per_side),
        )

    def _entry_from_log(self, match_id: str) -> _MatchEntry:
        events = self.repository.load_events(match_id)
        if not events:
            raise MatchNotFound(f"No match with id {match_id}", match_id)
        match = self._replay(events)
        self._remember_names(match)
        entry = _MatchEntry(match=match, next_seq=events[-1][0] + 1)
        self._publish(entry)
        return entry

    def _entry(self, match_id: str) -> _MatchEntry:
        entry = self._matches.get(match_id)
        if entry is not None:
            return entry
        with self._registry_lock:
            entry = self._matches.get(match_id)
            if entry is None:
                if not self.persist_events:
                    raise MatchNotFound(f"No match with id {match_id}", match_id)
                entry = self._entry_from_log(match_id)
                self._matches[match_id] = entry
            return entry

    def _remember_names(self, match: entities.Match) -> None:
        player_ids = [p for team in match.teams for p in team.roster]
        if player_ids:
            self._names.update(self.repository.player_names(player_ids))

    def _command(self, match_id: str, kind: EventKind, payload: dict) -> Any:
        entry = self._entry(match_id)
        with entry.lock:
            return self._execute(entry, kind, payload)

    # Match lifecycle

    def create_match(
        self,
        teams: Sequence[Union[Team, dict]],
        format: Union[MatchFormat, str],
        venue: Optional[str],
        scheduled_at: datetime,
        match_id: Optional[str] = None,
    ) -> str:
        """Register a new upcoming match and return its id."""
        match = entities.create_match(
            teams, format, venue, scheduled_at,
            match_id=match_id,
            players_per_side=self.settings.scoring.players_per_side,
        )
        payload = {
            "match_id": match.match_id,
            "teams": [team.model_dump(mode="json") for team in match.teams],
            "format": match.format.value,
            "venue": match.venue,
            "scheduled_at": match.scheduled_at.isoformat(),
            "players_per_side": match.players_per_side,
        }
        with self._registry_lock:
            if match.match_id in self._matches or (
                self.persist_events and self.repository.match_exists(match.match_id)
            ):
                raise InvalidConfiguration(f"Match {match.match_id} already exists", match.match_id)
            match.events_applied = 1
            if self.persist_events:
                with self.repository.transaction() as session:
                    for team in match.teams:
                        self.repository.upsert_team(session, team)
                    self.repository.add_event(session, match.match_id, 1, EventKind.MATCH_CREATED, payload)
                    self.repository.upsert_match(session, match)
                self._remember_names(match)
            entry = _MatchEntry(match=match, next_seq=2)
            self._publish(entry)
            self._matches[match.match_id] = entry

        home, away = match.teams
        logger.info(
            f"match={match.match_id} created: {home.name} vs {away.name}, "
            f"{match.format.value}, {match.scheduled_at:%Y-%m-%d}"
        )
        return match.match_id

    def record_toss(self, match_id: str, winner_team_id: str, decision: Union[TossDecision, str]) -> None:
        self._command(match_id, EventKind.TOSS_RECORDED, {
            "winner_team_id": winner_team_id,
            "decision": getattr(decision, "value", decision),
        })

    def start_innings(self, match_id: str) -> None:
        self._command(match_id, EventKind.INNINGS_STARTED, {})

    def start_next_over(self, match_id: str, bowler_id: str) -> None:
        self._command(match_id, EventKind.OVER_STARTED, {"bowler_id": bowler_id})

    def record_ball(self, match_id: str, event: Union[BallEvent, dict]) -> Ball:
        """Record one delivery in the open over of the current innings."""
        event = self._parse_event(event, match_id)
        return self._command(match_id, EventKind.BALL_RECORDED, {
            "event": event.model_dump(mode="json"),
            "auto_advance": self.settings.scoring.auto_advance_overs,
        })

    def correct_ball(self, match_id: str, seq: int, event: Union[BallEvent, dict]) -> Ball:
        """Replace delivery `seq` of the current innings with a corrected version."""
        event = self._parse_event(event, match_id)
        return self._command(match_id, EventKind.BALL_CORRECTED, {
            "seq": seq,
            "event": event.model_dump(mode="json"),
        })

    def declare_innings(self, match_id: str) -> None:
        self._command(match_id, EventKind.INNINGS_DECLARED, {})

    def abandon_match(self, match_id: str, reason: Optional[str] = None) -> None:
        self._command(match_id, EventKind.MATCH_ABANDONED, {"reason": reason})

    # Reads

    def get_match_snapshot(self, match_id: str) -> MatchView:
        return self._entry(match_id).view

    def list_matches(self, status: Optional[MatchStatus] = None) -> List[MatchView]:
        views = [entry.view for entry in list(self._matches.values())]
        if status is not None:
            views = [view for view in views if view.status == status]
        return views

    def load_match(self, match_id: str) -> MatchView:
        """Rebuild a match from its persisted event log, replacing any in-memory copy."""
        with self._registry_lock:
            rebuilt = self._entry_from_log(match_id)
            existing = self._matches.get(match_id)
            if existing is None:
                self._matches[match_id] = rebuilt
                return rebuilt.view
        with existing.lock:
            existing.match = rebuilt.match
            existing.next_seq = rebuilt.next_seq
            self._publish(existing)
            logger.info(f"match={match_id} reloaded from {existing.match.events_applied} events")
            return existing.view

    def get_player_career_stats(self, player_id: str) -> CareerStat:
        return self.repository.get_career_stats(player_id) or CareerStat(player_id=player_id)

    def get_team_season_record(self, team_id: str, season: int) -> TeamSeasonStats:
        return self.repository.get_team_record(team_id, season) or TeamSeasonStats(
            team_id=team_id, season=season
        )

    # Statistics

    def finalize_match(self, match_id: str) -> bool:
        """Fold a completed match into career and season stats; False if already done."""
        entry = self._entry(match_id)
        with entry.lock:
            return self.aggregation.finalize(entry.match)

    def reconcile(self) -> List[ReconcileIssue]:
        """Replay every aggregated match and report where the cached stats disagree."""
        matches = []
        for match_id in self.repository.aggregated_match_ids():
            if self.persist_events:
                matches.append(self._replay(self.repository.load_events(match_id)))
            elif match_id in self._matches:
                matches.append(self._matches[match_id].match)
            else:
                logger.warning(f"match={match_id} is aggregated but has no event log to replay")
        return self.aggregation.reconcile(matches)

    # Registry

    def register_team(self, team: Union[Team, dict]) -> Team:
        try:
            team = team if isinstance(team, Team) else Team.model_validate(team)
        except ValidationError as e:
            raise InvalidConfiguration(f"Invalid team: {e}") from e
        self.repository.save_team(team)
        logger.info(f"Team {team.team_id} ({team.name}) registered")
        return team

    def register_player(self, player: Union[Player, dict]) -> Player:
        try:
            player = player if isinstance(player, Player) else Player.model_validate(player)
        except ValidationError as e:
            raise InvalidConfiguration(f"Invalid player: {e}") from e
        self.repository.save_player(player)
        self._names[player.player_id] = player.name
        logger.info(f"Player {player.player_id} ({player.name}) registered")
        return player

    def add_membership(self, membership: Union[TeamMembership, dict]) -> TeamMembership:
        """Record that a player belongs to a team between two dates."""
        try:
            if not isinstance(membership, TeamMembership):
                membership = TeamMembership.model_validate(membership)
        except ValidationError as e:
            raise InvalidConfiguration(f"Invalid membership: {e}") from e
        if membership.effective_to is not None and membership.effective_to < membership.effective_from:
            raise InvalidConfiguration("Membership cannot end before it starts")
        for existing in self.repository.memberships_for(membership.player_id):
            if existing.overlaps(membership):
                raise InvalidConfiguration(
                    f"{membership.player_id} is already with {existing.team_id} from "
                    f"{existing.effective_from}"
                )
        self.repository.add_membership(membership, current_on=date.today())
        logger.info(
            f"Player {membership.player_id} joined {membership.team_id} from {membership.effective_from}"
        )
        return membership

    def team_for_player(self, player_id: str, on: date) -> Optional[str]:
        """The team a player belonged to on a given date, if any."""
        for membership in self.repository.memberships_for(player_id):
            if membership.covers(on):
                return membership.team_id
        return None
