"""Run a scripted match (JSON) through the scoring service.

A script looks like::

    {
      "players": [{"player_id": "a1", "name": "A One", "role": "batsman"}],
      "teams": [{"team_id": "A", "name": "Team A", "roster": ["a1", "a2"]}, ...],
      "match": {"format": "t20", "venue": "Eden Gardens",
                "scheduled_at": "2024-04-01T19:30:00"},
      "commands": [
        {"op": "toss", "winner_team_id": "A", "decision": "bat"},
        {"op": "start_innings"},
        {"op": "ball", "striker_id": "a1", "non_striker_id": "a2",
         "bowler_id": "b1", "runs_off_bat": 4},
        {"op": "next_over", "bowler_id": "b2"},
        {"op": "correct", "seq": 1, "striker_id": "a1", ...},
        {"op": "declare"},
        {"op": "abandon", "reason": "rain"}
      ],
      "finalize": true
    }
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from loguru import logger

from ..errors import InvalidConfiguration, ScoringError
from ..schemas.matches import MatchView
from .service import ScoringService


@dataclass
class PlaybackResult:
    match_id: str
    commands: int
    view: MatchView
    finalized: Optional[bool] = None


def _event(command: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in command.items() if k not in ("op", "seq")}


def _run_command(service: ScoringService, match_id: str, command: Dict[str, Any]) -> None:
    op = command.get("op")
    if op == "toss":
        service.record_toss(match_id, command["winner_team_id"], command["decision"])
    elif op == "start_innings":
        service.start_innings(match_id)
    elif op == "next_over":
        service.start_next_over(match_id, command["bowler_id"])
    elif op == "ball":
        service.record_ball(match_id, _event(command))
    elif op == "correct":
        service.correct_ball(match_id, command["seq"], _event(command))
    elif op == "declare":
        service.declare_innings(match_id)
    elif op == "abandon":
        service.abandon_match(match_id, command.get("reason"))
    else:
        raise InvalidConfiguration(f"Unknown command '{op}'", match_id)


def play_script(service: ScoringService, script: Dict[str, Any]) -> PlaybackResult:
    """Register the script's players and teams, create its match and replay its commands."""
    for player in script.get("players", []):
        service.register_player(player)
    for team in script.get("teams", []):
        service.register_team(team)

    setup = script.get("match")
    if not setup:
        raise InvalidConfiguration("Script has no 'match' section")
    try:
        scheduled_at = datetime.fromisoformat(setup["scheduled_at"])
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidConfiguration(f"Invalid scheduled_at in script: {e}") from e

    match_id = service.create_match(
        teams=setup.get("teams") or script.get("teams", []),
        format=setup.get("format", "t20"),
        venue=setup.get("venue"),
        scheduled_at=scheduled_at,
        match_id=setup.get("match_id"),
    )

    commands = script.get("commands", [])
    for index, command in enumerate(commands, start=1):
        try:
            _run_command(service, match_id, command)
        except ScoringError as e:
            logger.error(f"match={match_id} command {index} ({command.get('op')}) failed: {e.message}")
            raise

    finalized = None
    if script.get("finalize"):
        finalized = service.finalize_match(match_id)

    logger.info(f"match={match_id} played {len(commands)} commands")
    return PlaybackResult(
        match_id=match_id,
        commands=len(commands),
        view=service.get_match_snapshot(match_id),
        finalized=finalized,
    )
