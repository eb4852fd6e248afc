"""Exceptions raised by the scoring engine.

Every error is a local validation failure: the call that raised it left the
engine state untouched, so the caller can fix its input or call ordering
and try again.
"""

from typing import Optional


class ScoringError(Exception):
    """Base exception for scoring engine errors."""

    def __init__(self, message: str, match_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.match_id = match_id


class InvalidConfiguration(ScoringError):
    """Malformed match, team or membership setup."""
    pass


class MatchNotFound(ScoringError):
    """No match is registered under the given id."""
    pass


class MatchNotLive(ScoringError):
    """The operation needs a live match."""
    pass


class TossNotRecorded(ScoringError):
    """The toss is missing or could not be recorded."""
    pass


class FirstInningsIncomplete(ScoringError):
    """A new innings was requested while one is still in progress."""
    pass


class OverComplete(ScoringError):
    """The current over already has six legal deliveries."""
    pass


class OverInProgress(ScoringError):
    """A new over was requested before the current one finished."""
    pass


class WrongBowler(ScoringError):
    """The bowler is not allowed to bowl this delivery or over."""
    pass


class InvalidBallEvent(ScoringError):
    """The delivery is inconsistent with the laws or with the innings so far."""
    pass


class MatchNotCompleted(ScoringError):
    """Aggregation requested for a match that has not completed."""
    pass
