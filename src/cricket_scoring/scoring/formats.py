"""Format-specific rules: overs per innings and bowling quotas.

Every component that needs a format-sensitive value reads it from a
FormatRules instance in FORMAT_RULES instead of hardcoding T20 constants.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Union

from ..errors import InvalidConfiguration
from ..models.matches import MatchFormat
from .metrics import BALLS_PER_OVER


@dataclass(frozen=True)
class FormatRules:
    """Parameterisation of one match format."""
    format: MatchFormat
    overs_limit: Optional[int]           # None: innings ends only by all out, declaration or chase
    bowler_overs_quota: Optional[int]
    innings_per_side: int = 1
    balls_per_over: int = BALLS_PER_OVER

    @property
    def is_limited_overs(self) -> bool:
        return self.overs_limit is not None

    @property
    def max_legal_balls(self) -> Optional[int]:
        if self.overs_limit is None:
            return None
        return self.overs_limit * self.balls_per_over

    @property
    def innings_count(self) -> int:
        return 2 * self.innings_per_side


FORMAT_RULES: Dict[MatchFormat, FormatRules] = {
    MatchFormat.T20: FormatRules(MatchFormat.T20, overs_limit=20, bowler_overs_quota=4),
    MatchFormat.ODI: FormatRules(MatchFormat.ODI, overs_limit=50, bowler_overs_quota=10),
    # Only one innings per side is modelled, so a Test here is a timeless single-innings game
    MatchFormat.TEST: FormatRules(MatchFormat.TEST, overs_limit=None, bowler_overs_quota=None),
}


def parse_format(value: Union[MatchFormat, str]) -> MatchFormat:
    """Resolve "T20", "t20" or MatchFormat.T20; anything else is a configuration error."""
    if isinstance(value, MatchFormat):
        return value
    try:
        return MatchFormat(str(value).strip().lower())
    except ValueError:
        valid = ", ".join(f.value for f in MatchFormat)
        raise InvalidConfiguration(f"Unrecognized match format '{value}'. Expected one of: {valid}") from None


def rules_for(value: Union[MatchFormat, str]) -> FormatRules:
    return FORMAT_RULES[parse_format(value)]
