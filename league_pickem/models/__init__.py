from league_pickem import db  # noqa: F401 - imported for model imports

from .bet import Bet
from .bet_group import BetGroup, scoring_rule_groups
from .group_member import GroupMember
from .scoring_rule import ScoringRule

__all__ = [
    "Bet",
    "BetGroup",
    "GroupMember",
    "ScoringRule",
    "scoring_rule_groups",
]
