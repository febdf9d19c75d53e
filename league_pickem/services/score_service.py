"""
Score service

Combines stored bets, the rule set of a group and the final standings into
score breakdowns and group leaderboards. The rule logic itself lives in
league_pickem/utils/scoring.py.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from league_pickem import db
from league_pickem.models import BetGroup, ScoringRule
from league_pickem.utils.errors import GroupNotFound, StoreError
from league_pickem.utils.rule_model import load_rules
from league_pickem.utils.scoring import score, total_points

logger = logging.getLogger(__name__)


class ScoreService:
    def __init__(self, store, standings, session=None):
        self.store = store
        self.standings = standings
        self.session = session or db.session

    def get_rules(self, group_id=None):
        """
        Rules a group is scored with

        Inactive rules are never listed. Groups without active rules of
        their own, and scores outside any group, use every active rule.

        Raises:
            GroupNotFound: when group_id does not exist
            ValidationError: when a stored rule is malformed
        """
        try:
            rows = None
            if group_id is not None:
                group = self.session.get(BetGroup, group_id)
                if group is None:
                    raise GroupNotFound(group_id)
                rows = [row for row in group.rules if row.is_active]
            if not rows:
                rows = ScoringRule.get_active_rules()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

        return load_rules([row.to_rule() for row in rows])

    def score_user(self, user_id, season, group_id=None):
        """
        Score one user's bet

        Returns:
            dict: {"total": number, "details": [RuleScoreResult, ...]}; a user
            without a bet gets zero points on every rule
        """
        rules = self.get_rules(group_id)
        bet = self.store.find_by_group(user_id, season, group_id)

        if bet is None:
            details = score([], rules, [])
        else:
            details = score(bet.predictions, rules, self.standings.get_standings(season))

        return {"total": total_points(details), "details": details}

    def group_leaderboard(self, group_id, season):
        """
        Rank every bet placed in a group

        Returns:
            list[dict]: {"user_id", "total", "details"} ordered by total
            descending, ties broken by user id
        """
        rules = self.get_rules(group_id)
        bets = self.store.find_for_group(group_id, season)
        if not bets:
            return []

        table = self.standings.get_standings(season)

        entries = []
        for bet in bets:
            details = score(bet.predictions, rules, table)
            entries.append(
                {"user_id": bet.user_id, "total": total_points(details), "details": details}
            )

        entries.sort(key=lambda entry: (-entry["total"], entry["user_id"]))
        logger.debug(f"Leaderboard for group {group_id} ({season}): {len(entries)} entries")
        return entries
