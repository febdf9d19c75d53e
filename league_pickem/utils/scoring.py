"""
Scoring Engine for League Table Pick'em

Scores one user's predicted table against the actual standings. Each rule
produces its own breakdown and a team contributes points to one rule only:
the first rule, in priority order, that matches it.

For loading bets, rules and standings and for leaderboards, see
ScoreService in league_pickem/services/score_service.py
"""

from league_pickem.utils.rule_model import RuleScoreResult, RuleType


def _predicted_at(predictions, position):
    """Team predicted at a 1-based position, or None when out of range"""
    if 1 <= position <= len(predictions):
        return predictions[position - 1]
    return None


def _positions_in(rule, table):
    """Yield (range, teams) pairs the rule applies to"""
    if rule.ranges is None:
        yield None, list(table)
        return
    for rule_range in rule.ranges:
        yield rule_range, [team for team in table if rule_range.contains(team.position)]


def _add_unique(scored, name):
    if name not in scored:
        scored.append(name)


def candidates_for_rule(rule, predictions, table):
    """
    Calculate which teams match a single rule, ignoring other rules.

    Args:
        rule: Rule to evaluate
        predictions: predicted team names, index 0 is position 1
        table: list of TeamPosition

    Returns:
        list: matching team names in table order, without duplicates
    """
    scored = []
    if not predictions:
        return scored

    if rule.type == RuleType.EXACT_CHAMPION:
        champion = next((team for team in table if team.position == 1), None)
        if champion is not None and champion.name == predictions[0]:
            scored.append(champion.name)

    elif rule.type == RuleType.EXACT_POSITION:
        for _, teams in _positions_in(rule, table):
            for team in teams:
                if _predicted_at(predictions, team.position) == team.name:
                    _add_unique(scored, team.name)

    elif rule.type == RuleType.ZONE_MATCH:
        for rule_range, teams in _positions_in(rule, table):
            if rule_range is None:
                predicted_zone = set(predictions)
            else:
                predicted_zone = set(predictions[rule_range.start - 1 : rule_range.end])
            for team in teams:
                if team.name in predicted_zone:
                    _add_unique(scored, team.name)

    return scored


def score(predictions, rules, table):
    """
    Score a prediction against the standings.

    Rules are evaluated in ascending priority; rules sharing a priority are
    evaluated in the order given. A team already claimed by an earlier rule is
    dropped from later rules. Inactive rules are skipped entirely.

    Args:
        predictions: predicted team names, index 0 is position 1
        rules: list of Rule
        table: list of TeamPosition

    Returns:
        list[RuleScoreResult]: one entry per active rule, in input order
    """
    predictions = list(predictions or [])
    active_rules = [rule for rule in rules if rule.active]

    # sorted() is stable, so equal priorities keep their input order
    evaluation_order = sorted(
        range(len(active_rules)), key=lambda index: active_rules[index].priority
    )

    claimed = set()
    results = [None] * len(active_rules)
    for index in evaluation_order:
        rule = active_rules[index]
        teams = [
            name
            for name in candidates_for_rule(rule, predictions, table)
            if name not in claimed
        ]
        claimed.update(teams)
        results[index] = RuleScoreResult(
            rule_id=rule.id,
            scored_teams=tuple(teams),
            points=len(teams) * rule.points,
        )

    return results


def total_points(results):
    """Sum the points of a score breakdown"""
    return sum(result.points for result in results)
