"""
Rule model for the League Table Pick'em scoring engine

Plain value types shared by the scoring engine, the score service and the
ScoringRule database model. Rules are validated when they are loaded so the
engine never sees a malformed range.
"""

import math
from dataclasses import dataclass, field
from enum import Enum

from league_pickem.utils.errors import ValidationError


class RuleType(str, Enum):
    EXACT_CHAMPION = "EXACT_CHAMPION"
    EXACT_POSITION = "EXACT_POSITION"
    ZONE_MATCH = "ZONE_MATCH"


# Rule types whose ranges restrict which table positions count
RANGED_RULE_TYPES = (RuleType.EXACT_POSITION, RuleType.ZONE_MATCH)


@dataclass(frozen=True)
class RuleRange:
    """Inclusive, 1-based range of table positions"""

    start: int
    end: int

    def contains(self, position):
        return self.start <= position <= self.end

    def to_dict(self):
        return {"start": self.start, "end": self.end}


@dataclass(frozen=True)
class Rule:
    id: str
    type: RuleType
    points: float
    priority: int
    ranges: tuple = None
    active: bool = True
    description: str = ""

    def to_dict(self):
        """Convert rule to dictionary for API responses"""
        return {
            "id": self.id,
            "type": self.type.value,
            "points": self.points,
            "priority": self.priority,
            "ranges": (
                [r.to_dict() for r in self.ranges] if self.ranges is not None else None
            ),
            "active": self.active,
            "description": self.description,
        }


@dataclass(frozen=True)
class TeamPosition:
    position: int
    name: str

    def to_dict(self):
        return {"position": self.position, "name": self.name}


@dataclass(frozen=True)
class RuleScoreResult:
    rule_id: str
    scored_teams: tuple = field(default_factory=tuple)
    points: float = 0

    def to_dict(self):
        return {
            "rule_id": self.rule_id,
            "teams": list(self.scored_teams),
            "score": self.points,
        }


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def parse_range(raw):
    """
    Build a RuleRange from a mapping.

    Accepts both ``{"start", "end"}`` and the ``{"rangeStart", "rangeEnd"}``
    keys used by stored rule configurations.
    """
    if isinstance(raw, RuleRange):
        return raw
    if not isinstance(raw, dict):
        raise ValidationError(f"Invalid range: {raw!r}")

    start = raw.get("start", raw.get("rangeStart"))
    end = raw.get("end", raw.get("rangeEnd"))
    if not _is_int(start) or not _is_int(end):
        raise ValidationError(f"Range bounds must be integers: {raw!r}")
    return RuleRange(start=start, end=end)


def validate_rule(rule):
    """
    Reject malformed rule configurations.

    Args:
        rule: Rule instance

    Returns:
        Rule: the same rule when valid

    Raises:
        ValidationError: when the rule cannot be scored safely
    """
    if not rule.id:
        raise ValidationError("Rule id is required")

    if not isinstance(rule.type, RuleType):
        raise ValidationError(f"Rule {rule.id}: unknown rule type {rule.type!r}")

    if isinstance(rule.points, bool) or not isinstance(rule.points, (int, float)):
        raise ValidationError(f"Rule {rule.id}: points must be a number")
    if not math.isfinite(rule.points) or rule.points <= 0:
        raise ValidationError(
            f"Rule {rule.id}: points must be a finite number greater than zero"
        )

    if not isinstance(rule.active, bool):
        raise ValidationError(f"Rule {rule.id}: active must be true or false")

    if not _is_int(rule.priority):
        raise ValidationError(f"Rule {rule.id}: priority must be an integer")

    if rule.ranges is not None and rule.type in RANGED_RULE_TYPES:
        for rule_range in rule.ranges:
            if rule_range.start < 1:
                raise ValidationError(
                    f"Rule {rule.id}: range start must be at least 1, got {rule_range.start}"
                )
            if rule_range.start > rule_range.end:
                raise ValidationError(
                    f"Rule {rule.id}: range start {rule_range.start} is after end {rule_range.end}"
                )

    return rule


def rule_from_dict(data):
    """Build and validate a Rule from a plain mapping (JSON, seed files, forms)"""
    if not isinstance(data, dict):
        raise ValidationError(f"Invalid rule: {data!r}")

    rule_id = data.get("id")
    raw_type = data.get("type", data.get("rule_type", data.get("ruleType")))
    try:
        rule_type = RuleType(raw_type)
    except ValueError:
        raise ValidationError(f"Rule {rule_id}: unknown rule type {raw_type!r}")

    raw_ranges = data.get("ranges")
    if raw_ranges is not None and not isinstance(raw_ranges, (list, tuple)):
        raise ValidationError(f"Rule {rule_id}: ranges must be a list")
    ranges = (
        tuple(parse_range(r) for r in raw_ranges) if raw_ranges is not None else None
    )

    rule = Rule(
        id=str(rule_id) if rule_id is not None else "",
        type=rule_type,
        points=data.get("points"),
        priority=data.get("priority", 0),
        ranges=ranges,
        active=data.get("active", data.get("is_active", True)),
        description=data.get("description") or "",
    )
    return validate_rule(rule)


def load_rules(raw_rules):
    """
    Validate a rule configuration.

    Returns the rules sorted by priority; rules sharing a priority keep their
    configured order.
    """
    rules = [r if isinstance(r, Rule) else rule_from_dict(r) for r in raw_rules]
    for rule in rules:
        validate_rule(rule)

    seen_ids = set()
    for rule in rules:
        if rule.id in seen_ids:
            raise ValidationError(f"Duplicate rule id {rule.id}")
        seen_ids.add(rule.id)

    return sorted(rules, key=lambda r: r.priority)


def validate_table(table):
    """
    Check that a standings snapshot is a contiguous permutation of 1..N with
    unique team names.

    Raises:
        ValidationError: when the snapshot is inconsistent
    """
    positions = sorted(team.position for team in table)
    if positions != list(range(1, len(table) + 1)):
        raise ValidationError("Standings positions must be a contiguous 1..N sequence")

    names = [team.name for team in table]
    if len(set(names)) != len(names):
        raise ValidationError("Standings team names must be unique")

    return table
