from datetime import datetime, timezone

from league_pickem import db
from league_pickem.utils.rule_model import rule_from_dict


class ScoringRule(db.Model):
    """Stored scoring rule configuration"""

    __tablename__ = "scoring_rules"

    id = db.Column(db.String(50), primary_key=True)
    rule_type = db.Column(db.String(20), nullable=False)
    description = db.Column(db.String(255))
    points = db.Column(db.Float, nullable=False)
    priority = db.Column(db.Integer, nullable=False, default=0)

    # List of {"start": int, "end": int}; null applies the rule to the whole table
    ranges = db.Column(db.JSON, nullable=True)

    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (db.Index("idx_scoring_rule_active", "is_active", "priority"),)

    def __repr__(self):
        return f"<ScoringRule {self.id} {self.rule_type}>"

    @staticmethod
    def get_active_rules():
        """Get all active rules in priority order"""
        return (
            ScoringRule.query.filter_by(is_active=True)
            .order_by(ScoringRule.priority, ScoringRule.id)
            .all()
        )

    @staticmethod
    def from_rule(rule):
        """Create a database row from a validated Rule"""
        return ScoringRule(
            id=rule.id,
            rule_type=rule.type.value,
            description=rule.description,
            points=rule.points,
            priority=rule.priority,
            ranges=(
                [r.to_dict() for r in rule.ranges] if rule.ranges is not None else None
            ),
            is_active=rule.active,
        )

    def to_rule(self):
        """Convert to a validated Rule, raising ValidationError when malformed"""
        points = self.points
        if isinstance(points, float) and points.is_integer():
            points = int(points)

        return rule_from_dict(
            {
                "id": self.id,
                "type": self.rule_type,
                "description": self.description,
                "points": points,
                "priority": self.priority,
                "ranges": self.ranges,
                "active": bool(self.is_active),
            }
        )

    def to_dict(self):
        """Convert rule to dictionary for API responses"""
        return {
            "id": self.id,
            "type": self.rule_type,
            "description": self.description,
            "points": self.points,
            "priority": self.priority,
            "ranges": self.ranges,
            "active": self.is_active,
        }
