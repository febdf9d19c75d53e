from datetime import datetime, timezone

from league_pickem import db
from league_pickem.utils.timezone_utils import ensure_utc, is_deadline_passed

# Rules each group is scored with
scoring_rule_groups = db.Table(
    "scoring_rule_groups",
    db.Column(
        "group_id",
        db.Integer,
        db.ForeignKey("bet_groups.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column(
        "rule_id",
        db.String(50),
        db.ForeignKey("scoring_rules.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class BetGroup(db.Model):
    __tablename__ = "bet_groups"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    challenge = db.Column(db.Text)

    # Group settings
    is_private = db.Column(db.Boolean, default=False)
    allow_public_viewing = db.Column(db.Boolean, default=True)

    # Predictions are locked once this moment is reached
    deadline_at = db.Column(db.DateTime, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    members = db.relationship(
        "GroupMember", backref="group", lazy="dynamic", cascade="all, delete-orphan"
    )
    bets = db.relationship("Bet", back_populates="group", passive_deletes=True)
    rules = db.relationship(
        "ScoringRule",
        secondary=scoring_rule_groups,
        lazy="selectin",
        order_by="ScoringRule.priority",
    )

    # Database indexes
    __table_args__ = (
        db.Index("idx_bet_group_deadline", "deadline_at"),
        db.Index("idx_bet_group_private", "is_private"),
    )

    def __repr__(self):
        return f"<BetGroup {self.name}>"

    def is_deadline_passed(self, now=None):
        """Check if predictions for this group are locked"""
        return is_deadline_passed(self.deadline_at, now)

    def get_member_count(self):
        """Get count of active members"""
        return self.members.filter_by(is_active=True).count()

    def is_user_member(self, user_id):
        """Check if user is an active member"""
        return (
            self.members.filter_by(user_id=user_id, is_active=True).first() is not None
        )

    def to_dict(self):
        """Convert group to dictionary for API responses"""
        deadline_at = ensure_utc(self.deadline_at)
        return {
            "id": self.id,
            "name": self.name,
            "challenge": self.challenge,
            "is_private": self.is_private,
            "allow_public_viewing": self.allow_public_viewing,
            "deadline_at": deadline_at.isoformat() if deadline_at else None,
            "member_count": self.get_member_count(),
            "rule_ids": [rule.id for rule in self.rules],
        }
