from datetime import datetime, timezone

from league_pickem import db


class Bet(db.Model):
    """A user's predicted final table for one season, optionally scoped to a group"""

    __tablename__ = "bets"

    id = db.Column(db.Integer, primary_key=True)

    # Bet identification
    user_id = db.Column(db.String(64), nullable=False)
    season = db.Column(db.Integer, nullable=False)
    group_id = db.Column(
        db.Integer, db.ForeignKey("bet_groups.id", ondelete="CASCADE"), nullable=True
    )  # Null for the default bet made before choosing a group

    # Predicted team names, index 0 is the predicted champion
    predictions = db.Column(db.JSON, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    group = db.relationship("BetGroup", back_populates="bets")

    # Constraints and indexes
    __table_args__ = (
        db.UniqueConstraint(
            "user_id", "season", "group_id", name="unique_user_season_group_bet"
        ),
        # NULLs are distinct in unique constraints, so the default bet needs its own index
        db.Index(
            "unique_user_season_default_bet",
            "user_id",
            "season",
            unique=True,
            sqlite_where=db.text("group_id IS NULL"),
            postgresql_where=db.text("group_id IS NULL"),
        ),
        db.Index("idx_bet_user_season", "user_id", "season"),
        db.Index("idx_bet_group_season", "group_id", "season"),
    )

    def __repr__(self):
        return f"<Bet user_id={self.user_id} season={self.season} group_id={self.group_id}>"

    @property
    def is_default(self):
        """Check if this bet is not tied to a group yet"""
        return self.group_id is None

    def to_dict(self):
        """Convert bet to dictionary for API responses"""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "group_id": self.group_id,
            "season": self.season,
            "predictions": list(self.predictions or []),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
