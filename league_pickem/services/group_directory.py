"""
Group directory

Read-only view of group deadlines and memberships used by the bet lifecycle
manager.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from league_pickem import db
from league_pickem.models import BetGroup, GroupMember
from league_pickem.utils.errors import GroupNotFound, StoreError
from league_pickem.utils.timezone_utils import ensure_utc


@dataclass(frozen=True)
class GroupDeadline:
    group_id: int
    deadline_at: datetime


class GroupDirectory:
    """SQLAlchemy-backed group directory"""

    def __init__(self, session=None):
        self.session = session or db.session

    def get_group(self, group_id):
        """
        Resolve a group's deadline.

        Raises:
            GroupNotFound: when no group has this id
        """
        try:
            group = self.session.get(BetGroup, group_id)
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

        if group is None:
            raise GroupNotFound(group_id)
        return GroupDeadline(group_id=group.id, deadline_at=ensure_utc(group.deadline_at))

    def get_user_groups(self, user_id):
        """Active memberships of a user, oldest first"""
        try:
            rows = (
                self.session.query(BetGroup.id, BetGroup.deadline_at)
                .join(GroupMember, GroupMember.group_id == BetGroup.id)
                .filter(GroupMember.user_id == user_id, GroupMember.is_active.is_(True))
                .order_by(GroupMember.joined_at, GroupMember.id)
                .all()
            )
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

        return [
            GroupDeadline(group_id=group_id, deadline_at=ensure_utc(deadline_at))
            for group_id, deadline_at in rows
        ]
