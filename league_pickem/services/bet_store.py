"""
Bet record store

Repository over the Bet model. Every write goes through here so the lifecycle
manager can group several of them into one transaction.
"""

import functools
import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from league_pickem import db
from league_pickem.models import Bet
from league_pickem.utils.errors import BetConflict, StoreError
from league_pickem.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)


def store_operation(func):
    """Translate SQLAlchemy failures into StoreError / BetConflict"""

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except IntegrityError as e:
            self.session.rollback()
            logger.warning(f"Bet write rejected by unique constraint in {func.__name__}: {e.orig}")
            raise BetConflict() from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Bet store failure in {func.__name__}: {e}")
            raise StoreError(str(e)) from e

    return wrapper


class BetStore:
    """SQLAlchemy-backed store for Bet records"""

    def __init__(self, session=None):
        self.session = session or db.session
        self._depth = 0

    @contextmanager
    def transaction(self):
        """
        Run a block of store calls atomically.

        The outermost block commits when it exits cleanly and rolls back on any
        exception; nested blocks join the outer one.
        """
        self._depth += 1
        try:
            yield self
            if self._depth == 1:
                self._commit()
        except Exception:
            self.session.rollback()
            raise
        finally:
            self._depth -= 1

    @store_operation
    def _commit(self):
        self.session.commit()

    @store_operation
    def find(self, user_id, season):
        """All bets of a user for a season, default bet first"""
        bets = Bet.query.filter_by(user_id=user_id, season=season).order_by(Bet.id).all()
        return sorted(bets, key=lambda bet: bet.group_id is not None)

    @store_operation
    def find_by_group(self, user_id, season, group_id):
        if group_id is None:
            return self.find_default(user_id, season)
        return Bet.query.filter_by(
            user_id=user_id, season=season, group_id=group_id
        ).first()

    @store_operation
    def find_default(self, user_id, season):
        """The bet not yet tied to a group, if any"""
        return Bet.query.filter(
            Bet.user_id == user_id, Bet.season == season, Bet.group_id.is_(None)
        ).first()

    @store_operation
    def find_for_group(self, group_id, season):
        """All bets placed in a group for a season"""
        return (
            Bet.query.filter_by(group_id=group_id, season=season)
            .order_by(Bet.user_id)
            .all()
        )

    @store_operation
    def get(self, bet_id):
        return self.session.get(Bet, bet_id)

    @store_operation
    def create(self, user_id, season, group_id, predictions):
        bet = Bet(
            user_id=user_id,
            season=season,
            group_id=group_id,
            predictions=list(predictions),
        )
        self.session.add(bet)
        self.session.flush()
        logger.debug(f"Created bet {bet.id} for user {user_id} in group {group_id}")
        return bet

    @store_operation
    def update(self, bet_id, predictions):
        bet = self._require(bet_id)
        bet.predictions = list(predictions)
        bet.updated_at = get_utc_time()
        self.session.flush()
        return bet

    @store_operation
    def set_group(self, bet_id, group_id):
        bet = self._require(bet_id)
        bet.group_id = group_id
        bet.updated_at = get_utc_time()
        self.session.flush()
        return bet

    @store_operation
    def delete(self, bet_id):
        bet = self._require(bet_id)
        self.session.delete(bet)
        self.session.flush()
        logger.debug(f"Deleted bet {bet_id}")

    def _require(self, bet_id):
        bet = self.session.get(Bet, bet_id)
        if bet is None:
            raise StoreError(f"Bet {bet_id} does not exist")
        return bet
