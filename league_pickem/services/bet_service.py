"""
Bet lifecycle manager

Decides which Bet records a submitted prediction creates or updates:

- a user's first submission creates one bet, tied to the target group or to no
  group at all (the "default" bet);
- a submission for one group supersedes the default bet and writes the
  group's bet;
- a submission without a group writes every group of the user whose deadline
  has not passed, and supersedes the default bet.

Deadlines are checked against the injected clock before anything is written,
and every submission runs inside a single store transaction.
"""

from league_pickem.utils.errors import BetConflict, DeadlineExpired, ValidationError
from league_pickem.utils.logging_config import ContextualLogger
from league_pickem.utils.timezone_utils import format_deadline, get_utc_time, is_deadline_passed


def validate_predictions(predictions, prediction_size=None):
    """
    Check the shape of a submitted prediction.

    Args:
        predictions: ordered team names
        prediction_size: exact number of teams expected, None to skip

    Returns:
        list: the predictions with surrounding whitespace stripped

    Raises:
        ValidationError: when the prediction is empty, has blank or repeated
            names, or has the wrong length
    """
    if not isinstance(predictions, (list, tuple)) or not predictions:
        raise ValidationError("Predictions must be a non-empty list of team names")

    cleaned = []
    for name in predictions:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Every prediction must be a team name")
        cleaned.append(name.strip())

    if len(set(cleaned)) != len(cleaned):
        raise ValidationError("A team can only appear once in a prediction")

    if prediction_size and len(cleaned) != prediction_size:
        raise ValidationError(
            f"Predictions must rank exactly {prediction_size} teams, got {len(cleaned)}"
        )

    return cleaned


def validate_season(season):
    if isinstance(season, bool) or not isinstance(season, int) or season <= 0:
        raise ValidationError("Season must be a positive integer")
    return season


class BetLifecycleManager:
    """Creates, updates and moves a user's bets across groups"""

    def __init__(self, store, directory, clock=None, prediction_size=None):
        self.store = store
        self.directory = directory
        self.clock = clock or get_utc_time
        self.prediction_size = prediction_size
        self.logger = ContextualLogger(__name__)

    def submit_prediction(self, user_id, predictions, season, target_group_id=None):
        """
        Save a user's prediction for a season.

        Args:
            user_id: id of the predicting user
            predictions: ordered team names, index 0 is the predicted champion
            season: season year
            target_group_id: group to write, or None for the default bet / all
                open groups

        Returns:
            list[Bet]: the bets created or updated

        Raises:
            ValidationError, GroupNotFound, DeadlineExpired, BetConflict, StoreError
        """
        predictions = validate_predictions(predictions, self.prediction_size)
        season = validate_season(season)
        log = self.logger.bind(user_id=user_id, season=season)
        now = self.clock()

        if target_group_id is not None:
            self._ensure_open(target_group_id, now)

        with self.store.transaction():
            existing = self.store.find(user_id, season)

            if not existing:
                bets = [self.store.create(user_id, season, target_group_id, predictions)]
            elif target_group_id is not None:
                bets = [
                    self._write_group_bet(
                        user_id, season, target_group_id, predictions, existing
                    )
                ]
            else:
                bets = self._write_open_groups(user_id, season, predictions, existing, now)

        log.info(
            f"Saved prediction to {len(bets)} bet(s) "
            f"(groups: {[bet.group_id for bet in bets]})"
        )
        return bets

    def reassign_default_bet_group(self, user_id, group_id, season):
        """
        Move the default bet onto a group, keeping its predictions.

        Returns:
            Bet or None: the moved bet, None when the user has no default bet

        Raises:
            GroupNotFound, DeadlineExpired, BetConflict, StoreError
        """
        season = validate_season(season)
        log = self.logger.bind(user_id=user_id, season=season)
        group = self.directory.get_group(group_id)

        with self.store.transaction():
            default_bet = self.store.find_default(user_id, season)
            if default_bet is None:
                log.debug(f"No default bet to move into group {group_id}")
                return None

            if is_deadline_passed(group.deadline_at, self.clock()):
                raise DeadlineExpired(
                    f"Deadline for group {group_id} expired on "
                    f"{format_deadline(group.deadline_at)}.",
                    group_id=group_id,
                )

            if self.store.find_by_group(user_id, season, group_id) is not None:
                raise BetConflict(
                    f"User already has a bet in group {group_id} for {season}",
                    group_id=group_id,
                )

            bet = self.store.set_group(default_bet.id, group_id)

        log.info(f"Moved default bet {bet.id} into group {group_id}")
        return bet

    def _ensure_open(self, group_id, now):
        group = self.directory.get_group(group_id)
        if is_deadline_passed(group.deadline_at, now):
            raise DeadlineExpired(
                f"Deadline for group {group_id} expired on "
                f"{format_deadline(group.deadline_at)}.",
                group_id=group_id,
            )
        return group

    def _write_group_bet(self, user_id, season, group_id, predictions, existing):
        by_group = {bet.group_id: bet for bet in existing}

        default_bet = by_group.get(None)
        if default_bet is not None:
            self.store.delete(default_bet.id)

        group_bet = by_group.get(group_id)
        if group_bet is not None:
            return self.store.update(group_bet.id, predictions)
        return self.store.create(user_id, season, group_id, predictions)

    def _write_open_groups(self, user_id, season, predictions, existing, now):
        open_groups = [
            group
            for group in self.directory.get_user_groups(user_id)
            if not is_deadline_passed(group.deadline_at, now)
        ]
        if not open_groups:
            raise DeadlineExpired("Deadline date expired for all of your groups.")

        by_group = {bet.group_id: bet for bet in existing}

        default_bet = by_group.get(None)
        if default_bet is not None:
            self.store.delete(default_bet.id)

        bets = []
        for group in open_groups:
            group_bet = by_group.get(group.group_id)
            if group_bet is not None:
                bets.append(self.store.update(group_bet.id, predictions))
            else:
                bets.append(
                    self.store.create(user_id, season, group.group_id, predictions)
                )
        return bets
