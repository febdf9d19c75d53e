"""
Error types for the League Table Pick'em application

Every error raised on purpose by the scoring, bet and standings layers derives
from PickemError so the API can render it with a specific status code.
"""


class PickemError(Exception):
    """Base class for application errors"""

    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        """Convert error to dictionary for API responses"""
        data = {"error": self.message}
        if self.details:
            data["details"] = self.details
        return data


class ValidationError(PickemError):
    """Malformed rule configuration, prediction or season"""

    status_code = 400
    default_message = "Invalid data"


class DeadlineExpired(PickemError):
    """A submission targeted a group whose deadline has passed"""

    status_code = 409
    default_message = "Deadline date expired."


class GroupNotFound(PickemError):
    status_code = 404
    default_message = "Group not found"

    def __init__(self, group_id, message=None):
        self.group_id = group_id
        super().__init__(message or f"Group {group_id} not found", group_id=group_id)


class BetConflict(PickemError):
    """Another write already holds the (user, season, group) slot"""

    status_code = 409
    default_message = "A bet for this user, season and group already exists"


class StoreError(PickemError):
    """The persistence layer failed; the original exception is the __cause__"""

    status_code = 500
    default_message = "Failed to save bet"

    def to_dict(self):
        # Store internals are logged, never shown to the end user
        return {"error": self.default_message}


class StandingsUnavailable(PickemError):
    status_code = 503
    default_message = "Failed to fetch standings"
