from flask_login import UserMixin


class ApiUser(UserMixin):
    """
    Caller identity resolved from the request

    Accounts live with the upstream auth provider; only the opaque user id is
    stored next to bets and memberships.
    """

    def __init__(self, user_id):
        self.id = str(user_id)

    def __repr__(self):
        return f"<ApiUser {self.id}>"

    def __eq__(self, other):
        return isinstance(other, ApiUser) and other.id == self.id

    def __hash__(self):
        return hash(self.id)
