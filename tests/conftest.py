"""
Shared test fixtures and configuration.

Provides an application built with the testing config (in-memory SQLite,
SimpleCache, no rate limiting), a fixed clock, group and rule factories, and
the bet services wired to the test database.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from league_pickem import create_app, db
from league_pickem.models import BetGroup, GroupMember, ScoringRule
from league_pickem.services.bet_service import BetLifecycleManager
from league_pickem.services.bet_store import BetStore
from league_pickem.services.group_directory import GroupDirectory
from league_pickem.utils.rule_model import TeamPosition, rule_from_dict

NOW = datetime(2024, 4, 1, 12, 0, tzinfo=timezone.utc)
SEASON = 2024
TEAMS = [f"Team {number:02d}" for number in range(1, 21)]


# =============================================================================
# APPLICATION FIXTURES
# =============================================================================

@pytest.fixture
def app():
    """Provide an application with a fresh in-memory database."""
    app = create_app("testing")
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers():
    return {"X-User-Id": "alice"}


@pytest.fixture
def clock():
    """A clock frozen at NOW."""
    return lambda: NOW


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def teams():
    return list(TEAMS)


@pytest.fixture
def reversed_teams():
    return list(reversed(TEAMS))


@pytest.fixture
def final_table():
    """Final standings matching TEAMS order."""
    return [TeamPosition(position=index + 1, name=name) for index, name in enumerate(TEAMS)]


@pytest.fixture
def make_group(app):
    """Factory creating a group with members and rules."""

    def _make(name="Friends", deadline=None, members=(), rules=(), **kwargs):
        group = BetGroup(
            name=name,
            deadline_at=deadline if deadline is not None else NOW + timedelta(days=7),
            **kwargs,
        )
        for rule in rules:
            group.rules.append(rule)
        db.session.add(group)
        db.session.flush()

        for user_id in members:
            db.session.add(GroupMember(user_id=user_id, group_id=group.id))

        db.session.commit()
        return group

    return _make


@pytest.fixture
def make_rule(app):
    """Factory storing a scoring rule row."""

    def _make(**data):
        row = ScoringRule.from_rule(rule_from_dict(data))
        db.session.add(row)
        db.session.commit()
        return row

    return _make


@pytest.fixture
def seeded_rules(make_rule):
    """Champion, exact position and a top-four zone."""
    return [
        make_rule(id="champion", type="EXACT_CHAMPION", points=10, priority=1),
        make_rule(id="exact", type="EXACT_POSITION", points=5, priority=2),
        make_rule(
            id="top_four",
            type="ZONE_MATCH",
            points=2,
            priority=3,
            ranges=[{"start": 1, "end": 4}],
        ),
    ]


# =============================================================================
# SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def store(app):
    return BetStore()


@pytest.fixture
def directory(app):
    return GroupDirectory()


@pytest.fixture
def manager(store, directory, clock):
    return BetLifecycleManager(store, directory, clock=clock, prediction_size=20)


@pytest.fixture
def standings(final_table):
    """Standings provider stub serving final_table."""
    provider = Mock()
    provider.get_standings.return_value = final_table
    return provider
