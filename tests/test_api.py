"""Tests for the JSON API."""

from datetime import timedelta
from unittest.mock import patch

import pytest

from conftest import NOW, SEASON
from league_pickem.utils.errors import StandingsUnavailable


@pytest.fixture
def provider_stub(final_table):
    with patch("league_pickem.routes.api.routes.StandingsProvider") as provider_cls:
        provider_cls.return_value.get_standings.return_value = final_table
        provider_cls.return_value.get_available_seasons.return_value = [
            {"year": SEASON, "season_id": 1, "name": "Serie A"}
        ]
        yield provider_cls.return_value


@pytest.fixture
def frozen_clock():
    # Deadlines in the fixtures are relative to NOW
    with patch("league_pickem.services.bet_service.get_utc_time", return_value=NOW):
        yield


class TestHealthAndAuth:
    """Tests for unauthenticated access."""

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.get_json()["status"] == "ok"

    def test_bets_require_user(self, client):
        response = client.get("/api/bets")

        assert response.status_code == 401
        assert response.get_json() == {"error": "Unauthorized"}

    def test_unknown_route_is_json(self, client):
        response = client.get("/api/nope")

        assert response.status_code == 404
        assert "error" in response.get_json()


class TestBetEndpoints:
    """Tests for submitting and listing bets."""

    def test_submit_and_list_default_bet(self, client, auth_headers, teams):
        response = client.post(
            "/api/bets",
            json={"predictions": teams, "season": SEASON},
            headers=auth_headers,
        )

        assert response.status_code == 201
        bets = response.get_json()["bets"]
        assert bets[0]["group_id"] is None
        assert bets[0]["user_id"] == "alice"

        listed = client.get(f"/api/bets?season={SEASON}", headers=auth_headers)
        assert listed.get_json()["bets"][0]["predictions"] == teams

    def test_list_bets_with_non_numeric_season_uses_current_year(self, client, auth_headers):
        with patch("league_pickem.routes.api.routes.get_utc_time", return_value=NOW):
            response = client.get("/api/bets?season=abc", headers=auth_headers)

        assert response.status_code == 200
        assert response.get_json() == {"season": NOW.year, "bets": []}

    def test_list_bets_rejects_non_positive_season(self, client, auth_headers):
        response = client.get("/api/bets?season=0", headers=auth_headers)

        assert response.status_code == 400

    def test_submit_to_expired_group_returns_conflict(self, client, auth_headers, make_group, teams):
        group = make_group(deadline=NOW - timedelta(days=1), members=["alice"])

        with patch("league_pickem.services.bet_service.get_utc_time", return_value=NOW):
            response = client.post(
                "/api/bets",
                json={"predictions": teams, "season": SEASON, "group_id": group.id},
                headers=auth_headers,
            )

        assert response.status_code == 409
        assert "expired" in response.get_json()["error"]

    def test_submit_to_unknown_group_returns_not_found(self, client, auth_headers, teams):
        response = client.post(
            "/api/bets",
            json={"predictions": teams, "season": SEASON, "group_id": 404},
            headers=auth_headers,
        )

        assert response.status_code == 404

    @pytest.mark.parametrize(
        "body",
        [
            {"season": SEASON},
            {"predictions": ["Team 01"], "season": SEASON},
            {"predictions": [f"Team {n:02d}" for n in range(1, 21)], "season": "last"},
            {"predictions": [f"Team {n:02d}" for n in range(1, 21)], "group_id": "x"},
        ],
    )
    def test_invalid_submission_returns_bad_request(self, client, auth_headers, body):
        response = client.post("/api/bets", json=body, headers=auth_headers)

        assert response.status_code == 400
        assert "error" in response.get_json()

    def test_non_json_body_returns_bad_request(self, client, auth_headers):
        response = client.post("/api/bets", data="nope", headers=auth_headers)

        assert response.status_code == 400

    def test_reassign_default_bet(self, client, auth_headers, make_group, teams, frozen_clock):
        group = make_group(deadline=NOW + timedelta(days=1), members=["alice"])
        client.post("/api/bets", json={"predictions": teams, "season": SEASON}, headers=auth_headers)

        response = client.post(
            "/api/bets/default/group",
            json={"group_id": group.id, "season": SEASON},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.get_json()["bet"]["group_id"] == group.id

    def test_reassign_without_default_bet(self, client, auth_headers, make_group, frozen_clock):
        group = make_group(deadline=NOW + timedelta(days=1))

        response = client.post(
            "/api/bets/default/group",
            json={"group_id": group.id, "season": SEASON},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.get_json()["bet"] is None


class TestScoringEndpoints:
    """Tests for rules, scores, leaderboards and standings."""

    def test_rules(self, client, seeded_rules):
        response = client.get("/api/rules")

        assert response.status_code == 200
        assert [rule["id"] for rule in response.get_json()["rules"]] == [
            "champion",
            "exact",
            "top_four",
        ]

    def test_rules_for_group_hide_inactive_rules(self, client, seeded_rules, make_rule, make_group):
        retired = make_rule(
            id="retired", type="EXACT_POSITION", points=1, priority=0, active=False
        )
        group = make_group(rules=[retired, seeded_rules[0]])

        response = client.get(f"/api/rules?group_id={group.id}")

        assert [rule["id"] for rule in response.get_json()["rules"]] == ["champion"]

    def test_rules_with_non_numeric_group_id(self, client, seeded_rules):
        response = client.get("/api/rules?group_id=abc")

        data = response.get_json()
        assert response.status_code == 200
        assert data["group_id"] is None
        assert len(data["rules"]) == 3

    def test_score(self, client, auth_headers, seeded_rules, provider_stub, store, teams):
        with store.transaction():
            store.create("alice", SEASON, None, teams)

        response = client.get(f"/api/score?season={SEASON}", headers=auth_headers)

        data = response.get_json()
        assert response.status_code == 200
        assert data["total"] == 105
        assert data["details"][0] == {"rule_id": "champion", "teams": ["Team 01"], "score": 10}

    def test_leaderboard(self, client, auth_headers, seeded_rules, provider_stub, store, make_group, teams, reversed_teams):
        group = make_group(members=["alice", "bob"])
        with store.transaction():
            store.create("bob", SEASON, group.id, teams)
            store.create("alice", SEASON, group.id, reversed_teams)

        response = client.get(f"/api/leaderboard/{group.id}?season={SEASON}", headers=auth_headers)

        leaderboard = response.get_json()["leaderboard"]
        assert [entry["user_id"] for entry in leaderboard] == ["bob", "alice"]
        assert leaderboard[0]["position"] == 1

    def test_private_leaderboard_hidden_from_outsiders(self, client, seeded_rules, make_group):
        group = make_group(members=["alice"], is_private=True, allow_public_viewing=False)

        response = client.get(f"/api/leaderboard/{group.id}", headers={"X-User-Id": "mallory"})

        assert response.status_code == 403

    def test_standings(self, client, provider_stub):
        response = client.get(f"/api/standings/{SEASON}")

        data = response.get_json()
        assert response.status_code == 200
        assert data["standings"][0] == {"position": 1, "name": "Team 01"}

    def test_future_standings_are_rejected(self, client, provider_stub):
        response = client.get("/api/standings/9999")

        assert response.status_code == 400

    def test_standings_outage_returns_service_unavailable(self, client, provider_stub):
        provider_stub.get_standings.side_effect = StandingsUnavailable()

        response = client.get(f"/api/standings/{SEASON}")

        assert response.status_code == 503
        assert response.get_json() == {"error": "Failed to fetch standings"}

    def test_seasons(self, client, provider_stub):
        response = client.get("/api/seasons")

        assert response.get_json()["seasons"][0]["year"] == SEASON
