"""Tests for the HTTP standings provider."""

from unittest.mock import Mock, patch

import pytest
import requests

from league_pickem.services.standings_service import (
    MAX_RETRY_AFTER,
    StandingsProvider,
    parse_retry_after,
)
from league_pickem.utils.errors import StandingsUnavailable
from league_pickem.utils.rule_model import TeamPosition

SEASONS_PAYLOAD = {
    "seasons": [
        {"id": 58766, "year": "2024", "name": "Brasileiro Serie A 2024"},
        {"id": 48982, "year": "2023", "name": "Brasileiro Serie A 2023"},
        {"id": 12345, "year": "22/23", "name": "Split season"},
    ]
}

STANDINGS_PAYLOAD = {
    "standings": [
        {
            "rows": [
                {"team": {"id": 1, "name": "Botafogo"}, "points": 79},
                {"team": {"id": 2, "name": "Palmeiras"}, "points": 73},
                {"team": {"id": 3, "name": "Flamengo"}, "points": 70},
            ]
        }
    ]
}


def make_response(payload=None, status_code=200, headers=None):
    response = Mock()
    response.status_code = status_code
    response.headers = headers or {}
    response.json.return_value = payload
    return response


@pytest.fixture
def http_session():
    session = Mock()
    session.headers = {}
    return session


@pytest.fixture
def provider(app, http_session):
    return StandingsProvider(session=http_session)


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("league_pickem.services.standings_service.time.sleep") as sleep:
        yield sleep


class TestStandingsProvider:
    """Tests for fetching and caching standings."""

    def test_sets_user_agent(self, provider, http_session):
        assert "League-Table-Pickem" in http_session.headers["User-Agent"]

    def test_available_seasons_skip_split_years(self, provider, http_session):
        http_session.get.return_value = make_response(SEASONS_PAYLOAD)

        seasons = provider.get_available_seasons()

        assert [season["year"] for season in seasons] == [2024, 2023]
        assert seasons[0]["season_id"] == 58766
        http_session.get.assert_called_once_with(
            "https://api.sofascore.com/api/v1/unique-tournament/325/seasons", timeout=30
        )

    def test_get_standings_maps_rows_to_positions(self, provider, http_session):
        http_session.get.side_effect = [
            make_response(SEASONS_PAYLOAD),
            make_response(STANDINGS_PAYLOAD),
        ]

        table = provider.get_standings(2024)

        assert table == [
            TeamPosition(1, "Botafogo"),
            TeamPosition(2, "Palmeiras"),
            TeamPosition(3, "Flamengo"),
        ]
        assert http_session.get.call_args_list[1].args[0].endswith(
            "/unique-tournament/325/season/58766/standings/total"
        )

    def test_standings_are_cached(self, provider, http_session):
        http_session.get.side_effect = [
            make_response(SEASONS_PAYLOAD),
            make_response(STANDINGS_PAYLOAD),
        ]

        first = provider.get_standings(2024)
        second = StandingsProvider(session=http_session).get_standings(2024)

        assert first == second
        assert http_session.get.call_count == 2

    def test_unknown_year_is_unavailable(self, provider, http_session):
        http_session.get.return_value = make_response(SEASONS_PAYLOAD)

        with pytest.raises(StandingsUnavailable):
            provider.get_standings(1999)

    def test_retries_server_errors(self, provider, http_session, no_sleep):
        http_session.get.side_effect = [
            make_response(status_code=503),
            make_response(SEASONS_PAYLOAD),
        ]

        assert len(provider.get_available_seasons()) == 2
        assert no_sleep.call_count == 1

    def test_retry_after_http_date_is_honoured(self, provider, http_session, no_sleep):
        http_session.get.side_effect = [
            make_response(
                status_code=429,
                headers={"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"},
            ),
            make_response(SEASONS_PAYLOAD),
        ]

        assert len(provider.get_available_seasons()) == 2
        assert no_sleep.call_count == 1
        assert 0.0 <= no_sleep.call_args.args[0] <= MAX_RETRY_AFTER

    def test_rate_limited_with_http_date_is_unavailable(self, provider, http_session):
        http_session.get.return_value = make_response(
            status_code=429, headers={"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"}
        )

        with pytest.raises(StandingsUnavailable):
            provider.get_available_seasons()

        assert http_session.get.call_count == 3

    def test_gives_up_after_repeated_connection_errors(self, provider, http_session):
        http_session.get.side_effect = requests.exceptions.ConnectionError("down")

        with pytest.raises(StandingsUnavailable):
            provider.get_available_seasons()

        assert http_session.get.call_count == 3

    def test_client_error_is_not_retried(self, provider, http_session):
        http_session.get.return_value = make_response(status_code=404)

        with pytest.raises(StandingsUnavailable):
            provider.get_available_seasons()

        assert http_session.get.call_count == 1

    def test_malformed_payload_is_unavailable(self, provider, http_session):
        http_session.get.side_effect = [
            make_response(SEASONS_PAYLOAD),
            make_response({"standings": []}),
        ]

        with pytest.raises(StandingsUnavailable):
            provider.get_standings(2024)

    def test_duplicate_team_names_are_unavailable(self, provider, http_session):
        rows = STANDINGS_PAYLOAD["standings"][0]["rows"]
        http_session.get.side_effect = [
            make_response(SEASONS_PAYLOAD),
            make_response({"standings": [{"rows": rows + [rows[0]]}]}),
        ]

        with pytest.raises(StandingsUnavailable):
            provider.get_standings(2024)


class TestParseRetryAfter:
    """Tests for reading the Retry-After header."""

    def test_missing_header_uses_default(self):
        assert parse_retry_after(None, 2.0) == 2.0

    def test_delay_seconds(self):
        assert parse_retry_after("5", 1.0) == 5.0

    def test_delay_is_capped(self):
        assert parse_retry_after("3600", 1.0) == MAX_RETRY_AFTER

    def test_past_http_date_means_no_wait(self):
        assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT", 1.0) == 0.0

    def test_future_http_date_is_capped(self):
        assert parse_retry_after("Fri, 01 Jan 2100 00:00:00 GMT", 1.0) == MAX_RETRY_AFTER

    @pytest.mark.parametrize("value", ["soon", "", "nan", "inf"])
    def test_unreadable_value_uses_default(self, value):
        assert parse_retry_after(value, 4.0) == 4.0
