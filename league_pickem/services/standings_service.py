"""
Standings provider

Fetches final league tables from a SofaScore-style JSON API with retry and
backoff, and caches them through Flask-Caching.
"""

import logging
import math
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from functools import wraps

import requests
from flask import current_app

from league_pickem.utils.cache_utils import cached_method
from league_pickem.utils.errors import StandingsUnavailable, ValidationError
from league_pickem.utils.rule_model import TeamPosition, validate_table

logger = logging.getLogger(__name__)

USER_AGENT = "League-Table-Pickem/1.0"

# Upper bound on how long a Retry-After header can make us wait
MAX_RETRY_AFTER = 60.0


def parse_retry_after(value, default):
    """
    Seconds to wait from a Retry-After header

    Accepts both the delay-seconds and the HTTP-date forms; anything else
    falls back to default.
    """
    if value is None:
        return default
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        try:
            retry_at = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return default
        if retry_at is None:
            return default
        if retry_at.tzinfo is None:
            retry_at = retry_at.replace(tzinfo=timezone.utc)
        seconds = (retry_at - datetime.now(timezone.utc)).total_seconds()
    if not math.isfinite(seconds):
        return default
    return min(max(seconds, 0.0), MAX_RETRY_AFTER)


def retry_with_backoff(max_retries=3, base_delay=1.0, backoff_factor=2.0):
    """
    Decorator to retry HTTP calls on rate limiting, server errors and
    connection failures with exponential backoff
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            for attempt in range(max_retries):
                delay = base_delay * (backoff_factor**attempt)
                last_attempt = attempt == max_retries - 1
                try:
                    response = func(self, *args, **kwargs)
                except requests.exceptions.RequestException as e:
                    logger.warning(
                        f"Request failed: {e}. Retry {attempt + 1}/{max_retries}"
                    )
                    if last_attempt:
                        raise StandingsUnavailable(
                            "Standings provider is unreachable"
                        ) from e
                    time.sleep(delay)
                    continue

                if response.status_code == 429 or response.status_code >= 500:
                    if last_attempt:
                        break
                    if response.status_code == 429:
                        delay = parse_retry_after(
                            response.headers.get("Retry-After"), delay
                        )
                    logger.warning(
                        f"Standings provider returned {response.status_code}. "
                        f"Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    time.sleep(delay)
                    continue

                return response

            raise StandingsUnavailable(
                f"Standings provider still failing after {max_retries} attempts"
            )

        return wrapper

    return decorator


class StandingsProvider:
    """
    Serves final standings tables by season year
    """

    def __init__(self, base_url=None, tournament_id=None, timeout=None, session=None):
        config = current_app.config
        self.base_url = (base_url or config["STANDINGS_API_BASE_URL"]).rstrip("/")
        self.tournament_id = tournament_id or config["STANDINGS_TOURNAMENT_ID"]
        self.timeout = timeout or config.get("STANDINGS_TIMEOUT", 30)
        self.session = session or requests.Session()
        self.session.headers.update(
            {"User-Agent": USER_AGENT, "Content-Type": "application/json"}
        )

    @retry_with_backoff(max_retries=3, base_delay=1.0)
    def _request(self, path):
        return self.session.get(f"{self.base_url}{path}", timeout=self.timeout)

    def _get_json(self, path):
        response = self._request(path)
        if response.status_code != 200:
            logger.error(f"HTTP error {response.status_code}: {path}")
            raise StandingsUnavailable(
                f"Standings provider returned {response.status_code}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise StandingsUnavailable("Standings provider returned invalid JSON") from e

    @cached_method("standings", timeout_setting="STANDINGS_CACHE_TIMEOUT")
    def get_available_seasons(self):
        """
        Seasons the provider knows about, newest first

        Returns:
            list[dict]: {"year", "season_id", "name"} per season
        """
        data = self._get_json(f"/unique-tournament/{self.tournament_id}/seasons")

        seasons = []
        for item in data.get("seasons") or []:
            try:
                year = int(item["year"])
            except (KeyError, TypeError, ValueError):
                # Split years like "23/24" are not playable seasons here
                continue
            seasons.append(
                {"year": year, "season_id": item.get("id"), "name": item.get("name")}
            )

        seasons.sort(key=lambda season: season["year"], reverse=True)
        return seasons

    def get_season_id(self, year):
        for season in self.get_available_seasons():
            if season["year"] == year:
                return season["season_id"]
        return None

    @cached_method("standings", timeout_setting="STANDINGS_CACHE_TIMEOUT")
    def get_standings(self, season):
        """
        Final (or current) table for a season year

        Returns:
            list[TeamPosition]: positions 1..N

        Raises:
            StandingsUnavailable: unknown year, HTTP failure or malformed table
        """
        season_id = self.get_season_id(season)
        if season_id is None:
            raise StandingsUnavailable(f"No standings available for {season}")

        data = self._get_json(
            f"/unique-tournament/{self.tournament_id}/season/{season_id}/standings/total"
        )

        try:
            rows = data["standings"][0]["rows"]
            table = [
                TeamPosition(position=index + 1, name=row["team"]["name"])
                for index, row in enumerate(rows)
            ]
        except (KeyError, IndexError, TypeError) as e:
            raise StandingsUnavailable(
                f"Malformed standings payload for {season}"
            ) from e

        try:
            validate_table(table)
        except ValidationError as e:
            raise StandingsUnavailable(f"Invalid standings for {season}: {e.message}") from e

        logger.info(f"Fetched standings for {season} ({len(table)} teams)")
        return table
