from functools import wraps

from flask import current_app, jsonify, request
from flask_login import current_user, login_required

from league_pickem import db, limiter
from league_pickem.models import BetGroup
from league_pickem.routes.api import bp
from league_pickem.services.bet_service import BetLifecycleManager
from league_pickem.services.bet_store import BetStore
from league_pickem.services.group_directory import GroupDirectory
from league_pickem.services.score_service import ScoreService
from league_pickem.services.standings_service import StandingsProvider
from league_pickem.utils.errors import GroupNotFound, ValidationError
from league_pickem.utils.timezone_utils import get_utc_time


def add_security_headers(f):
    """Add security headers to API responses"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        response = f(*args, **kwargs)
        if hasattr(response, "headers"):
            response.headers["Cache-Control"] = (
                "no-store, no-cache, must-revalidate, max-age=0"
            )
        return response

    return decorated_function


def _season_arg(value):
    """Season from a JSON body, defaulting to the current year"""
    if value is None or value == "":
        return get_utc_time().year
    if isinstance(value, bool):
        raise ValidationError("Season must be a positive integer")
    try:
        season = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Season must be a positive integer")
    if season <= 0:
        raise ValidationError("Season must be a positive integer")
    return season


def _query_season():
    season = request.args.get("season", type=int)
    if season is None:
        return get_utc_time().year
    if season <= 0:
        raise ValidationError("Season must be a positive integer")
    return season


def _group_arg(value):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("group_id must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("group_id must be an integer")


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _lifecycle_manager():
    return BetLifecycleManager(
        BetStore(),
        GroupDirectory(),
        prediction_size=current_app.config.get("PREDICTION_SIZE") or None,
    )


def _score_service():
    return ScoreService(BetStore(), StandingsProvider())


@bp.route("/health")
def health():
    """Liveness probe"""
    return jsonify({"status": "ok", "time": get_utc_time().isoformat()})


@bp.route("/bets")
@login_required
@add_security_headers
def list_bets():
    """Get the current user's bets for a season"""
    season = _query_season()
    bets = BetStore().find(current_user.id, season)
    return jsonify({"season": season, "bets": [bet.to_dict() for bet in bets]})


@bp.route("/bets", methods=["POST"])
@login_required
@limiter.limit("30 per minute")
@add_security_headers
def submit_bet():
    """Save a prediction for one group, the default bet or every open group"""
    data = _json_body()
    if "predictions" not in data:
        raise ValidationError("predictions is required")

    bets = _lifecycle_manager().submit_prediction(
        current_user.id,
        data["predictions"],
        _season_arg(data.get("season")),
        target_group_id=_group_arg(data.get("group_id")),
    )
    return jsonify({"success": True, "bets": [bet.to_dict() for bet in bets]}), 201


@bp.route("/bets/default/group", methods=["POST"])
@login_required
@limiter.limit("30 per minute")
@add_security_headers
def reassign_default_bet():
    """Move the current user's default bet into a group"""
    data = _json_body()
    group_id = _group_arg(data.get("group_id"))
    if group_id is None:
        raise ValidationError("group_id is required")

    bet = _lifecycle_manager().reassign_default_bet_group(
        current_user.id, group_id, _season_arg(data.get("season"))
    )
    if bet is None:
        return jsonify({"success": True, "bet": None})
    return jsonify({"success": True, "bet": bet.to_dict()})


@bp.route("/rules")
def rules():
    """Get the rules a group (or the whole league) is scored with"""
    group_id = request.args.get("group_id", type=int)
    rule_list = ScoreService(BetStore(), standings=None).get_rules(group_id)
    return jsonify({"group_id": group_id, "rules": [rule.to_dict() for rule in rule_list]})


@bp.route("/score")
@login_required
@add_security_headers
def user_score():
    """Get the current user's score breakdown"""
    season = _query_season()
    group_id = request.args.get("group_id", type=int)

    result = _score_service().score_user(current_user.id, season, group_id)
    return jsonify(
        {
            "season": season,
            "group_id": group_id,
            "total": result["total"],
            "details": [detail.to_dict() for detail in result["details"]],
        }
    )


@bp.route("/leaderboard/<int:group_id>")
@login_required
def group_leaderboard(group_id):
    """Get leaderboard for a group"""
    group = db.session.get(BetGroup, group_id)
    if group is None:
        raise GroupNotFound(group_id)

    if (
        group.is_private
        and not group.allow_public_viewing
        and not group.is_user_member(current_user.id)
    ):
        return jsonify({"error": "Not a member of this group"}), 403

    season = _query_season()
    leaderboard = _score_service().group_leaderboard(group_id, season)

    return jsonify(
        {
            "group": group.to_dict(),
            "season": season,
            "leaderboard": [
                {
                    "position": index + 1,
                    "user_id": entry["user_id"],
                    "total": entry["total"],
                    "details": [detail.to_dict() for detail in entry["details"]],
                }
                for index, entry in enumerate(leaderboard)
            ],
        }
    )


@bp.route("/seasons")
def seasons():
    """Get the seasons the standings provider knows about"""
    return jsonify({"seasons": StandingsProvider().get_available_seasons()})


@bp.route("/standings/<int:year>")
def standings(year):
    """Get the standings table for a season"""
    if year > get_utc_time().year:
        raise ValidationError("Invalid year parameter")

    table = StandingsProvider().get_standings(year)
    return jsonify({"year": year, "standings": [team.to_dict() for team in table]})
