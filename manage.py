#!/usr/bin/env python3
"""
League Table Pick'em Management CLI

This script provides command-line management functionality for the League Table Pick'em application.
"""

import json
import logging
import os

import click
from flask.cli import with_appcontext
from flask_migrate import downgrade, migrate, upgrade
from sqlalchemy.exc import SQLAlchemyError

from league_pickem import create_app, db
from league_pickem.models import Bet, BetGroup, GroupMember, ScoringRule
from league_pickem.services.bet_store import BetStore
from league_pickem.services.score_service import ScoreService
from league_pickem.services.standings_service import StandingsProvider
from league_pickem.utils.cache_utils import invalidate
from league_pickem.utils.errors import PickemError
from league_pickem.utils.rule_model import load_rules
from league_pickem.utils.timezone_utils import ensure_utc, format_deadline

# Rule set for a 20-team league: title, exact spots, continental and relegation zones
DEFAULT_RULES = [
    {
        "id": "champion",
        "type": "EXACT_CHAMPION",
        "points": 10,
        "priority": 1,
        "description": "Champion predicted correctly",
    },
    {
        "id": "exact_position",
        "type": "EXACT_POSITION",
        "points": 5,
        "priority": 2,
        "description": "Team finished exactly where predicted",
    },
    {
        "id": "libertadores_zone",
        "type": "ZONE_MATCH",
        "points": 3,
        "priority": 3,
        "ranges": [{"start": 1, "end": 6}],
        "description": "Team predicted inside the top six finished there",
    },
    {
        "id": "sudamericana_zone",
        "type": "ZONE_MATCH",
        "points": 2,
        "priority": 4,
        "ranges": [{"start": 7, "end": 12}],
        "description": "Team predicted in 7th to 12th finished there",
    },
    {
        "id": "relegation_zone",
        "type": "ZONE_MATCH",
        "points": 3,
        "priority": 5,
        "ranges": [{"start": 17, "end": 20}],
        "description": "Team predicted to go down was relegated",
    },
]


def create_cli_app():
    return create_app(os.environ.get("FLASK_CONFIG", "default"))


@click.group()
def cli():
    """League Table Pick'em Management CLI"""
    pass


# Rule Commands
@cli.group()
def rules():
    """Scoring rule commands"""
    pass


@rules.command()
@click.option(
    "--file",
    "rules_file",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file with a list of rules (default: built-in rule set)",
)
@click.option("--replace", is_flag=True, help="Delete existing rules first")
@with_appcontext
def seed(rules_file, replace):
    """Load scoring rules into the database"""
    try:
        if rules_file:
            with open(rules_file) as f:
                raw_rules = json.load(f)
        else:
            raw_rules = DEFAULT_RULES

        rule_list = load_rules(raw_rules)

        if replace:
            ScoringRule.query.delete()

        created = 0
        for rule in rule_list:
            if db.session.get(ScoringRule, rule.id):
                click.echo(f"⚪ Rule {rule.id} already exists, skipping")
                continue
            db.session.add(ScoringRule.from_rule(rule))
            created += 1

        db.session.commit()
        click.echo(f"✅ Seeded {created} rule(s)")

    except PickemError as e:
        db.session.rollback()
        click.echo(f"❌ Invalid rule configuration: {e.message}")
    except (OSError, ValueError) as e:
        click.echo(f"❌ Could not read rules file: {str(e)}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error seeding rules: {str(e)}")
        logging.error(f"Rule seeding failed - SQL error: {e}")


@rules.command("list")
@with_appcontext
def list_rules():
    """List all scoring rules"""
    rule_rows = ScoringRule.query.order_by(ScoringRule.priority, ScoringRule.id).all()

    if not rule_rows:
        click.echo("No rules found.")
        return

    click.echo("Rules:")
    for r in rule_rows:
        status = "🟢" if r.is_active else "⚪"
        ranges = ", ".join(f"{rr['start']}-{rr['end']}" for rr in r.ranges or []) or "all"
        click.echo(
            f"  {status} [{r.priority}] {r.id}: {r.rule_type} {r.points:g} pts ({ranges})"
        )


# Group Commands
@cli.group()
def group():
    """Bet group commands"""
    pass


@group.command()
@click.argument("name")
@click.option(
    "--deadline",
    required=True,
    type=click.DateTime(formats=["%Y-%m-%d %H:%M", "%Y-%m-%d"]),
    help="Prediction deadline in UTC (YYYY-MM-DD [HH:MM])",
)
@click.option("--rule", "rule_ids", multiple=True, help="Rule id to score the group with")
@click.option("--private", is_flag=True, help="Hide the leaderboard from non-members")
@click.option("--member", "members", multiple=True, help="User id to add as a member")
@with_appcontext
def create(name, deadline, rule_ids, private, members):
    """Create a bet group"""
    try:
        new_group = BetGroup(
            name=name,
            deadline_at=ensure_utc(deadline),
            is_private=private,
            allow_public_viewing=not private,
        )

        for rule_id in rule_ids:
            rule = db.session.get(ScoringRule, rule_id)
            if rule is None:
                click.echo(f"❌ Rule {rule_id} not found!")
                db.session.rollback()
                return
            new_group.rules.append(rule)

        db.session.add(new_group)
        db.session.flush()

        for user_id in members:
            db.session.add(GroupMember(user_id=user_id, group_id=new_group.id))

        db.session.commit()
        click.echo(
            f"✅ Created group {new_group.id} '{name}' "
            f"(deadline {format_deadline(new_group.deadline_at)})"
        )

    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating group: {str(e)}")
        logging.error(f"Group creation failed - SQL error: {e}")


@group.command("add-member")
@click.argument("group_id", type=int)
@click.argument("user_id")
@with_appcontext
def add_member(group_id, user_id):
    """Add a user to a group"""
    try:
        bet_group = db.session.get(BetGroup, group_id)
        if bet_group is None:
            click.echo(f"❌ Group {group_id} not found!")
            return

        if bet_group.is_user_member(user_id):
            click.echo(f"⚪ {user_id} is already a member of {bet_group.name}")
            return

        db.session.add(GroupMember(user_id=user_id, group_id=group_id))
        db.session.commit()
        click.echo(f"✅ Added {user_id} to {bet_group.name}")

    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error adding member: {str(e)}")
        logging.error(f"Adding member failed - SQL error: {e}")


# Bet Commands
@cli.group()
def bets():
    """Bet commands"""
    pass


@bets.command("list")
@click.argument("season", type=int)
@click.option("--user", "user_id", help="Only bets of this user")
@with_appcontext
def list_bets(season, user_id):
    """List bets for a season"""
    query = Bet.query.filter_by(season=season)
    if user_id:
        query = query.filter_by(user_id=user_id)
    bet_rows = query.order_by(Bet.user_id, Bet.group_id).all()

    if not bet_rows:
        click.echo("No bets found.")
        return

    for b in bet_rows:
        target = f"group {b.group_id}" if b.group_id else "default"
        champion = b.predictions[0] if b.predictions else "-"
        click.echo(f"  {b.user_id} [{target}] champion: {champion}")


# Score Commands
@cli.group()
def score():
    """Scoring commands"""
    pass


@score.command("user")
@click.argument("user_id")
@click.argument("season", type=int)
@click.option("--group", "group_id", type=int, help="Group to score (default bet otherwise)")
@with_appcontext
def score_user(user_id, season, group_id):
    """Show a user's score breakdown"""
    try:
        result = ScoreService(BetStore(), StandingsProvider()).score_user(
            user_id, season, group_id
        )
    except PickemError as e:
        click.echo(f"❌ {e.message}")
        return

    click.echo(f"🏆 {user_id} - {season}: {result['total']:g} points")
    for detail in result["details"]:
        teams = ", ".join(detail.scored_teams) or "-"
        click.echo(f"   {detail.rule_id}: {detail.points:g} ({teams})")


# Standings Commands
@cli.group()
def standings():
    """Standings commands"""
    pass


@standings.command()
@click.argument("season", type=int)
@with_appcontext
def refresh(season):
    """Drop cached standings for a season and fetch them again"""
    invalidate(StandingsProvider.get_standings.cache_key(season))
    try:
        table = StandingsProvider().get_standings(season)
    except PickemError as e:
        click.echo(f"❌ {e.message}")
        return

    click.echo(f"✅ Standings for {season}:")
    for team in table:
        click.echo(f"  {team.position:>2}. {team.name}")


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error initializing database: {str(e)}")


@db_cmd.command()
@with_appcontext
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error resetting database: {str(e)}")


# Database Migration Commands
@cli.group()
def db_migrate():
    """Database migration commands"""
    pass


@db_migrate.command()
@click.option("-m", "--message", required=True, help="Migration message")
@with_appcontext
def create_migration(message):
    """Create a new migration"""
    migrate(message=message)
    click.echo(f"✅ Migration created: {message}")


@db_migrate.command()
@click.option("--revision", default="head", help="Revision to upgrade to")
@with_appcontext
def apply_migrations(revision):
    """Apply migrations to database"""
    upgrade(revision=revision)
    click.echo(f"✅ Migrations applied to {revision}")


@db_migrate.command()
@click.option("--revision", required=True, help="Revision to downgrade to")
@with_appcontext
def rollback_migration(revision):
    """Rollback migrations to specific revision"""
    downgrade(revision=revision)
    click.echo(f"✅ Rolled back to {revision}")


if __name__ == "__main__":
    app = create_cli_app()
    with app.app_context():
        cli()
