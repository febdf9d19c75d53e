"""Tests for the management CLI."""

import json

import pytest
from click.testing import CliRunner

from conftest import SEASON
from league_pickem.models import BetGroup, GroupMember, ScoringRule
from manage import DEFAULT_RULES, cli


@pytest.fixture
def runner(app):
    return CliRunner()


class TestRuleCommands:
    """Tests for seeding and listing rules."""

    def test_seed_default_rules(self, runner):
        result = runner.invoke(cli, ["rules", "seed"])

        assert result.exit_code == 0
        assert ScoringRule.query.count() == len(DEFAULT_RULES)

    def test_seed_skips_existing_rules(self, runner):
        runner.invoke(cli, ["rules", "seed"])
        result = runner.invoke(cli, ["rules", "seed"])

        assert "Seeded 0 rule(s)" in result.output
        assert ScoringRule.query.count() == len(DEFAULT_RULES)

    def test_seed_rejects_invalid_file(self, runner, tmp_path):
        rules_file = tmp_path / "rules.json"
        rules_file.write_text(
            json.dumps(
                [
                    {
                        "id": "bad",
                        "type": "ZONE_MATCH",
                        "points": 1,
                        "priority": 1,
                        "ranges": [{"start": 4, "end": 1}],
                    }
                ]
            )
        )

        result = runner.invoke(cli, ["rules", "seed", "--file", str(rules_file)])

        assert "Invalid rule configuration" in result.output
        assert ScoringRule.query.count() == 0

    def test_list_rules(self, runner):
        runner.invoke(cli, ["rules", "seed"])

        result = runner.invoke(cli, ["rules", "list"])

        assert "champion" in result.output
        assert "17-20" in result.output


class TestGroupCommands:
    """Tests for group management."""

    def test_create_group_with_rules_and_members(self, runner):
        runner.invoke(cli, ["rules", "seed"])

        result = runner.invoke(
            cli,
            [
                "group",
                "create",
                "Office",
                "--deadline",
                f"{SEASON}-04-13 19:00",
                "--rule",
                "champion",
                "--member",
                "alice",
                "--member",
                "bob",
            ],
        )

        assert result.exit_code == 0
        group = BetGroup.query.filter_by(name="Office").one()
        assert [rule.id for rule in group.rules] == ["champion"]
        assert GroupMember.query.filter_by(group_id=group.id).count() == 2

    def test_create_group_with_unknown_rule(self, runner):
        result = runner.invoke(
            cli, ["group", "create", "Office", "--deadline", f"{SEASON}-04-13", "--rule", "nope"]
        )

        assert "Rule nope not found" in result.output
        assert BetGroup.query.count() == 0
