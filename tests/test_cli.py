"""
Tests for CLI commands — listing views, fleet commands, and global options.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from opsfleet.main import cli


@pytest.fixture(autouse=True)
def no_config(tmp_path: Path, monkeypatch):
    """Run every command from a directory without opsfleet.yml."""
    monkeypatch.chdir(tmp_path)


def invoke(client, *args, **kwargs):
    runner = CliRunner()
    return runner.invoke(cli, list(args), obj={"client": client}, **kwargs)


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "OpsWorks" in result.output
        for command in ("stacks", "instances", "elbs", "deploy", "recipes"):
            assert command in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_invalid_config(self, mock_client, tmp_path: Path):
        config = tmp_path / "opsfleet.yml"
        config.write_text("poll_interval: -5\n")
        result = invoke(mock_client, "--config", str(config), "stacks")
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_region_and_profile_flags(self, mock_client, monkeypatch):
        created = {}

        def fake_control_plane(api_region, profile):
            created.update(api_region=api_region, profile=profile)
            return mock_client

        monkeypatch.setattr(
            "opsfleet.adapters.opsworks.OpsWorksControlPlane", fake_control_plane
        )
        result = CliRunner().invoke(
            cli, ["--region", "eu-west-1", "--profile", "ops", "stacks"]
        )
        assert result.exit_code == 0, result.output
        assert created == {"api_region": "eu-west-1", "profile": "ops"}


# ── Listing ──────────────────────────────────────────────────────────


class TestListingCommands:
    def test_stacks(self, mock_client):
        result = invoke(mock_client, "stacks", "-f", "region:us-west-1")
        assert result.exit_code == 0
        assert "wordpress-production" in result.output
        assert "wordpress-staging" in result.output
        assert "wordpress-dev" not in result.output

    def test_stacks_json(self, mock_client):
        result = invoke(mock_client, "stacks", "-f", "region:us-west-1,layer:database", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert len(data["stacks"]) == 2
        assert all(len(s["layers"]) == 1 for s in data["stacks"])

    def test_bad_filter(self, mock_client):
        result = invoke(mock_client, "stacks", "-f", "that:is:notright")
        assert result.exit_code == 1
        assert "❌ Incorrect filter" in result.output
        assert mock_client.call_log == []

    def test_duplicate_filter(self, mock_client):
        result = invoke(mock_client, "stacks", "-f", "env:production", "-f", "env:staging")
        assert result.exit_code == 1
        assert "same filter" in result.output

    def test_instances_csv(self, mock_client):
        result = invoke(mock_client, "instances", "--csv", "-f", "stack:wordpress-dev")
        assert result.exit_code == 0
        assert result.output.splitlines() == [
            "wordpress-dev,database,db1,online,,10.0.0.10",
            "wordpress-dev,wordpress,web1,online,52.8.0.1,10.0.0.20",
            "wordpress-dev,wordpress,web2,stopped,,10.0.0.21",
        ]

    def test_instances_tree(self, mock_client):
        result = invoke(mock_client, "instances", "-f", "layer:wordpress")
        assert result.exit_code == 0
        assert "web1" in result.output
        assert "stopped" in result.output
        assert "db1" not in result.output

    def test_elbs(self, mock_client):
        result = invoke(mock_client, "elbs")
        assert result.exit_code == 0
        assert "wordpress-lb" in result.output
        assert "OutOfService" in result.output
        assert "UnhealthyThreshold" in result.output

    def test_apps_hide_credentials(self, mock_client):
        result = invoke(mock_client, "apps")
        assert result.exit_code == 0
        assert "git@github.com:example/wordpress.git" in result.output
        assert "PRIVATE KEY" not in result.output

    def test_deployments(self, mock_client):
        result = invoke(mock_client, "deployments", "-n", "2", "-f", "stack:wordpress-dev")
        assert result.exit_code == 0
        assert "release 4.5" in result.output
        assert "Recipes: nginx::restart" in result.output
        assert "/deployments/b1e2c3d4-0002" in result.output
        assert "b1e2c3d4-0001" not in result.output

    def test_transport_error(self, mock_client):
        mock_client.set_failure("list_stacks", "Unable to locate credentials")
        result = invoke(mock_client, "stacks")
        assert result.exit_code == 1
        assert "❌ Unable to locate credentials" in result.output


# ── Fleet commands ───────────────────────────────────────────────────


class TestFleetCommands:
    def test_deploy(self, mock_client):
        result = invoke(mock_client, "deploy", "wordpress", "-y")
        assert result.exit_code == 0, result.output
        assert "Result: 3/3 succeeded" in result.output
        assert len(mock_client.requests) == 3

    def test_deploy_unknown_app(self, mock_client):
        result = invoke(mock_client, "deploy", "drupal", "-y")
        assert result.exit_code == 1
        assert "Could not find app drupal" in result.output
        assert mock_client.requests == []

    def test_confirmation_accepted(self, mock_client):
        result = invoke(mock_client, "configure", "-f", "layer:database", input="y\n")
        assert result.exit_code == 0, result.output
        assert "Running" in result.output
        assert "wordpress-production: database" in result.output
        assert len(mock_client.requests) == 3

    def test_confirmation_declined(self, mock_client):
        result = invoke(mock_client, "setup", input="n\n")
        assert result.exit_code == 1
        assert "Command aborted" in result.output
        assert mock_client.requests == []

    def test_recipes_json(self, mock_client):
        result = invoke(
            mock_client, "recipes", "nginx::restart, php::reload", "-f", "stack:wordpress-dev", "-y", "--json"
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["command"] == "execute_recipes"
        assert data["status"] == "ok"
        (request,) = mock_client.requests
        assert request.command.args == {"recipes": ["nginx::restart", "php::reload"]}

    def test_update_cookbooks_first(self, mock_client):
        result = invoke(mock_client, "setup", "-u", "-y", "-f", "stack:wordpress-dev")
        assert result.exit_code == 0, result.output
        assert [r.command.name for r in mock_client.requests] == [
            "update_custom_cookbooks",
            "setup",
        ]

    def test_update(self, mock_client):
        result = invoke(mock_client, "update", "-y", "-f", "region:us-east-1")
        assert result.exit_code == 0, result.output
        (request,) = mock_client.requests
        assert request.command.name == "update_custom_cookbooks"

    def test_partial_failure_exits_zero(self, mock_client, stack_records):
        mock_client.plan_deployment(stack_records[1].id, ["failed"])
        result = invoke(mock_client, "setup", "-y")
        assert result.exit_code == 0
        assert "1 of 3 operations failed" in result.output
        assert "wordpress-staging" in result.output
        assert f"/stack/{stack_records[1].id}/deployments/" in result.output

    def test_no_matching_stacks(self, mock_client):
        result = invoke(mock_client, "setup", "-y", "-f", "stack:nothing")
        assert result.exit_code == 1
        assert "No stacks matching your filters" in result.output

    def test_no_running_instance(self, mock_client):
        mock_client.set_failure(
            "create_deployment",
            "Please provide at least an instance ID of one running instance",
        )
        result = invoke(mock_client, "configure", "-y")
        assert result.exit_code == 1
        assert "No running instance matches your filters" in result.output
