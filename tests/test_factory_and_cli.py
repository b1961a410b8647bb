"""Tests for the repository factory and the campaign-graph CLI."""
from __future__ import annotations

import dataclasses
import json
from pathlib import Path

import pytest
from conftest import entity
from typer.testing import CliRunner

from campaign_graph.cli import app
from campaign_graph.db.schema import SCHEMA_STATEMENTS
from campaign_graph.repositories import GraphRepository, LocationRepository, RepositoryFactory

runner = CliRunner()


@pytest.fixture()
def cli_executor(executor, monkeypatch):
    monkeypatch.setattr("campaign_graph.cli.get_executor", lambda: executor)
    return executor


class TestRepositoryFactory:
    """Tests for RepositoryFactory."""

    def test_repository_types(self, executor):
        repos = RepositoryFactory.create(executor)

        assert isinstance(repos.locations, LocationRepository)
        assert isinstance(repos.graph, GraphRepository)

    def test_repositories_share_executor(self, executor):
        repos = RepositoryFactory.create(executor)

        for field in dataclasses.fields(repos):
            assert getattr(repos, field.name).executor is executor

    def test_factory_is_frozen(self, executor):
        repos = RepositoryFactory.create(executor)

        with pytest.raises(dataclasses.FrozenInstanceError):
            repos.locations = None


class TestCli:
    """Tests for the CLI commands against an in-memory executor."""

    def test_init_schema(self, cli_executor):
        result = runner.invoke(app, ["init-schema"], catch_exceptions=False)

        assert result.exit_code == 0
        assert f"Applied {len(SCHEMA_STATEMENTS)} schema statements" in result.output
        assert len(cli_executor.calls) == len(SCHEMA_STATEMENTS)
        assert cli_executor.closed

    def test_stats(self, cli_executor):
        cli_executor.on("AS entity LIMIT 1", entity(campaign_id="c1", name="Icewind Dale"))
        cli_executor.on(
            "AS sessions",
            [{"campaign_id": "c1", "sessions": 3, "characters": 5, "locations": 2, "items": 0, "events": 7, "powers": 1}],
        )

        result = runner.invoke(app, ["stats", "c1"], catch_exceptions=False)

        assert result.exit_code == 0
        assert "Icewind Dale" in result.output
        assert "Characters" in result.output
        assert cli_executor.closed

    def test_stats_for_missing_campaign(self, cli_executor):
        result = runner.invoke(app, ["stats", "nope"])

        assert result.exit_code == 1
        assert "Campaign not found: nope" in result.output
        assert cli_executor.closed

    def test_graph_rejects_two_starts(self, cli_executor):
        result = runner.invoke(app, ["graph", "--world-id", "w1", "--character-id", "ch1"])

        assert result.exit_code == 1
        assert "Invalid graph query" in result.output
        assert cli_executor.calls == []

    def test_graph_to_stdout(self, cli_executor):
        cli_executor.on(
            "AS node",
            [{"node": {"element_id": "e1", "labels": ["Character"], "properties": {"character_id": "ch1", "name": "Drizzt"}}}],
        )
        cli_executor.on("AS edges", [])

        result = runner.invoke(app, ["graph", "--character-id", "ch1", "--depth", "1"], catch_exceptions=False)

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["nodes"][0]["id"] == "ch1"
        assert payload["edges"] == []

    def test_hierarchy_to_file(self, cli_executor, tmp_path: Path):
        cli_executor.on(
            "AS level0",
            [{"level0": {"world_id": "w1", "name": "Forgotten Realms"}, "level1": {"campaign_id": "c1"}}],
        )
        output = tmp_path / "hierarchy.json"

        result = runner.invoke(
            app, ["hierarchy", "--world-id", "w1", "--depth", "1", "--output", str(output)], catch_exceptions=False
        )

        assert result.exit_code == 0
        data = json.loads(output.read_text())
        assert [node["id"] for node in data["nodes"]] == ["w1", "c1"]
        assert data["edges"][0]["id"] == "w2c_w1_c1"
        assert cli_executor.closed

    def test_hierarchy_depth_is_checked(self, cli_executor):
        result = runner.invoke(app, ["hierarchy", "--depth", "5"])

        assert result.exit_code == 1
        assert "Depth must be between 1 and 3" in result.output
        assert cli_executor.calls == []

    def test_unknown_log_level(self, cli_executor):
        result = runner.invoke(app, ["--log-level", "LOUD", "init-schema"])

        assert result.exit_code == 1
        assert cli_executor.calls == []
