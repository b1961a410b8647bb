"""Tests for logging configuration."""
from __future__ import annotations

import json

import pytest

from campaign_graph.logging import DEFAULT_LEVEL, configure_logging, get_logger


@pytest.fixture(autouse=True)
def default_logging():
    yield
    configure_logging()


def events(err: str) -> list[dict]:
    return [json.loads(line) for line in err.splitlines() if line.strip()]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_default_hides_info(self, capsys):
        configure_logging()
        logger = get_logger("campaign_graph.tests")

        logger.info("world.create", world_id="w1")
        logger.warning("schema.slow", statements=3)

        captured = capsys.readouterr()
        assert DEFAULT_LEVEL == "WARNING"
        assert captured.out == ""
        [event] = events(captured.err)
        assert event["event"] == "schema.slow"
        assert event["level"] == "warning"
        assert event["statements"] == 3

    def test_level_change_reaches_existing_loggers(self, capsys):
        logger = get_logger("campaign_graph.tests")

        configure_logging("INFO")
        logger.info("location.update", location_id="ten-towns", fields=["name"])
        logger.debug("hidden")

        [event] = events(capsys.readouterr().err)
        assert event["event"] == "location.update"
        assert event["logger"] == "campaign_graph.tests"
        assert event["fields"] == ["name"]
        assert "timestamp" in event

    def test_exception_is_rendered(self, capsys):
        configure_logging("ERROR")
        logger = get_logger("campaign_graph.tests")

        try:
            raise RuntimeError("connection reset")
        except RuntimeError:
            logger.exception("repository.transaction_failed", label="Location", mode="write")

        [event] = events(capsys.readouterr().err)
        assert event["level"] == "error"
        assert "RuntimeError: connection reset" in event["exception"]
