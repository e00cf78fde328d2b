"""Tests for rankbridge.core.logging: structlog configuration and context."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

# Bound before the autouse fixture swaps it for a no-op
from rankbridge.core.logging import LogContext, configure_logging


@pytest.fixture
def restore_structlog(monkeypatch):
    saved = structlog.get_config()
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: None)
    yield
    structlog.configure(**saved)
    structlog.contextvars.clear_contextvars()


class TestConfigureLogging:
    def test_json_lines_carry_service_and_context(self, restore_structlog, capsys):
        configure_logging(level="INFO", json_format=True, service="rankbridge-test")
        logger = structlog.get_logger("rankbridge.test")

        with LogContext(global_id=76561198000000000):
            logger.info("rank_resolved", account_id=39734272, rank=12)

        line = capsys.readouterr().out.strip().splitlines()[-1]
        data = json.loads(line)
        assert data["event"] == "rank_resolved"
        assert data["level"] == "info"
        assert data["service.name"] == "rankbridge-test"
        assert data["global_id"] == 76561198000000000
        assert data["account_id"] == 39734272
        assert data["rank"] == 12
        assert "timestamp" in data

    def test_level_filters_below_threshold(self, restore_structlog, capsys):
        configure_logging(level="WARNING", json_format=True)
        logger = structlog.get_logger("rankbridge.test")

        logger.info("quiet")
        logger.warning("loud")

        out = capsys.readouterr().out
        assert "quiet" not in out
        assert "loud" in out

    def test_no_timestamp(self, restore_structlog, capsys):
        configure_logging(level="INFO", json_format=True, add_timestamp=False)
        structlog.get_logger("rankbridge.test").info("bare")

        data = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert "timestamp" not in data

    def test_bound_global_id_gets_account_id(self, restore_structlog, capsys):
        configure_logging(level="INFO", json_format=True)
        logger = structlog.get_logger("rankbridge.test")

        with LogContext(global_id=76561198000000001):
            logger.info("relationship_event")
        logger.info("rank_resolved", global_id=76561198000000000, account_id=7)
        logger.info("bus_connected")

        lines = [json.loads(line) for line in capsys.readouterr().out.strip().splitlines()]
        assert lines[0]["account_id"] == 39734273
        assert lines[1]["account_id"] == 7
        assert "account_id" not in lines[2]

    @pytest.mark.parametrize(
        ("level", "expected"),
        [("INFO", logging.WARNING), ("ERROR", logging.ERROR), ("DEBUG", logging.DEBUG)],
    )
    def test_library_loggers_quieted(self, restore_structlog, monkeypatch, level, expected):
        for name in ("httpx", "httpcore", "redis"):
            monkeypatch.setattr(logging.getLogger(name), "level", logging.NOTSET)

        configure_logging(level=level, json_format=True)

        for name in ("httpx", "httpcore", "redis"):
            assert logging.getLogger(name).level == expected


class TestLogContext:
    def setup_method(self):
        structlog.contextvars.clear_contextvars()

    def teardown_method(self):
        structlog.contextvars.clear_contextvars()

    def test_nested_rebind_restores_outer_value(self):
        with LogContext(global_id=1, voice_identity="abc"):
            with LogContext(global_id=2):
                assert structlog.contextvars.get_contextvars() == {"global_id": 2, "voice_identity": "abc"}
            assert structlog.contextvars.get_contextvars() == {"global_id": 1, "voice_identity": "abc"}
        assert structlog.contextvars.get_contextvars() == {}

    def test_log_context_sync(self):
        with LogContext(voice_identity="abc"):
            assert structlog.contextvars.get_contextvars()["voice_identity"] == "abc"
        assert "voice_identity" not in structlog.contextvars.get_contextvars()

    @pytest.mark.asyncio
    async def test_log_context_async(self):
        async with LogContext(global_id=5) as ctx:
            assert isinstance(ctx, LogContext)
            assert structlog.contextvars.get_contextvars()["global_id"] == 5
        assert "global_id" not in structlog.contextvars.get_contextvars()
