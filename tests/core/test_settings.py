"""Tests for rankbridge.core.settings: env-driven BridgeSettings."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from rankbridge.core.settings import BridgeSettings, get_settings, reset_settings


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    """Run from an empty directory so no stray .env is picked up."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "RANKBRIDGE_DEBUG",
        "RANKBRIDGE_LOG_LEVEL",
        "RANKBRIDGE_LOG_FORMAT",
        "RANKBRIDGE_RANK_TIMEOUT_SECONDS",
        "RANKBRIDGE_BUS_BACKEND",
        "RANKBRIDGE_REDIS_URL",
        "RANKBRIDGE_EXCHANGE_CHANNEL",
        "RANKBRIDGE_DATABASE_PATH",
        "RANKBRIDGE_PROFILE_FETCH_TIMEOUT",
        "RANKBRIDGE_COMMUNITY_BASE_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestDefaults:
    def test_defaults(self, isolated_env):
        settings = BridgeSettings()
        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert settings.log_format == "auto"
        assert settings.rank_timeout_seconds == 30.0
        assert settings.bus_backend == "memory"
        assert settings.redis_url == "redis://localhost:6379/0"
        assert settings.exchange_channel == "exchange"
        assert settings.database_path == Path.home() / ".rankbridge" / "identities.db"
        assert settings.profile_fetch_timeout == 10.0
        assert settings.community_base_url == "https://steamcommunity.com"


class TestEnvironment:
    def test_env_overrides(self, isolated_env, tmp_path):
        isolated_env.setenv("RANKBRIDGE_RANK_TIMEOUT_SECONDS", "5")
        isolated_env.setenv("RANKBRIDGE_BUS_BACKEND", "redis")
        isolated_env.setenv("RANKBRIDGE_DATABASE_PATH", str(tmp_path / "ids.db"))

        settings = BridgeSettings()
        assert settings.rank_timeout_seconds == 5.0
        assert settings.bus_backend == "redis"
        assert settings.database_path == tmp_path / "ids.db"

    def test_dotenv_file(self, isolated_env, tmp_path):
        (tmp_path / ".env").write_text("RANKBRIDGE_EXCHANGE_CHANNEL=ranks\n")
        assert BridgeSettings().exchange_channel == "ranks"

    def test_unrelated_env_ignored(self, isolated_env):
        isolated_env.setenv("RANKBRIDGE_SOMETHING_ELSE", "x")
        BridgeSettings()


class TestValidation:
    def test_non_positive_timeout_rejected(self, isolated_env):
        with pytest.raises(ValidationError):
            BridgeSettings(rank_timeout_seconds=0)

    def test_unknown_backend_rejected(self, isolated_env):
        with pytest.raises(ValidationError):
            BridgeSettings(bus_backend="kafka")

    def test_log_level_normalised(self, isolated_env):
        assert BridgeSettings(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self, isolated_env):
        with pytest.raises(ValidationError):
            BridgeSettings(log_level="chatty")


class TestDerived:
    def test_debug_forces_debug_level(self, isolated_env):
        assert BridgeSettings(debug=True, log_level="ERROR").effective_log_level == "DEBUG"
        assert BridgeSettings(log_level="ERROR").effective_log_level == "ERROR"

    @pytest.mark.parametrize(("fmt", "expected"), [("auto", None), ("json", True), ("console", False)])
    def test_json_logs(self, isolated_env, fmt, expected):
        assert BridgeSettings(log_format=fmt).json_logs is expected


class TestCache:
    def test_cached_until_reset(self, isolated_env):
        first = get_settings()
        assert get_settings() is first

        isolated_env.setenv("RANKBRIDGE_RANK_TIMEOUT_SECONDS", "2.5")
        assert get_settings().rank_timeout_seconds == 30.0

        reset_settings()
        assert get_settings().rank_timeout_seconds == 2.5
