"""Unit tests for tracker settings."""

from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from everyride.config import (
    ACTIVE_CHALLENGE_SLOT,
    CHALLENGE_HISTORY_SLOT,
    EXCLUDED_DRAFT_SLOT,
    EveryRideSettings,
    get_settings,
)


class TestEveryRideSettings:
    def test_defaults(self, monkeypatch):
        for name in ("STORAGE_BACKEND", "RESUME_WINDOW_HOURS", "KEY_PREFIX", "TIMEZONE"):
            monkeypatch.delenv(f"EVERYRIDE_{name}", raising=False)
        settings = EveryRideSettings()
        assert settings.storage_backend == "file"
        assert settings.resume_window_hours == 36
        assert settings.day_rollover_hour == 0
        assert settings.tzinfo is None

    def test_storage_keys(self):
        settings = EveryRideSettings(key_prefix="erw")
        assert settings.storage_key(ACTIVE_CHALLENGE_SLOT) == "erw_activeChallenge_v1"
        assert settings.storage_key(CHALLENGE_HISTORY_SLOT) == "erw_challengeHistory_v1"
        assert settings.storage_key(EXCLUDED_DRAFT_SLOT) == "erw_excludedDraft_v1"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("EVERYRIDE_STORAGE_BACKEND", "redis")
        monkeypatch.setenv("EVERYRIDE_RESUME_WINDOW_HOURS", "12")
        monkeypatch.setenv("EVERYRIDE_TIMEZONE", "America/New_York")
        settings = EveryRideSettings()
        assert settings.storage_backend == "redis"
        assert settings.resume_window_hours == 12
        assert settings.tzinfo == ZoneInfo("America/New_York")

    @pytest.mark.parametrize("field,value", [
        ("storage_backend", "sqlite"),
        ("resume_window_hours", 0),
        ("day_rollover_hour", 24),
    ])
    def test_rejects_bad_values(self, field, value):
        with pytest.raises(ValidationError):
            EveryRideSettings(**{field: value})

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        get_settings.cache_clear()
