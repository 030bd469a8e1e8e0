"""Configuration for the challenge tracker."""

from datetime import tzinfo
from functools import lru_cache
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo

from pydantic import Field
from pydantic_settings import BaseSettings


class EveryRideSettings(BaseSettings):
    """Settings for persistence, day boundaries and logging."""

    model_config = {"env_prefix": "EVERYRIDE_", "case_sensitive": False}

    # Storage Settings
    storage_backend: Literal["memory", "file", "redis"] = Field(
        default="file",
        description="Where the three challenge slots are persisted",
    )
    data_path: Path = Field(
        default=Path.home() / ".everyride" / "state.json",
        description="JSON document used by the file backend",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Connection URL used by the redis backend",
    )
    key_prefix: str = Field(
        default="erw",
        description="Prefix for the persisted slot keys",
    )

    # Challenge Policy Settings
    resume_window_hours: float = Field(
        default=36,
        gt=0,
        description="How long after its last ride a finished run can be resumed",
    )
    day_rollover_hour: int = Field(
        default=0,
        ge=0,
        le=23,
        description="Local hour at which a new challenge day begins (0 = midnight)",
    )
    timezone: str | None = Field(
        default=None,
        description="IANA timezone for the challenge day; unset uses host local time",
    )

    # Logging Settings
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=False, description="Emit JSON log lines")

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Bind address for run.py")
    port: int = Field(default=8000, description="Bind port for run.py")

    @property
    def tzinfo(self) -> tzinfo | None:
        """Timezone used for the logical challenge day, or None for host local."""
        if not self.timezone:
            return None
        return ZoneInfo(self.timezone)

    def storage_key(self, name: str) -> str:
        """Full key of a persisted slot, e.g. ``erw_activeChallenge_v1``."""
        return f"{self.key_prefix}_{name}_v1"


@lru_cache
def get_settings() -> EveryRideSettings:
    """Get cached tracker settings."""
    return EveryRideSettings()


# Slot names
ACTIVE_CHALLENGE_SLOT = "activeChallenge"
CHALLENGE_HISTORY_SLOT = "challengeHistory"
EXCLUDED_DRAFT_SLOT = "excludedDraft"
