"""Pydantic v2 schemas for challenge runs and their API payloads."""

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from everyride.shared.schemas.base import CamelSchema
from everyride.shared.utils.datetime_utils import to_iso

# Fields whose canonical home is ``settings`` but which the browser build
# also reads from the top level of a stored run.
LEGACY_MIRRORED_FIELDS: tuple[tuple[str, str], ...] = (
    ("tagsText", "tags_text"),
    ("fundraisingLink", "fundraising_link"),
    ("excludedRideIds", "excluded_ride_ids"),
)


def unique_ride_ids(values: Iterable[Any]) -> list[str]:
    """Stringify ride ids, dropping blanks and repeats, keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value is None:
            continue
        ride_id = str(value).strip()
        if ride_id and ride_id not in seen:
            seen.add(ride_id)
            result.append(ride_id)
    return result


def timestamp_text(value: Any) -> Any:
    """Epoch milliseconds become ISO text; other non-text values are stringified."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return to_iso(datetime.fromtimestamp(value / 1000, tz=timezone.utc))
        except (OverflowError, OSError, ValueError):
            return str(value)
    return str(value)


# ===========================================
# STORED RECORDS
# ===========================================


class RideEvent(CamelSchema):
    """One logged ride. Keys added by other collaborators are kept as-is."""

    model_config = ConfigDict(extra="allow")

    ride_id: str | None = None
    timestamp: str | None = Field(
        default=None,
        validation_alias=AliasChoices("timestamp", "ts"),
    )
    park_id: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _bare_ride_id(cls, data: Any) -> Any:
        # A bare value is taken as the ride id.
        if isinstance(data, (dict, BaseModel)):
            return data
        return {"rideId": data}

    @field_validator("ride_id", "park_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp_text(cls, value: Any) -> Any:
        return timestamp_text(value)


class ChallengeSettings(CamelSchema):
    """User-editable settings of a run."""

    model_config = ConfigDict(extra="allow")

    tags_text: str = ""
    fundraising_link: str = ""
    excluded_ride_ids: list[str] = Field(default_factory=list)

    @field_validator("tags_text", "fundraising_link", mode="before")
    @classmethod
    def _text_or_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("excluded_ride_ids", mode="before")
    @classmethod
    def _ride_id_list(cls, value: Any) -> list[str]:
        if not isinstance(value, (list, tuple, set, frozenset)):
            return []
        return unique_ride_ids(value)


class ChallengeRecord(CamelSchema):
    """One run of the challenge, active or archived.

    Stored runs may carry ``tagsText``, ``fundraisingLink`` and
    ``excludedRideIds`` at the top level, inside ``settings``, or both.
    They are folded into ``settings`` once, here, preferring the top-level
    value; ``to_storage`` writes both places again.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    events: list[RideEvent] = Field(default_factory=list)
    started_at: str | None = None
    ended_at: str | None = None
    saved: bool | None = None
    saved_at: str | None = None
    settings: ChallengeSettings = Field(default_factory=ChallengeSettings)

    @field_validator("started_at", "ended_at", "saved_at", mode="before")
    @classmethod
    def _timestamp_text(cls, value: Any) -> Any:
        return timestamp_text(value)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("saved", mode="before")
    @classmethod
    def _saved_flag(cls, value: Any) -> bool | None:
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes")
        return bool(value) if isinstance(value, (int, float)) else None

    @model_validator(mode="before")
    @classmethod
    def _fold_legacy_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        data = dict(data)
        raw_settings = data.get("settings")
        if isinstance(raw_settings, ChallengeSettings):
            raw_settings = raw_settings.model_dump(by_alias=True)
        settings = dict(raw_settings) if isinstance(raw_settings, dict) else {}

        for camel, snake in LEGACY_MIRRORED_FIELDS:
            top_camel = data.pop(camel, None)
            top_snake = data.pop(snake, None)
            top = top_camel if top_camel is not None else top_snake
            if top is not None:
                settings.pop(snake, None)
                settings[camel] = top

        data["settings"] = settings
        if not isinstance(data.get("events"), list):
            data["events"] = []
        return data

    @property
    def tags_text(self) -> str:
        return self.settings.tags_text

    @property
    def fundraising_link(self) -> str:
        return self.settings.fundraising_link

    @property
    def excluded_ride_ids(self) -> list[str]:
        return list(self.settings.excluded_ride_ids)

    @property
    def rides_count(self) -> int:
        return len(self.events)

    def set_excluded_ride_ids(self, ride_ids: Iterable[Any]) -> None:
        self.settings.excluded_ride_ids = unique_ride_ids(ride_ids)

    def set_texts(
        self,
        tags_text: str | None = None,
        fundraising_link: str | None = None,
    ) -> None:
        if tags_text is not None:
            self.settings.tags_text = tags_text
        if fundraising_link is not None:
            self.settings.fundraising_link = fundraising_link

    def reopened(self) -> "ChallengeRecord":
        """Deep copy with the archive markers stripped, ready to be active again."""
        record = self.model_copy(deep=True)
        record.ended_at = None
        record.saved = None
        record.saved_at = None
        return record

    def to_storage(self) -> dict[str, Any]:
        """JSON-ready dict in the persisted (camelCase, mirrored) format."""
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        settings = payload.setdefault("settings", {})
        for camel, _ in LEGACY_MIRRORED_FIELDS:
            payload[camel] = settings.get(camel)
        return payload


class ResumeCandidate(CamelSchema):
    """The one history entry currently eligible to be resumed."""

    challenge: ChallengeRecord
    last_activity_iso: str | None
    hours_ago: float
    rides_count: int


# ===========================================
# PARK PROGRESS
# ===========================================


class CatalogRide(CamelSchema):
    """A ride from the externally supplied catalog."""

    model_config = ConfigDict(extra="ignore")

    id: str
    park_id: str = Field(validation_alias=AliasChoices("parkId", "park_id", "park"))
    active: bool = True

    @field_validator("id", "park_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        return value if isinstance(value, str) else str(value)


class ParkProgress(CamelSchema):
    """Completion counts for one park."""

    park_id: str
    total: int
    completed: int
    excluded: int

    @computed_field
    @property
    def remaining(self) -> int:
        return max(self.total - self.completed, 0)

    @computed_field
    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.completed >= self.total


# ===========================================
# API PAYLOADS
# ===========================================


class StartChallengeRequest(CamelSchema):
    """Request to start a new run."""

    tags_text: str = ""
    fundraising_link: str = ""


class LogRideRequest(CamelSchema):
    """Request to log one ride on the active run."""

    ride_id: str = Field(min_length=1)
    park_id: str | None = None


class UpdateSettingsRequest(CamelSchema):
    """Partial update of the active run's texts."""

    tags_text: str | None = None
    fundraising_link: str | None = None


class ExcludedRidesRequest(CamelSchema):
    """Replacement set of excluded ride ids."""

    ride_ids: list[str] = Field(default_factory=list)


class ExcludedRidesResponse(CamelSchema):
    """Current excluded ride ids."""

    ride_ids: list[str]


class SetSavedRequest(CamelSchema):
    """Request to mark a history entry saved or recent."""

    saved: bool


class EndChallengeResponse(CamelSchema):
    """Result of ending the active run."""

    archived: bool


class ProgressRequest(CamelSchema):
    """Catalog to measure the active run against."""

    catalog: list[CatalogRide]


class ParkProgressResponse(CamelSchema):
    """Per-park progress plus excluded totals."""

    parks: dict[str, ParkProgress]
    excluded_count: int
    catalog_size: int
