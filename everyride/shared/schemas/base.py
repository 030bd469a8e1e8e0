"""Base schemas and common types used across the tracker."""

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# ===========================================
# ENUMS
# ===========================================


class RecordState(str, Enum):
    """Where a challenge record currently lives."""

    ACTIVE = "active"
    RECENT = "recent"
    SAVED = "saved"
    DISCARDED = "discarded"
    DELETED = "deleted"


class StartupOutcome(str, Enum):
    """What the startup check did with the active slot."""

    NO_ACTIVE = "no_active"
    KEPT = "kept"
    ARCHIVED = "archived"
    DISCARDED = "discarded"


# ===========================================
# BASE MODELS
# ===========================================


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
    )


class CamelSchema(BaseSchema):
    """Schema persisted and served with camelCase keys.

    Stored runs are shared with the browser build of the tracker, which
    writes ``startedAt``/``rideId`` style keys.
    """

    model_config = ConfigDict(alias_generator=to_camel)


# ===========================================
# COMMON RESPONSE WRAPPERS
# ===========================================


class SuccessResponse(BaseSchema):
    """Generic success response."""

    success: bool = True
    message: str | None = None
