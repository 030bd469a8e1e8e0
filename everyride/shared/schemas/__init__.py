"""Shared schemas module."""

from everyride.shared.schemas.base import (
    BaseSchema,
    CamelSchema,
    RecordState,
    StartupOutcome,
    SuccessResponse,
)

__all__ = [
    "BaseSchema",
    "CamelSchema",
    "RecordState",
    "StartupOutcome",
    "SuccessResponse",
]
