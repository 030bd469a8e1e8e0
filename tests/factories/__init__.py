"""Test data factories for the Every Ride Challenge tracker.

Factories return plain dicts in the persisted (camelCase) format, the
shape a browser build would leave in storage.
"""

from tests.factories.challenge_factory import (
    make_catalog,
    make_challenge_data,
    make_event,
    make_history_data,
)
from tests.factories.storage_factory import (
    ACTIVE_KEY,
    DRAFT_KEY,
    HISTORY_KEY,
    FrozenClock,
    read_slot,
    write_slot,
)

__all__ = [
    "ACTIVE_KEY",
    "DRAFT_KEY",
    "HISTORY_KEY",
    "FrozenClock",
    "make_catalog",
    "make_challenge_data",
    "make_event",
    "make_history_data",
    "read_slot",
    "write_slot",
]
