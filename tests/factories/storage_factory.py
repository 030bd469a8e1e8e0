"""Helpers for seeding and inspecting persisted slots."""

import json
from datetime import datetime, timedelta
from typing import Any

from everyride.storage.backends import MemoryKeyValueStore

ACTIVE_KEY = "erw_activeChallenge_v1"
HISTORY_KEY = "erw_challengeHistory_v1"
DRAFT_KEY = "erw_excludedDraft_v1"


class FrozenClock:
    """Callable clock that only moves when a test tells it to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def read_slot(kv: MemoryKeyValueStore, key: str) -> Any:
    """Decoded JSON of a committed slot, or None."""
    raw = kv.snapshot().get(key)
    return None if raw is None else json.loads(raw)


def write_slot(kv: MemoryKeyValueStore, key: str, value: Any) -> None:
    kv.set(key, json.dumps(value))
