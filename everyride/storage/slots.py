"""JSON values stored under a single key."""

import json
from typing import Any

from everyride.shared.utils.logging import get_logger

from .backends import KeyValueStore

logger = get_logger(__name__)


class JsonSlot:
    """One JSON document under a fixed key of a :class:`KeyValueStore`."""

    def __init__(self, kv: KeyValueStore, key: str):
        self.kv = kv
        self.key = key

    def load(self) -> Any | None:
        """Decoded value, or None when absent or not valid JSON."""
        raw = self.kv.get(self.key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("slot_json_corrupt", key=self.key, size=len(raw))
            return None

    def save(self, value: Any) -> None:
        self.kv.set(self.key, json.dumps(value, separators=(",", ":")))

    def clear(self) -> None:
        self.kv.delete(self.key)
