"""Persistence backends for the challenge slots."""

from everyride.config import EveryRideSettings
from everyride.storage.backends import (
    JsonFileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    RedisKeyValueStore,
)


def build_store(settings: EveryRideSettings) -> KeyValueStore:
    """Construct the backend selected by ``settings.storage_backend``."""
    if settings.storage_backend == "memory":
        return MemoryKeyValueStore()
    if settings.storage_backend == "redis":
        return RedisKeyValueStore.from_url(settings.redis_url)
    return JsonFileKeyValueStore(settings.data_path)


__all__ = [
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "RedisKeyValueStore",
    "build_store",
]
