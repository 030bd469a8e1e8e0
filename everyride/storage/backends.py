"""Key-value slot backends.

Every backend stores opaque string values (JSON text) under string keys,
the same contract as a browser's ``localStorage``. Writes made inside
``transaction()`` are buffered and flushed to the backend in one call,
so a record can be moved between two slots without ever being visible in
both or in neither.
"""

from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path

import redis
from redis.backoff import ExponentialBackoff
from redis.retry import Retry

from everyride.shared.utils.logging import get_logger

logger = get_logger(__name__)


class KeyValueStore(ABC):
    """Base class for string slot storage with buffered transactions."""

    def __init__(self) -> None:
        self._pending: dict[str, str | None] | None = None

    @abstractmethod
    def _read(self, key: str) -> str | None:
        """Return the committed value of *key*, or None if absent."""

    @abstractmethod
    def _write_many(self, changes: Mapping[str, str | None]) -> None:
        """Apply *changes* in one backend write; None values delete the key."""

    def get(self, key: str) -> str | None:
        """Get a value, seeing writes buffered by an open transaction."""
        if self._pending is not None and key in self._pending:
            return self._pending[key]
        return self._read(key)

    def set(self, key: str, value: str) -> None:
        """Set a value."""
        self._stage({key: value})

    def delete(self, key: str) -> None:
        """Delete a key. Deleting an absent key is a no-op."""
        self._stage({key: None})

    def close(self) -> None:
        """Release backend resources. Most backends hold none."""

    @property
    def in_transaction(self) -> bool:
        return self._pending is not None

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Buffer writes until the block exits, then commit them together.

        Nested blocks join the outermost one. If the block raises, the
        buffered writes are dropped and the committed state is unchanged.
        """
        if self._pending is not None:
            yield
            return

        self._pending = {}
        try:
            yield
        except BaseException:
            self._pending = None
            raise
        changes, self._pending = self._pending, None
        if changes:
            self._write_many(changes)

    def _stage(self, changes: Mapping[str, str | None]) -> None:
        if self._pending is not None:
            self._pending.update(changes)
        else:
            self._write_many(changes)


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store, used for tests and throwaway sessions."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        super().__init__()
        self._data: dict[str, str] = dict(initial or {})

    def _read(self, key: str) -> str | None:
        return self._data.get(key)

    def _write_many(self, changes: Mapping[str, str | None]) -> None:
        for key, value in changes.items():
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = value

    def snapshot(self) -> dict[str, str]:
        """Copy of the committed contents."""
        return dict(self._data)


class JsonFileKeyValueStore(KeyValueStore):
    """All slots in one JSON object on disk, rewritten atomically."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path).expanduser()

    def _read(self, key: str) -> str | None:
        return self._load_document().get(key)

    def _write_many(self, changes: Mapping[str, str | None]) -> None:
        document = self._load_document()
        for key, value in changes.items():
            if value is None:
                document.pop(key, None)
            else:
                document[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2, sort_keys=True)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _load_document(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}

        try:
            document = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("state_file_corrupt", path=str(self.path))
            return {}
        if not isinstance(document, dict):
            logger.warning("state_file_not_object", path=str(self.path))
            return {}
        return {key: value for key, value in document.items() if isinstance(value, str)}


def create_redis_client(url: str) -> redis.Redis:
    """Create a Redis client with retry on transient connection errors."""
    client = redis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        retry=Retry(ExponentialBackoff(), retries=3),
        retry_on_timeout=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        health_check_interval=30,
    )
    logger.info("redis_client_created", url=url.split("@")[-1])
    return client


class RedisKeyValueStore(KeyValueStore):
    """Slots stored as plain Redis string keys; commits use MULTI/EXEC."""

    def __init__(self, client: redis.Redis) -> None:
        super().__init__()
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisKeyValueStore:
        return cls(create_redis_client(url))

    def _read(self, key: str) -> str | None:
        value = self._client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def _write_many(self, changes: Mapping[str, str | None]) -> None:
        pipe = self._client.pipeline(transaction=True)
        for key, value in changes.items():
            if value is None:
                pipe.delete(key)
            else:
                pipe.set(key, value)
        pipe.execute()

    def close(self) -> None:
        self._client.close()
        logger.info("redis_client_closed")
