"""History of finished runs.

Entries are kept in insertion order, oldest first. Which entry counts as
"most recent" is decided by last ride activity, never by list position,
so saving or un-saving an old run does not change the resume candidate.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import ValidationError

from everyride.shared.utils.datetime_utils import parse_iso, to_iso, utcnow
from everyride.shared.utils.logging import get_logger
from everyride.storage.backends import KeyValueStore
from everyride.storage.slots import JsonSlot

from .schemas import ChallengeRecord
from .time_policy import get_challenge_last_activity_iso

logger = get_logger(__name__)


def new_history_id() -> str:
    return uuid4().hex


def _has_id(item: Any, challenge_id: str | None) -> bool:
    return isinstance(item, ChallengeRecord) and item.id == challenge_id


def _activity_key(record: ChallengeRecord) -> datetime | None:
    return parse_iso(get_challenge_last_activity_iso(record))


def most_recent_challenge(entries: list[ChallengeRecord]) -> ChallengeRecord | None:
    """Entry with the latest last activity, regardless of its saved flag."""
    # Later entries win ties; entries with no usable timestamp rank last.
    best: ChallengeRecord | None = None
    best_at: datetime | None = None
    for entry in entries:
        at = _activity_key(entry)
        if best is None:
            best, best_at = entry, at
        elif at is None:
            if best_at is None:
                best = entry
        elif best_at is None or at >= best_at:
            best, best_at = entry, at
    return best


class ChallengeHistoryStore:
    """Ordered list of archived runs, each tagged ``saved: true|false``."""

    def __init__(
        self,
        kv: KeyValueStore,
        key: str,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._kv = kv
        self._slot = JsonSlot(kv, key)
        self._clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load_challenge_history(self) -> list[ChallengeRecord]:
        """All readable entries in storage order.

        Malformed entries are skipped here but stay in storage. Entries
        written before ids existed get one, and the repaired list is
        written back.
        """
        return [item for item in self._load_items() if isinstance(item, ChallengeRecord)]

    def get_most_recent_history_challenge(self) -> ChallengeRecord | None:
        return most_recent_challenge(self.load_challenge_history())

    def list_recent_challenges(self) -> list[ChallengeRecord]:
        """Entries not marked saved, most recent activity first."""
        return self._newest_first(e for e in self.load_challenge_history() if not e.saved)

    def list_saved_challenges(self) -> list[ChallengeRecord]:
        """Entries marked saved, most recent activity first."""
        return self._newest_first(e for e in self.load_challenge_history() if e.saved)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def archive_challenge_to_history(
        self,
        record: ChallengeRecord,
        saved: bool = False,
    ) -> ChallengeRecord | None:
        """Append a copy of *record*; runs without rides are never archived."""
        if not record.events:
            logger.info("history_archive_skipped", reason="no_rides")
            return None

        now = to_iso(self._clock())
        entry = record.model_copy(deep=True)
        entry.id = entry.id or new_history_id()
        entry.ended_at = entry.ended_at or now
        entry.saved = saved
        entry.saved_at = now if saved else None

        with self._kv.transaction():
            items = [item for item in self._load_items() if not _has_id(item, entry.id)]
            items.append(entry)
            self._write(items)

        logger.info(
            "challenge_archived",
            challenge_id=entry.id,
            saved=saved,
            rides=entry.rides_count,
        )
        return entry

    def set_challenge_saved(self, challenge_id: str, saved: bool) -> bool:
        """Mark an entry saved (stamping ``savedAt``) or back to recent.

        Returns False when no entry has *challenge_id*.
        """
        with self._kv.transaction():
            items = self._load_items()
            entry = next((item for item in items if _has_id(item, challenge_id)), None)
            if entry is None:
                logger.info("history_entry_missing", challenge_id=challenge_id, op="set_saved")
                return False

            entry.saved = saved
            entry.saved_at = to_iso(self._clock()) if saved else None
            self._write(items)

        logger.info("history_entry_saved_changed", challenge_id=challenge_id, saved=saved)
        return True

    def delete_challenge_from_history(self, challenge_id: str) -> bool:
        """Remove one entry. Unknown ids leave history untouched."""
        with self._kv.transaction():
            items = self._load_items()
            if not any(_has_id(item, challenge_id) for item in items):
                return False
            self._write([item for item in items if not _has_id(item, challenge_id)])

        logger.info("history_entry_deleted", challenge_id=challenge_id)
        return True

    def pop_most_recent_history_challenge(self) -> ChallengeRecord | None:
        """Remove and return the most recent entry in a single write."""
        with self._kv.transaction():
            items = self._load_items()
            entry = most_recent_challenge(
                [item for item in items if isinstance(item, ChallengeRecord)]
            )
            if entry is None:
                return None
            self._write([item for item in items if item is not entry])

        logger.info("history_entry_popped", challenge_id=entry.id)
        return entry

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_items(self) -> list[Any]:
        """Stored entries in order: parsed records, or the raw value if unreadable."""
        value = self._slot.load()
        if value is None:
            return []
        if not isinstance(value, list):
            logger.warning("history_not_list", key=self._slot.key)
            return []

        items: list[Any] = []
        backfilled = 0
        for index, raw in enumerate(value):
            if not isinstance(raw, dict):
                logger.warning("history_entry_skipped", index=index, reason="not_object")
                items.append(raw)
                continue
            try:
                entry = ChallengeRecord.model_validate(raw)
            except ValidationError as exc:
                logger.warning(
                    "history_entry_skipped",
                    index=index,
                    reason="invalid",
                    errors=exc.error_count(),
                )
                items.append(raw)
                continue
            if not entry.id:
                entry.id = new_history_id()
                backfilled += 1
            items.append(entry)

        if backfilled:
            self._write(items)
            logger.info("history_ids_backfilled", count=backfilled)
        return items

    def _write(self, items: list[Any]) -> None:
        self._slot.save(
            [item.to_storage() if isinstance(item, ChallengeRecord) else item for item in items]
        )

    @staticmethod
    def _newest_first(entries) -> list[ChallengeRecord]:
        indexed = list(enumerate(entries))
        indexed.sort(
            key=lambda pair: (
                _activity_key(pair[1]) is not None,
                _activity_key(pair[1]) or datetime.min,
                pair[0],
            ),
            reverse=True,
        )
        return [entry for _, entry in indexed]
