"""Pre-start draft of excluded rides.

The draft is chosen on the start page before a run exists and is copied
into the run when it starts. Editing exclusions of a run that is already
going happens on the active record instead (see
``ChallengeLifecycleEngine.set_active_excluded_ride_ids``); the two never
write to each other.
"""

from collections.abc import Iterable

from everyride.shared.utils.logging import get_logger
from everyride.storage.backends import KeyValueStore
from everyride.storage.slots import JsonSlot

from .schemas import unique_ride_ids

logger = get_logger(__name__)


class ExcludedDraftStore:
    """Persisted set of ride ids excluded ahead of the next run."""

    def __init__(self, kv: KeyValueStore, key: str):
        self._slot = JsonSlot(kv, key)

    def load_excluded_draft_ids(self) -> list[str]:
        value = self._slot.load()
        if value is None:
            return []
        if not isinstance(value, list):
            logger.warning("excluded_draft_not_list", key=self._slot.key)
            return []
        return unique_ride_ids(item for item in value if isinstance(item, (str, int)))

    def save_excluded_draft_ids(self, ride_ids: Iterable[str]) -> list[str]:
        ids = unique_ride_ids(ride_ids)
        self._slot.save(ids)
        logger.info("excluded_draft_saved", count=len(ids))
        return ids

    def clear_excluded_draft_ids(self) -> None:
        self._slot.clear()
        logger.info("excluded_draft_cleared")
