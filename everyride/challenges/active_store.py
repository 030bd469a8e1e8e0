"""Single-slot persistence of the active challenge."""

from pydantic import ValidationError

from everyride.shared.utils.logging import get_logger
from everyride.storage.backends import KeyValueStore
from everyride.storage.slots import JsonSlot

from .schemas import ChallengeRecord

logger = get_logger(__name__)


class ActiveChallengeStore:
    """Holds zero or one :class:`ChallengeRecord`."""

    def __init__(self, kv: KeyValueStore, key: str):
        self._slot = JsonSlot(kv, key)

    def load_active_challenge(self) -> ChallengeRecord | None:
        """Stored active run, or None if the slot is empty or unreadable."""
        value = self._slot.load()
        if value is None:
            return None
        if not isinstance(value, dict):
            logger.warning("active_challenge_not_object", key=self._slot.key)
            return None
        try:
            return ChallengeRecord.model_validate(value)
        except ValidationError as exc:
            logger.warning(
                "active_challenge_invalid",
                key=self._slot.key,
                errors=exc.error_count(),
            )
            return None

    def save_active_challenge(self, record: ChallengeRecord) -> None:
        self._slot.save(record.to_storage())

    def clear_active_challenge(self) -> None:
        self._slot.clear()
