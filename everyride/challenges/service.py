"""Challenge lifecycle: the active run, daily expiry, archiving and resume."""

from collections.abc import Callable, Iterable
from datetime import date, datetime

from everyride.config import (
    ACTIVE_CHALLENGE_SLOT,
    CHALLENGE_HISTORY_SLOT,
    EXCLUDED_DRAFT_SLOT,
    EveryRideSettings,
    get_settings,
)
from everyride.shared.schemas.base import RecordState, StartupOutcome
from everyride.shared.utils.datetime_utils import to_iso, utcnow
from everyride.shared.utils.logging import get_logger
from everyride.storage.backends import KeyValueStore

from .active_store import ActiveChallengeStore
from .excluded import ExcludedDraftStore
from .history import ChallengeHistoryStore, most_recent_challenge
from .schemas import (
    ChallengeRecord,
    ChallengeSettings,
    ResumeCandidate,
    RideEvent,
    unique_ride_ids,
)
from .state_machine import archived_state, validate_transition
from .time_policy import (
    get_challenge_last_activity_iso,
    hours_since_iso,
    is_active_challenge_for_now,
    logical_day,
)

logger = get_logger(__name__)


class ChallengeLifecycleEngine:
    """Owns the single active run of one user session.

    Callers keep only the copies this engine hands out and ask again after
    each operation. The startup check runs before anything else reads the
    active slot: every public method triggers it on first use. A run still
    held when its challenge day rolls over is closed on the next call.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        settings: EveryRideSettings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings or get_settings()
        self._kv = kv
        self._clock = clock
        self.active_store = ActiveChallengeStore(
            kv, self.settings.storage_key(ACTIVE_CHALLENGE_SLOT)
        )
        self.history = ChallengeHistoryStore(
            kv, self.settings.storage_key(CHALLENGE_HISTORY_SLOT), clock=clock
        )
        self.drafts = ExcludedDraftStore(kv, self.settings.storage_key(EXCLUDED_DRAFT_SLOT))
        self._active: ChallengeRecord | None = None
        self._active_day: date | None = None
        self._startup_outcome: StartupOutcome | None = None

    # ------------------------------------------------------------------
    # Active run
    # ------------------------------------------------------------------

    @property
    def active(self) -> ChallengeRecord | None:
        """Detached copy of the active run, or None."""
        self._ensure_started()
        return self._active.model_copy(deep=True) if self._active else None

    @property
    def startup_outcome(self) -> StartupOutcome | None:
        return self._startup_outcome

    def is_active_challenge_for_now(self, record: ChallengeRecord | None) -> bool:
        return is_active_challenge_for_now(
            record,
            self._clock(),
            tz=self.settings.tzinfo,
            rollover_hour=self.settings.day_rollover_hour,
        )

    def startup(self) -> StartupOutcome:
        """Settle the active slot: keep today's run, archive or drop a stale one.

        Only the first call does any work.
        """
        if self._startup_outcome is not None:
            return self._startup_outcome

        record = self.active_store.load_active_challenge()
        if record is None:
            outcome = StartupOutcome.NO_ACTIVE
        elif self.is_active_challenge_for_now(record):
            self._adopt(record)
            outcome = StartupOutcome.KEPT
        elif self._close(record, reason="expired"):
            outcome = StartupOutcome.ARCHIVED
        else:
            outcome = StartupOutcome.DISCARDED

        self._startup_outcome = outcome
        logger.info("startup_settled", outcome=outcome.value)
        return outcome

    def close(self) -> None:
        self._kv.close()

    def start_new_challenge(
        self,
        tags_text: str = "",
        fundraising_link: str = "",
    ) -> ChallengeRecord:
        """Begin a run with today's draft exclusions, then clear the draft."""
        self._ensure_started()
        if self._active is not None:
            logger.warning("start_replaces_active_run", started_at=self._active.started_at)
            self._close(self._active, reason="replaced")

        record = ChallengeRecord(
            started_at=to_iso(self._clock()),
            settings=ChallengeSettings(
                tags_text=tags_text.strip(),
                fundraising_link=fundraising_link.strip(),
                excluded_ride_ids=self.drafts.load_excluded_draft_ids(),
            ),
        )
        with self._kv.transaction():
            self.active_store.save_active_challenge(record)
            self.drafts.clear_excluded_draft_ids()

        self._adopt(record)
        logger.info(
            "challenge_started",
            started_at=record.started_at,
            excluded=len(record.excluded_ride_ids),
        )
        return record.model_copy(deep=True)

    def end_challenge(self) -> bool:
        """End the active run now. Returns True if it went into history."""
        self._ensure_started()
        if self._active is None:
            logger.info("end_challenge_no_active")
            return False
        return self._close(self._active, reason="ended")

    def log_ride(self, ride_id: str, park_id: str | None = None) -> RideEvent | None:
        """Append a ride to the active run, stamped now."""
        self._ensure_started()
        if self._active is None:
            logger.info("log_ride_no_active", ride_id=ride_id)
            return None

        event = RideEvent(ride_id=ride_id, park_id=park_id, timestamp=to_iso(self._clock()))
        record = self._active.model_copy(deep=True)
        record.events.append(event)
        self._commit(record)
        logger.info("ride_logged", ride_id=ride_id, rides=record.rides_count)
        return event.model_copy()

    def undo_last_ride(self) -> RideEvent | None:
        """Remove the most recently logged ride of the active run."""
        self._ensure_started()
        if self._active is None or not self._active.events:
            return None

        record = self._active.model_copy(deep=True)
        event = record.events.pop()
        self._commit(record)
        logger.info("ride_unlogged", ride_id=event.ride_id, rides=record.rides_count)
        return event

    def update_settings(
        self,
        tags_text: str | None = None,
        fundraising_link: str | None = None,
    ) -> ChallengeRecord | None:
        """Change the live run's texts without restarting it."""
        self._ensure_started()
        if self._active is None:
            return None

        record = self._active.model_copy(deep=True)
        record.set_texts(
            tags_text=tags_text.strip() if tags_text is not None else None,
            fundraising_link=fundraising_link.strip() if fundraising_link is not None else None,
        )
        self._commit(record)
        logger.info("challenge_settings_updated")
        return record.model_copy(deep=True)

    def set_active_excluded_ride_ids(self, ride_ids: Iterable[str]) -> bool:
        """Replace the live run's exclusions. The pre-start draft is untouched."""
        self._ensure_started()
        if self._active is None:
            return False

        record = self._active.model_copy(deep=True)
        record.set_excluded_ride_ids(ride_ids)
        self._commit(record)
        logger.info("active_excluded_updated", count=len(record.excluded_ride_ids))
        return True

    # ------------------------------------------------------------------
    # Excluded-ride draft
    # ------------------------------------------------------------------

    def load_excluded_draft_ids(self) -> list[str]:
        self._ensure_started()
        return self.drafts.load_excluded_draft_ids()

    def save_excluded_draft_ids(self, ride_ids: Iterable[str]) -> list[str]:
        self._ensure_started()
        return self.drafts.save_excluded_draft_ids(unique_ride_ids(ride_ids))

    def clear_excluded_draft_ids(self) -> None:
        self._ensure_started()
        self.drafts.clear_excluded_draft_ids()

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def list_history(self) -> list[ChallengeRecord]:
        self._ensure_started()
        return self.history.load_challenge_history()

    def set_challenge_saved(self, challenge_id: str, saved: bool) -> bool:
        self._ensure_started()
        return self.history.set_challenge_saved(challenge_id, saved)

    def delete_challenge_from_history(self, challenge_id: str) -> bool:
        self._ensure_started()
        return self.history.delete_challenge_from_history(challenge_id)

    def get_resume_candidate(self) -> ResumeCandidate | None:
        """The most recent history entry, if it can still be resumed."""
        self._ensure_started()
        return self._resume_candidate(self.history.load_challenge_history())

    def resume(self) -> ChallengeRecord | None:
        """Move the resume candidate out of history and make it the active run.

        Returns None, leaving storage unchanged, when a run is already
        active or no entry is eligible any more.
        """
        self._ensure_started()
        if self._active is not None:
            logger.info("resume_blocked", reason="active_run")
            return None

        with self._kv.transaction():
            candidate = self._resume_candidate(self.history.load_challenge_history())
            if candidate is None:
                logger.info("resume_blocked", reason="no_candidate")
                return None

            entry = self.history.pop_most_recent_history_challenge()
            validate_transition(archived_state(entry.saved), RecordState.ACTIVE)
            record = entry.reopened()
            self.active_store.save_active_challenge(record)

        self._adopt(record)
        logger.info("challenge_resumed", challenge_id=record.id, rides=record.rides_count)
        return record.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ensure_started(self) -> None:
        """Run the startup check once, then expire the held run at day rollover."""
        if self._startup_outcome is None:
            self.startup()
        elif self._active is not None and self._active_day != self._today():
            logger.info("active_run_day_ended", started_at=self._active.started_at)
            self._close(self._active, reason="expired")

    def _today(self) -> date:
        return logical_day(
            self._clock(),
            self.settings.tzinfo,
            self.settings.day_rollover_hour,
        )

    def _adopt(self, record: ChallengeRecord) -> None:
        # A resumed run belongs to the day it was resumed on.
        self._active = record
        self._active_day = self._today()

    def _commit(self, record: ChallengeRecord) -> None:
        self.active_store.save_active_challenge(record)
        self._active = record

    def _resume_candidate(self, entries: list[ChallengeRecord]) -> ResumeCandidate | None:
        entry = most_recent_challenge(entries)
        if entry is None or entry.rides_count <= 0:
            return None

        last_iso = get_challenge_last_activity_iso(entry)
        hours_ago = hours_since_iso(last_iso, self._clock())
        if not hours_ago <= self.settings.resume_window_hours:
            return None

        return ResumeCandidate(
            challenge=entry,
            last_activity_iso=last_iso,
            hours_ago=hours_ago,
            rides_count=entry.rides_count,
        )

    def _close(self, record: ChallengeRecord, reason: str) -> bool:
        """Archive *record* as recent (or drop it if empty) and clear the slot."""
        archived = False
        with self._kv.transaction():
            if record.events:
                ended = record.model_copy(deep=True)
                ended.ended_at = to_iso(self._clock())
                archived = self.history.archive_challenge_to_history(ended, saved=False) is not None
            self.active_store.clear_active_challenge()

        self._active = None
        self._active_day = None
        logger.info(
            "challenge_closed",
            reason=reason,
            archived=archived,
            rides=record.rides_count,
        )
        return archived
