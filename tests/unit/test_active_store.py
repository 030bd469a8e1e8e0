"""Unit tests for the active challenge slot."""

from everyride.challenges.active_store import ActiveChallengeStore
from everyride.challenges.schemas import ChallengeRecord
from tests.factories import ACTIVE_KEY, make_challenge_data, make_event, read_slot, write_slot


class TestActiveChallengeStore:
    def test_empty_slot(self, kv):
        assert ActiveChallengeStore(kv, ACTIVE_KEY).load_active_challenge() is None

    def test_save_and_load(self, kv):
        store = ActiveChallengeStore(kv, ACTIVE_KEY)
        record = ChallengeRecord.model_validate(
            make_challenge_data(events=[make_event("mk-1")], excluded_ride_ids=["mk-9"])
        )
        store.save_active_challenge(record)

        loaded = store.load_active_challenge()
        assert loaded.started_at == record.started_at
        assert loaded.events[0].ride_id == "mk-1"
        assert loaded.excluded_ride_ids == ["mk-9"]

    def test_saved_format_mirrors_settings(self, kv):
        store = ActiveChallengeStore(kv, ACTIVE_KEY)
        store.save_active_challenge(
            ChallengeRecord.model_validate({"settings": {"excludedRideIds": ["a"]}})
        )
        stored = read_slot(kv, ACTIVE_KEY)
        assert stored["excludedRideIds"] == stored["settings"]["excludedRideIds"] == ["a"]

    def test_clear(self, kv):
        store = ActiveChallengeStore(kv, ACTIVE_KEY)
        store.save_active_challenge(ChallengeRecord())
        store.clear_active_challenge()
        assert read_slot(kv, ACTIVE_KEY) is None

    def test_non_object_value(self, kv):
        write_slot(kv, ACTIVE_KEY, ["not", "a", "run"])
        assert ActiveChallengeStore(kv, ACTIVE_KEY).load_active_challenge() is None

    def test_odd_event_shapes_still_load(self, kv):
        write_slot(kv, ACTIVE_KEY, make_challenge_data(
            events=[make_event("mk-1"), {"rideId": "mk-2", "timestamp": 1783155600000}, "ep-1"],
        ))
        loaded = ActiveChallengeStore(kv, ACTIVE_KEY).load_active_challenge()
        assert [e.ride_id for e in loaded.events] == ["mk-1", "mk-2", "ep-1"]
        assert loaded.events[1].timestamp == "2026-07-04T09:00:00.000Z"

    def test_corrupt_json(self, kv):
        kv.set(ACTIVE_KEY, "{")
        assert ActiveChallengeStore(kv, ACTIVE_KEY).load_active_challenge() is None
