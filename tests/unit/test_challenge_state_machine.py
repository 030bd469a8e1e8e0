"""Unit tests for challenge record state transitions."""

import pytest

from everyride.challenges.state_machine import (
    ChallengeStateError,
    archived_state,
    can_transition,
    validate_transition,
)
from everyride.shared.schemas.base import RecordState


class TestChallengeCanTransition:
    def test_active_to_recent(self):
        assert can_transition("active", "recent") is True

    def test_active_to_discarded(self):
        assert can_transition("active", "discarded") is True

    def test_active_to_saved_invalid(self):
        assert can_transition("active", "saved") is False

    def test_recent_saved_toggle(self):
        assert can_transition("recent", "saved") is True
        assert can_transition("saved", "recent") is True

    def test_resume_from_history(self):
        for state in ["recent", "saved"]:
            assert can_transition(state, "active") is True

    def test_delete_from_history(self):
        for state in ["recent", "saved"]:
            assert can_transition(state, "deleted") is True

    def test_active_cannot_be_deleted(self):
        assert can_transition("active", "deleted") is False

    def test_discarded_is_terminal(self):
        for target in ["active", "recent", "saved", "deleted"]:
            assert can_transition("discarded", target) is False

    def test_deleted_is_terminal(self):
        for target in ["active", "recent", "saved", "discarded"]:
            assert can_transition("deleted", target) is False

    def test_accepts_enum_members(self):
        assert can_transition(RecordState.ACTIVE, RecordState.RECENT) is True
        assert can_transition(RecordState.DELETED, RecordState.ACTIVE) is False

    def test_unknown_state(self):
        assert can_transition("paused", "active") is False


class TestChallengeValidateTransition:
    def test_valid_passes(self):
        validate_transition("active", "recent")

    def test_invalid_raises(self):
        with pytest.raises(ChallengeStateError, match="Cannot transition"):
            validate_transition("active", "saved")

    def test_terminal_raises(self):
        with pytest.raises(ChallengeStateError):
            validate_transition("deleted", "recent")

    def test_message_uses_plain_state_names(self):
        with pytest.raises(ChallengeStateError, match="from 'discarded' to 'active'"):
            validate_transition(RecordState.DISCARDED, RecordState.ACTIVE)


class TestArchivedState:
    def test_saved_flag(self):
        assert archived_state(True) == "saved"

    def test_unsaved_or_missing_flag(self):
        assert archived_state(False) == "recent"
        assert archived_state(None) == "recent"
