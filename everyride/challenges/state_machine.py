"""Challenge record state machine.

States: active → recent ⇄ saved
active can also → discarded (ended with no rides logged).
recent/saved → active is a resume; recent/saved → deleted removes the entry.
"""

from everyride.shared.schemas.base import RecordState


class ChallengeStateError(Exception):
    """Raised when an invalid challenge state transition is attempted."""


VALID_TRANSITIONS: dict[str, list[str]] = {
    RecordState.ACTIVE.value: [RecordState.RECENT.value, RecordState.DISCARDED.value],
    RecordState.RECENT.value: [
        RecordState.SAVED.value,
        RecordState.ACTIVE.value,
        RecordState.DELETED.value,
    ],
    RecordState.SAVED.value: [
        RecordState.RECENT.value,
        RecordState.ACTIVE.value,
        RecordState.DELETED.value,
    ],
    RecordState.DISCARDED.value: [],  # terminal
    RecordState.DELETED.value: [],    # terminal
}


def _state(value: str | RecordState) -> str:
    return value.value if isinstance(value, RecordState) else value


def can_transition(current: str | RecordState, target: str | RecordState) -> bool:
    """Check if a challenge state transition is valid."""
    return _state(target) in VALID_TRANSITIONS.get(_state(current), [])


def validate_transition(current: str | RecordState, target: str | RecordState) -> None:
    """Validate a challenge state transition, raising ChallengeStateError if invalid."""
    if not can_transition(current, target):
        current, target = _state(current), _state(target)
        allowed = VALID_TRANSITIONS.get(current, [])
        raise ChallengeStateError(
            f"Cannot transition challenge from '{current}' to '{target}'. "
            f"Allowed from '{current}': {allowed}"
        )


def archived_state(saved: bool | None) -> str:
    """State of a history entry with the given ``saved`` flag."""
    return RecordState.SAVED.value if saved else RecordState.RECENT.value
