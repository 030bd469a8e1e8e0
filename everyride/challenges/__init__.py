"""Challenge state and history engine."""

from everyride.challenges.schemas import ChallengeRecord, ResumeCandidate, RideEvent
from everyride.challenges.service import ChallengeLifecycleEngine
from everyride.challenges.state_machine import ChallengeStateError

__all__ = [
    "ChallengeLifecycleEngine",
    "ChallengeRecord",
    "ChallengeStateError",
    "ResumeCandidate",
    "RideEvent",
]
