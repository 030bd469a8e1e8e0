"""Time policy for the one-day challenge.

A run belongs to the *logical day* it was started on: the calendar date
in the challenge timezone after shifting back by the rollover hour. With
the default rollover of 0 the day ends at local midnight, so a run still
going past midnight is stale the next time the app opens.
"""

import math
from datetime import date, datetime, timedelta, tzinfo

from everyride.shared.utils.datetime_utils import ensure_utc, parse_iso, utcnow

from .schemas import ChallengeRecord

SECONDS_PER_HOUR = 3600


def logical_day(
    moment: datetime,
    tz: tzinfo | None = None,
    rollover_hour: int = 0,
) -> date:
    """Challenge day that *moment* falls on. ``tz=None`` means host local time."""
    local = ensure_utc(moment).astimezone(tz)
    return (local - timedelta(hours=rollover_hour)).date()


def is_active_challenge_for_now(
    record: ChallengeRecord | None,
    now: datetime | None = None,
    *,
    tz: tzinfo | None = None,
    rollover_hour: int = 0,
) -> bool:
    """Whether *record* was started on the same logical day as *now*."""
    if record is None:
        return False
    started = parse_iso(record.started_at)
    if started is None:
        return False
    current = utcnow() if now is None else now
    return logical_day(started, tz, rollover_hour) == logical_day(current, tz, rollover_hour)


def hours_since_iso(iso: str | None, now: datetime | None = None) -> float:
    """Hours elapsed since *iso*; ``math.inf`` if it is missing or unparsable."""
    moment = parse_iso(iso)
    if moment is None:
        return math.inf
    current = utcnow() if now is None else ensure_utc(now)
    return (current - moment).total_seconds() / SECONDS_PER_HOUR


def get_challenge_last_activity_iso(record: ChallengeRecord) -> str | None:
    """Latest ride timestamp, else ``startedAt``, else ``endedAt``."""
    latest: datetime | None = None
    latest_iso: str | None = None
    for event in record.events:
        moment = parse_iso(event.timestamp)
        if moment is not None and (latest is None or moment >= latest):
            latest, latest_iso = moment, event.timestamp

    if latest_iso is not None:
        return latest_iso
    return record.started_at or record.ended_at or None
