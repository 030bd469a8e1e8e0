"""Datetime utilities for timezone-aware operations.

Persisted timestamps use the same shape a browser's ``Date.toISOString()``
produces (UTC, millisecond precision, ``Z`` suffix) so stored runs stay
readable by either side.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return current UTC time with timezone info.

    Returns:
        Current UTC datetime with tzinfo=timezone.utc
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Ensure a datetime object is timezone-aware and in UTC.

    If the datetime is naive (no tzinfo), it's assumed to be UTC.
    If the datetime has a different timezone, it's converted to UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Format *dt* as ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    Example:
        >>> to_iso(datetime(2026, 7, 4, 9, 30, tzinfo=timezone.utc))
        '2026-07-04T09:30:00.000Z'
    """
    return ensure_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: object) -> datetime | None:
    """Parse an ISO 8601 string into an aware UTC datetime.

    Returns None for anything that is not a parseable string, so callers
    can treat missing and corrupt timestamps the same way.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


__all__ = [
    "ensure_utc",
    "parse_iso",
    "to_iso",
    "utcnow",
]
