"""Per-park completion counts for a run.

The catalog comes from the caller; ids the catalog does not know are
ignored rather than rejected.
"""

from collections.abc import Iterable

from .schemas import CatalogRide, ChallengeRecord, ParkProgress


def count_excluded(excluded_ids: Iterable[str], catalog: Iterable[CatalogRide]) -> tuple[int, int]:
    """``(excluded, total)`` over the active catalog, for "Rides excluded: N of M"."""
    active_ids = {ride.id for ride in catalog if ride.active}
    excluded = {ride_id for ride_id in excluded_ids if ride_id in active_ids}
    return len(excluded), len(active_ids)


def compute_park_progress(
    record: ChallengeRecord,
    catalog: Iterable[CatalogRide],
) -> dict[str, ParkProgress]:
    """Progress per park, keyed by park id in catalog order."""
    excluded = set(record.excluded_ride_ids)
    ridden = {event.ride_id for event in record.events if event.ride_id}

    totals: dict[str, dict[str, int]] = {}
    for ride in catalog:
        if not ride.active:
            continue
        counts = totals.setdefault(ride.park_id, {"total": 0, "completed": 0, "excluded": 0})
        if ride.id in excluded:
            counts["excluded"] += 1
            continue
        counts["total"] += 1
        if ride.id in ridden:
            counts["completed"] += 1

    return {
        park_id: ParkProgress(park_id=park_id, **counts)
        for park_id, counts in totals.items()
    }
