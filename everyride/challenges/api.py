"""REST API endpoints for the challenge tracker.

Handlers are ``async def`` so that each engine call runs to completion on
the event loop; the engine is not safe to call from worker threads.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status

from everyride.shared.schemas.base import SuccessResponse
from everyride.shared.utils.logging import get_logger

from .progress import compute_park_progress, count_excluded
from .schemas import (
    ChallengeRecord,
    EndChallengeResponse,
    ExcludedRidesRequest,
    ExcludedRidesResponse,
    LogRideRequest,
    ParkProgressResponse,
    ProgressRequest,
    ResumeCandidate,
    RideEvent,
    SetSavedRequest,
    StartChallengeRequest,
    UpdateSettingsRequest,
)
from .service import ChallengeLifecycleEngine

logger = get_logger(__name__)

router = APIRouter(prefix="/challenge", tags=["challenge"])


def get_engine(request: Request) -> ChallengeLifecycleEngine:
    """Engine owned by the application (set up in the lifespan handler)."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Challenge engine not initialised",
        )
    return engine


def _require_active(engine: ChallengeLifecycleEngine) -> ChallengeRecord:
    record = engine.active
    if record is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Start a challenge first.")
    return record


# ===========================================
# ACTIVE RUN
# ===========================================


@router.get("/active", response_model=ChallengeRecord | None, response_model_exclude_none=True)
async def get_active_challenge(engine: ChallengeLifecycleEngine = Depends(get_engine)):
    """Get the active run, or null before a run is started."""
    return engine.active


@router.post(
    "/start",
    response_model=ChallengeRecord,
    response_model_exclude_none=True,
    status_code=201,
)
async def start_challenge(
    data: StartChallengeRequest,
    engine: ChallengeLifecycleEngine = Depends(get_engine),
):
    """Start a new run using the current excluded-rides draft."""
    return engine.start_new_challenge(
        tags_text=data.tags_text,
        fundraising_link=data.fundraising_link,
    )


@router.post("/end", response_model=EndChallengeResponse)
async def end_challenge(engine: ChallengeLifecycleEngine = Depends(get_engine)):
    """End the active run, moving it into Recent history if any rides were logged."""
    _require_active(engine)
    return EndChallengeResponse(archived=engine.end_challenge())


@router.post("/rides", response_model=RideEvent, response_model_exclude_none=True, status_code=201)
async def log_ride(
    data: LogRideRequest,
    engine: ChallengeLifecycleEngine = Depends(get_engine),
):
    """Log a ride on the active run."""
    event = engine.log_ride(data.ride_id, park_id=data.park_id)
    if event is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Start a challenge first.")
    return event


@router.delete("/rides/last", response_model=RideEvent, response_model_exclude_none=True)
async def undo_last_ride(engine: ChallengeLifecycleEngine = Depends(get_engine)):
    """Remove the most recently logged ride."""
    _require_active(engine)
    event = engine.undo_last_ride()
    if event is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No rides logged yet.")
    return event


@router.put("/settings", response_model=ChallengeRecord, response_model_exclude_none=True)
async def update_settings(
    data: UpdateSettingsRequest,
    engine: ChallengeLifecycleEngine = Depends(get_engine),
):
    """Update tags and fundraising link of the active run."""
    record = engine.update_settings(
        tags_text=data.tags_text,
        fundraising_link=data.fundraising_link,
    )
    if record is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Start a challenge first.")
    return record


@router.put("/excluded", response_model=ExcludedRidesResponse)
async def set_active_excluded(
    data: ExcludedRidesRequest,
    engine: ChallengeLifecycleEngine = Depends(get_engine),
):
    """Replace the excluded rides of the active run."""
    if not engine.set_active_excluded_ride_ids(data.ride_ids):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Start a challenge first.")
    return ExcludedRidesResponse(ride_ids=engine.active.excluded_ride_ids)


@router.post("/progress", response_model=ParkProgressResponse)
async def get_progress(
    data: ProgressRequest,
    engine: ChallengeLifecycleEngine = Depends(get_engine),
):
    """Per-park progress of the active run against the supplied catalog."""
    record = _require_active(engine)
    excluded, catalog_size = count_excluded(record.excluded_ride_ids, data.catalog)
    return ParkProgressResponse(
        parks=compute_park_progress(record, data.catalog),
        excluded_count=excluded,
        catalog_size=catalog_size,
    )


# ===========================================
# EXCLUDED-RIDES DRAFT
# ===========================================


@router.get("/draft-excluded", response_model=ExcludedRidesResponse)
async def get_draft_excluded(engine: ChallengeLifecycleEngine = Depends(get_engine)):
    """Get the excluded rides chosen for the next run."""
    return ExcludedRidesResponse(ride_ids=engine.load_excluded_draft_ids())


@router.put("/draft-excluded", response_model=ExcludedRidesResponse)
async def save_draft_excluded(
    data: ExcludedRidesRequest,
    engine: ChallengeLifecycleEngine = Depends(get_engine),
):
    """Replace the excluded rides chosen for the next run."""
    return ExcludedRidesResponse(ride_ids=engine.save_excluded_draft_ids(data.ride_ids))


@router.delete("/draft-excluded", response_model=SuccessResponse)
async def clear_draft_excluded(engine: ChallengeLifecycleEngine = Depends(get_engine)):
    """Clear the excluded rides chosen for the next run."""
    engine.clear_excluded_draft_ids()
    return SuccessResponse(message="Draft cleared")


# ===========================================
# HISTORY & RESUME
# ===========================================


@router.get("/history", response_model=list[ChallengeRecord], response_model_exclude_none=True)
async def list_history(engine: ChallengeLifecycleEngine = Depends(get_engine)):
    """List previous runs in storage order."""
    return engine.list_history()


@router.put("/history/{challenge_id}/saved", response_model=SuccessResponse)
async def set_history_saved(
    challenge_id: str,
    data: SetSavedRequest,
    engine: ChallengeLifecycleEngine = Depends(get_engine),
):
    """Mark a previous run as saved, or move it back to recent."""
    if not engine.set_challenge_saved(challenge_id, data.saved):
        raise HTTPException(status_code=404, detail=f"Challenge '{challenge_id}' not found")
    return SuccessResponse(message="Saved" if data.saved else "Moved to recent")


@router.delete("/history/{challenge_id}", response_model=SuccessResponse)
async def delete_history_entry(
    challenge_id: str,
    engine: ChallengeLifecycleEngine = Depends(get_engine),
):
    """Delete a previous run."""
    if not engine.delete_challenge_from_history(challenge_id):
        raise HTTPException(status_code=404, detail=f"Challenge '{challenge_id}' not found")
    return SuccessResponse(message="Deleted")


@router.get(
    "/resume-candidate",
    response_model=ResumeCandidate | None,
    response_model_exclude_none=True,
)
async def get_resume_candidate(engine: ChallengeLifecycleEngine = Depends(get_engine)):
    """Get the run offered for resuming, or null."""
    return engine.get_resume_candidate()


@router.post("/resume", response_model=ChallengeRecord, response_model_exclude_none=True)
async def resume_challenge(engine: ChallengeLifecycleEngine = Depends(get_engine)):
    """Resume the most recent run, removing it from history."""
    record = engine.resume()
    if record is None:
        logger.info("resume_rejected")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="No recent run available to resume.",
        )
    return record
