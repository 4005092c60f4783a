"""
Drill Session API Router

The mobile client owns the camera, the timer and the detector; it streams
discrete events here and renders whatever state comes back. Finishing a
drill (STOP) stores the result and applies drill rewards.
"""

import logging
import random

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from core.app_state import AppState, get_app_state
from core.config import settings
from core.database import get_db
from core.events import EVENT_DRILL_COMPLETED, emit
from core.exceptions import NotFoundError, ValidationError
from models import DrillResult
from schemas import (
    DrillEventRequest,
    DrillEventResponse,
    DrillRewardResponse,
    DrillSessionResponse,
    DrillSimulateRequest,
    DrillStartRequest,
    ProgressResponse,
)
from services.drill_rewards import load_progress, record_drill_score
from services.drill_session import (
    EFFECT_SESSION_COMPLETED,
    DrillDriver,
    DrillSession,
    RandomDetector,
    format_clock,
)
from services.session_registry import SessionEntry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["Drills"])


def _to_response(entry: SessionEntry[DrillSession]) -> DrillSessionResponse:
    data = entry.session.to_dict()
    return DrillSessionResponse(
        session_id=entry.id,
        athlete_id=entry.athlete_id,
        clock=format_clock(data["elapsed_seconds"]),
        **data,
    )


def _get_entry(app_state: AppState, session_id: str) -> SessionEntry[DrillSession]:
    entry = app_state.drills.get(session_id)
    if entry is None:
        raise NotFoundError("Drill session", session_id)
    return entry


@router.post("/drills", response_model=DrillSessionResponse, status_code=status.HTTP_201_CREATED)
async def start_drill(
    request: DrillStartRequest,
    app_state: AppState = Depends(get_app_state),
):
    """Start a new drill session in calibration."""
    entry = app_state.drills.create(athlete_id=request.athlete_id)
    logger.info(
        f"Drill session started: {entry.id}",
        extra={"extra_fields": {"session_id": entry.id, "athlete_id": request.athlete_id}},
    )
    return _to_response(entry)


@router.get("/drills/{session_id}", response_model=DrillSessionResponse)
async def get_drill(session_id: str, app_state: AppState = Depends(get_app_state)):
    entry = _get_entry(app_state, session_id)
    with entry.lock:
        return _to_response(entry)


@router.post("/drills/{session_id}/events", response_model=DrillEventResponse)
async def send_drill_event(
    session_id: str,
    request: DrillEventRequest,
    app_state: AppState = Depends(get_app_state),
    db: Session = Depends(get_db),
):
    """
    Feed one event into the session.

    Events that make no sense in the current state are ignored and reported
    with `changed: false`. If storing a finished drill fails, the session is
    put back where it was so STOP can be retried.
    """
    entry = _get_entry(app_state, session_id)
    with entry.lock:
        previous = entry.session.snapshot
        result = entry.session.send(request.event)

        reward = None
        try:
            for effect in result.effects:
                if effect.name == EFFECT_SESSION_COMPLETED:
                    reward = _complete_drill(db, entry, effect.payload)
        except Exception:
            entry.session.snapshot = previous
            logger.error(
                f"Drill session {entry.id} could not be stored, rolled back to {previous.state.value}",
                exc_info=True,
                extra={"extra_fields": {"session_id": entry.id, "athlete_id": entry.athlete_id}},
            )
            raise

        return DrillEventResponse(
            session=_to_response(entry),
            changed=result.changed,
            effects=[e.name for e in result.effects],
            reward=reward,
        )


def _complete_drill(db: Session, entry: SessionEntry[DrillSession], metrics: dict):
    elapsed = metrics["elapsed_seconds"]
    detections = metrics["detection_count"]
    logger.info(
        f"Drill session completed: {entry.id} ({detections} touches in {format_clock(elapsed)})",
        extra={"extra_fields": {"session_id": entry.id, "athlete_id": entry.athlete_id,
                                "elapsed_seconds": elapsed, "detection_count": detections}},
    )
    if not entry.athlete_id:
        # Anonymous sessions are not stored.
        return None

    db.add(DrillResult(
        athlete_id=entry.athlete_id,
        drill=entry.session.definition.name,
        elapsed_seconds=elapsed,
        detection_count=detections,
    ))
    outcome = record_drill_score(db, entry.athlete_id, detections)
    db.commit()
    emit(EVENT_DRILL_COMPLETED, athlete_id=entry.athlete_id,
         elapsed_seconds=elapsed, detection_count=detections)
    return DrillRewardResponse(
        new_best=outcome.new_best,
        best_drill_score=outcome.progress.best_drill_score,
        unlocked=outcome.unlocked,
    )


@router.post("/drills/{session_id}/simulate", response_model=DrillSessionResponse)
async def simulate_drill(
    session_id: str,
    request: DrillSimulateRequest,
    app_state: AppState = Depends(get_app_state),
):
    """
    Drive an active session with the simulated detector.

    Used by the demo build where no camera is available. Pass a seed for a
    repeatable run.
    """
    if request.seconds > settings.SIMULATION_MAX_SECONDS:
        raise ValidationError(
            f"seconds must be <= {settings.SIMULATION_MAX_SECONDS}", field="seconds"
        )
    entry = _get_entry(app_state, session_id)
    probability = (
        request.hit_probability
        if request.hit_probability is not None
        else settings.DETECTOR_HIT_PROBABILITY
    )
    detector = RandomDetector(hit_probability=probability, rng=random.Random(request.seed))
    with entry.lock:
        DrillDriver(entry.session, detector).run(request.seconds, detection_every=request.detection_every)
        return _to_response(entry)


@router.delete("/drills/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def exit_drill(session_id: str, app_state: AppState = Depends(get_app_state)):
    """Exit the drill and discard its state."""
    if not app_state.drills.remove(session_id):
        raise NotFoundError("Drill session", session_id)


@router.get("/athletes/{athlete_id}/progress", response_model=ProgressResponse)
async def get_progress(athlete_id: str, db: Session = Depends(get_db)):
    progress = load_progress(db, athlete_id)
    return ProgressResponse(
        athlete_id=athlete_id,
        best_drill_score=progress.best_drill_score,
        inventory=list(progress.inventory),
    )
