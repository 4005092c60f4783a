"""
Form Feedback Session API Router
"""

import logging

from fastapi import APIRouter, Depends, status

from core.app_state import AppState, get_app_state
from core.exceptions import NotFoundError
from schemas import (
    FeedbackEventRequest,
    FeedbackEventResponse,
    FeedbackSessionResponse,
    FeedbackStartRequest,
)
from services.feedback_session import FeedbackSession
from services.session_registry import SessionEntry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/feedback-sessions", tags=["Form Feedback"])


def _to_response(entry: SessionEntry[FeedbackSession]) -> FeedbackSessionResponse:
    return FeedbackSessionResponse(
        session_id=entry.id,
        athlete_id=entry.athlete_id,
        **entry.session.to_dict(),
    )


def _get_entry(app_state: AppState, session_id: str) -> SessionEntry[FeedbackSession]:
    entry = app_state.feedback.get(session_id)
    if entry is None:
        raise NotFoundError("Feedback session", session_id)
    return entry


@router.post("", response_model=FeedbackSessionResponse, status_code=status.HTTP_201_CREATED)
async def start_feedback_session(
    request: FeedbackStartRequest,
    app_state: AppState = Depends(get_app_state),
):
    entry = app_state.feedback.create(athlete_id=request.athlete_id)
    logger.info(f"Feedback session started: {entry.id}")
    return _to_response(entry)


@router.get("/{session_id}", response_model=FeedbackSessionResponse)
async def get_feedback_session(session_id: str, app_state: AppState = Depends(get_app_state)):
    entry = _get_entry(app_state, session_id)
    with entry.lock:
        return _to_response(entry)


@router.post("/{session_id}/events", response_model=FeedbackEventResponse)
async def send_feedback_event(
    session_id: str,
    request: FeedbackEventRequest,
    app_state: AppState = Depends(get_app_state),
):
    entry = _get_entry(app_state, session_id)
    with entry.lock:
        result = entry.session.send(request.event)
        return FeedbackEventResponse(
            session=_to_response(entry),
            changed=result.changed,
            effects=[e.name for e in result.effects],
        )


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def end_feedback_session(session_id: str, app_state: AppState = Depends(get_app_state)):
    if not app_state.feedback.remove(session_id):
        raise NotFoundError("Feedback session", session_id)
