"""
Daily Streak API Router

Called by the mobile client when the app comes to the foreground. A
check-in is idempotent within a calendar day, so clients can call it
freely.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.app_state import AppState, get_app_state
from core.database import get_db
from core.events import EVENT_STREAK_CHECKED_IN, EVENT_STREAK_MILESTONE, emit
from core.exceptions import ConflictError
from schemas import CheckInRequest, CheckInResponse, StreakResponse
from services.streak_store import load_record, save_record
from services.streak_tracker import (
    CheckInOutcome,
    StreakRecord,
    arm_freeze,
    buy_freeze,
    check_in,
    milestone_message,
    outcome_message,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/streaks", tags=["Streaks"])


def _to_response(athlete_id: str, record: StreakRecord) -> StreakResponse:
    return StreakResponse(
        athlete_id=athlete_id,
        current_streak=record.current_streak,
        longest_streak=record.longest_streak,
        last_check_in_date=record.last_check_in_date,
        freeze_inventory=record.freeze_inventory,
        freeze_armed=record.freeze_armed,
    )


@router.get("/{athlete_id}", response_model=StreakResponse)
async def get_streak(athlete_id: str, db: Session = Depends(get_db)):
    return _to_response(athlete_id, load_record(db, athlete_id))


@router.post("/{athlete_id}/check-in", response_model=CheckInResponse)
async def post_check_in(
    athlete_id: str,
    request: Optional[CheckInRequest] = None,
    db: Session = Depends(get_db),
    app_state: AppState = Depends(get_app_state),
):
    """
    Register today's check-in.

    `check_in_date` should be the client's local calendar day; the server's
    date is used when it is omitted.
    """
    today = (request.check_in_date if request else None) or app_state.today()
    record, outcome = check_in(today, load_record(db, athlete_id, for_update=True))

    milestone = None
    if outcome != CheckInOutcome.ALREADY_CHECKED_IN_TODAY:
        save_record(db, athlete_id, record)
        milestone = milestone_message(record.current_streak)
        logger.info(
            f"Streak check-in for {athlete_id}: {outcome.value} ({record.current_streak})",
            extra={"extra_fields": {"athlete_id": athlete_id, "outcome": outcome.value,
                                    "current_streak": record.current_streak}},
        )
        emit(EVENT_STREAK_CHECKED_IN, athlete_id=athlete_id, outcome=outcome.value,
             current_streak=record.current_streak)
        if milestone:
            emit(EVENT_STREAK_MILESTONE, athlete_id=athlete_id,
                 current_streak=record.current_streak, message=milestone)

    return CheckInResponse(
        outcome=outcome,
        message=outcome_message(outcome, record),
        milestone=milestone,
        streak=_to_response(athlete_id, record),
    )


@router.post("/{athlete_id}/freezes", response_model=StreakResponse)
async def post_buy_freeze(athlete_id: str, db: Session = Depends(get_db)):
    """Add a freeze to the inventory. Currency checks happen upstream."""
    record = save_record(db, athlete_id, buy_freeze(load_record(db, athlete_id, for_update=True)))
    logger.info(f"Freeze purchased for {athlete_id} (inventory {record.freeze_inventory})")
    return _to_response(athlete_id, record)


@router.post("/{athlete_id}/freezes/arm", response_model=StreakResponse)
async def post_arm_freeze(athlete_id: str, db: Session = Depends(get_db)):
    """Arm one freeze to protect the next missed day."""
    record, success = arm_freeze(load_record(db, athlete_id, for_update=True))
    if not success:
        detail = "A freeze is already armed" if record.freeze_armed else "No freezes in inventory"
        raise ConflictError(detail, error_code="FREEZE_UNAVAILABLE")
    save_record(db, athlete_id, record)
    logger.info(f"Freeze armed for {athlete_id}")
    return _to_response(athlete_id, record)
