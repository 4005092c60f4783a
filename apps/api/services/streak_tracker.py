"""
Daily Streak Service

Tracks consecutive daily check-ins and the freeze tokens that protect a
streak across missed days.

Rules:
- Only the first check-in of a calendar day counts.
- Checking in the day after the last counted day extends the streak.
- After a longer gap an armed freeze is consumed and the streak still
  extends; without one the streak restarts at 1.

Everything here works on immutable in-memory records. Loading and saving
them is the job of services.streak_store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

logger = logging.getLogger(__name__)


class CheckInOutcome(str, Enum):
    ALREADY_CHECKED_IN_TODAY = "already_checked_in_today"
    FIRST_CHECK_IN = "first_check_in"
    EXTENDED = "extended"
    SAVED_BY_FREEZE = "saved_by_freeze"
    RESET = "reset"


@dataclass(frozen=True)
class StreakRecord:
    """Persisted streak state for one athlete."""
    current_streak: int = 0
    last_check_in_date: Optional[date] = None
    freeze_inventory: int = 0
    freeze_armed: bool = False
    longest_streak: int = 0


STREAK_MILESTONES = {
    7: "🔥 One week straight! The habit is forming.",
    14: "⚡ Two weeks! Your touch is getting sharper.",
    30: "🏆 30 days! You're in the top tier of KickUp grinders.",
    50: "💪 50 days of touches. Coaches notice this kind of consistency.",
    100: "🌟 100 days! Nothing stops you now.",
    365: "👑 ONE YEAR! Every single day. Legendary.",
}


def _as_date(value: Union[date, datetime]) -> date:
    # datetime is a subclass of date; strip time-of-day explicitly.
    if isinstance(value, datetime):
        return value.date()
    return value


def check_in(today: Union[date, datetime], record: StreakRecord) -> Tuple[StreakRecord, CheckInOutcome]:
    """
    Register today's check-in against `record`.

    Returns the new record and what happened. The input record is never
    modified.
    """
    today = _as_date(today)
    last = record.last_check_in_date

    if last == today:
        return record, CheckInOutcome.ALREADY_CHECKED_IN_TODAY

    if last is None:
        return _counted(record, today, 1), CheckInOutcome.FIRST_CHECK_IN

    gap_days = (today - last).days

    # Device clock moved backwards; a day before the last counted one can't count.
    if gap_days < 0:
        logger.warning(f"Check-in date {today} precedes last check-in {last}; ignoring")
        return record, CheckInOutcome.ALREADY_CHECKED_IN_TODAY

    if gap_days == 1:
        return _counted(record, today, record.current_streak + 1), CheckInOutcome.EXTENDED

    if record.freeze_armed:
        saved = replace(_counted(record, today, record.current_streak + 1), freeze_armed=False)
        return saved, CheckInOutcome.SAVED_BY_FREEZE

    return _counted(record, today, 1), CheckInOutcome.RESET


def _counted(record: StreakRecord, today: date, streak: int) -> StreakRecord:
    return replace(
        record,
        current_streak=streak,
        last_check_in_date=today,
        longest_streak=max(record.longest_streak, streak),
    )


def buy_freeze(record: StreakRecord) -> StreakRecord:
    """Add one freeze to the inventory. Payment is checked by the caller."""
    return replace(record, freeze_inventory=record.freeze_inventory + 1)


def arm_freeze(record: StreakRecord) -> Tuple[StreakRecord, bool]:
    """
    Arm a freeze from inventory to protect the next missed day.

    Fails without touching the record when the inventory is empty or a
    freeze is already armed.
    """
    if record.freeze_inventory <= 0 or record.freeze_armed:
        return record, False
    return replace(record, freeze_inventory=record.freeze_inventory - 1, freeze_armed=True), True


def milestone_message(streak: int) -> Optional[str]:
    return STREAK_MILESTONES.get(streak)


def outcome_message(outcome: CheckInOutcome, record: StreakRecord) -> str:
    """Short status line for the home screen streak card."""
    streak = record.current_streak
    if outcome == CheckInOutcome.ALREADY_CHECKED_IN_TODAY:
        return f"Already checked in today. Streak: {streak} days."
    if outcome == CheckInOutcome.FIRST_CHECK_IN:
        return "Day 1! Come back tomorrow to start a streak."
    if outcome == CheckInOutcome.EXTENDED:
        return f"{streak} days in a row. Keep it going!"
    if outcome == CheckInOutcome.SAVED_BY_FREEZE:
        return f"🧊 Saved by a freeze! Streak continues at {streak} days."
    return "Streak reset. Every streak starts with day one."


# ---------------------------------------------------------------------------
# Primitive (de)serialization for storage collaborators
# ---------------------------------------------------------------------------

def record_to_primitives(record: StreakRecord) -> Dict[str, Any]:
    return {
        "current_streak": record.current_streak,
        "last_check_in_date": record.last_check_in_date.isoformat() if record.last_check_in_date else None,
        "freeze_inventory": record.freeze_inventory,
        "freeze_armed": record.freeze_armed,
        "longest_streak": record.longest_streak,
    }


def record_from_primitives(data: Dict[str, Any]) -> StreakRecord:
    """
    Build a record from stored primitives.

    Missing keys fall back to a fresh record; dates are ISO-8601 strings
    (a full timestamp is accepted and truncated to its date).
    """
    raw_date = data.get("last_check_in_date")
    last = None
    if raw_date:
        last = date.fromisoformat(str(raw_date)[:10])
    current = int(data.get("current_streak") or 0)
    return StreakRecord(
        current_streak=current,
        last_check_in_date=last,
        freeze_inventory=int(data.get("freeze_inventory") or 0),
        freeze_armed=_as_bool(data.get("freeze_armed", False)),
        longest_streak=max(int(data.get("longest_streak") or 0), current),
    )


def _as_bool(value: Any) -> bool:
    # Key-value stores hand back "true"/"false" strings.
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)
