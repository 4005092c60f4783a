"""
Durable streak storage.

Maps StreakRecordRow <-> StreakRecord so the tracker itself never touches
the database. Writes are flushed, not committed; the request's session
owns the transaction.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from models import StreakRecordRow
from services.streak_tracker import StreakRecord


def _get_row(db: Session, athlete_id: str, for_update: bool = False) -> Optional[StreakRecordRow]:
    query = db.query(StreakRecordRow).filter(StreakRecordRow.athlete_id == athlete_id)
    if for_update:
        # Serializes concurrent check-ins for one athlete on backends that support it.
        query = query.with_for_update()
    return query.first()


def _to_record(row: StreakRecordRow) -> StreakRecord:
    return StreakRecord(
        current_streak=row.current_streak or 0,
        last_check_in_date=row.last_check_in_date,
        freeze_inventory=row.freeze_inventory or 0,
        freeze_armed=bool(row.freeze_armed),
        longest_streak=row.longest_streak or 0,
    )


def load_record(db: Session, athlete_id: str, for_update: bool = False) -> StreakRecord:
    """Stored record for the athlete, or a fresh one if they never checked in."""
    row = _get_row(db, athlete_id, for_update=for_update)
    if row is None:
        return StreakRecord()
    return _to_record(row)


def save_record(db: Session, athlete_id: str, record: StreakRecord) -> StreakRecord:
    row = _get_row(db, athlete_id)
    if row is None:
        row = StreakRecordRow(athlete_id=athlete_id)
    row.current_streak = record.current_streak
    row.longest_streak = record.longest_streak
    row.last_check_in_date = record.last_check_in_date
    row.freeze_inventory = record.freeze_inventory
    row.freeze_armed = record.freeze_armed
    db.add(row)
    db.flush()
    return record
