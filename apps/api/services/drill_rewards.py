"""
Drill rewards ("Ghost Mode").

Beating your best drill score unlocks an Elite Kit whose level follows the
score (one level per 10 touches).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from models import AthleteProgress

logger = logging.getLogger(__name__)

STARTER_ITEM = "Basic Kit"


@dataclass(frozen=True)
class Progress:
    best_drill_score: int = 0
    inventory: Tuple[str, ...] = (STARTER_ITEM,)


@dataclass(frozen=True)
class RewardResult:
    progress: Progress
    new_best: bool
    unlocked: Optional[str] = None


def elite_kit_for(score: int) -> str:
    return f"Elite Kit (Level {score // 10})"


def apply_drill_result(progress: Progress, score: int) -> RewardResult:
    if score <= progress.best_drill_score:
        return RewardResult(progress=progress, new_best=False)

    item = elite_kit_for(score)
    unlocked = None
    inventory = progress.inventory
    if item not in inventory:
        inventory = inventory + (item,)
        unlocked = item
    updated = Progress(best_drill_score=score, inventory=inventory)
    return RewardResult(progress=updated, new_best=True, unlocked=unlocked)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

def _split_inventory(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return ()
    return tuple(item for item in raw.split(",") if item)


def load_progress(db: Session, athlete_id: str) -> Progress:
    row = db.query(AthleteProgress).filter(AthleteProgress.athlete_id == athlete_id).first()
    if row is None:
        return Progress()
    return Progress(best_drill_score=row.best_drill_score or 0, inventory=_split_inventory(row.inventory))


def save_progress(db: Session, athlete_id: str, progress: Progress) -> None:
    row = db.query(AthleteProgress).filter(AthleteProgress.athlete_id == athlete_id).first()
    if row is None:
        row = AthleteProgress(athlete_id=athlete_id)
    row.best_drill_score = progress.best_drill_score
    row.inventory = ",".join(progress.inventory)
    db.add(row)
    db.flush()


def record_drill_score(db: Session, athlete_id: str, score: int) -> RewardResult:
    result = apply_drill_result(load_progress(db, athlete_id), score)
    if result.new_best:
        save_progress(db, athlete_id, result.progress)
        logger.info(
            f"New best drill score for {athlete_id}: {score}",
            extra={"extra_fields": {"athlete_id": athlete_id, "score": score, "unlocked": result.unlocked}},
        )
    return result