"""
Roster provider for matchmaking.

Reads Player rows into immutable MatchCandidate snapshots. An empty table is
seeded with the demo roster so a fresh install has someone to find.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from models import Player
from services.matchmaking import AgeGroup, Location, MatchCandidate, Position, SkillLevel

logger = logging.getLogger(__name__)


DEMO_ROSTER = [
    # NYC
    {"id": "1", "display_name": "Striker99", "skill_level": "ADVANCED", "age_group": "ADULT",
     "position": "FORWARD", "latitude": 40.7128, "longitude": -74.0060},
    # NYC, a block away
    {"id": "2", "display_name": "MidfieldMaestro", "skill_level": "INTERMEDIATE", "age_group": "UNDER_18",
     "position": "MIDFIELDER", "latitude": 40.7138, "longitude": -74.0070},
    # Times Square
    {"id": "3", "display_name": "GoalieOne", "skill_level": "BEGINNER", "age_group": "UNDER_12",
     "position": "GOALKEEPER", "latitude": 40.7580, "longitude": -73.9855},
    # LA
    {"id": "4", "display_name": "ProDefender", "skill_level": "PRO", "age_group": "ADULT",
     "position": "DEFENDER", "latitude": 34.0522, "longitude": -118.2437},
]


def to_candidate(player: Player) -> MatchCandidate:
    return MatchCandidate(
        id=player.id,
        display_name=player.display_name,
        skill_level=SkillLevel(player.skill_level),
        age_group=AgeGroup(player.age_group),
        position=Position(player.position),
        location=Location(latitude=player.latitude, longitude=player.longitude),
    )


def load_roster(db: Session) -> List[MatchCandidate]:
    """All players in insertion order."""
    players = db.query(Player).order_by(Player.seq).all()
    return [to_candidate(p) for p in players]


def seed_demo_roster(db: Session) -> int:
    """
    Insert the demo roster if the player table is empty.

    Returns the number of players inserted.
    """
    if db.query(Player).first() is not None:
        return 0
    for row in DEMO_ROSTER:
        db.add(Player(**row))
    db.flush()
    logger.info(f"Seeded demo roster with {len(DEMO_ROSTER)} players")
    return len(DEMO_ROSTER)
