"""
Matchmaking: find nearby players.

Pipeline (order is fixed):
1. Privacy partition. Minors only ever see minors; adults only ever see
   adults. No other filter can widen this.
2. Great-circle distance from the requester (haversine, R = 6371 km).
3. Radius cut.
4. Optional exact-match filters: skill level, position, age group.
5. Ascending by distance; ties keep roster order.

Coordinates are not validated here. Out-of-range values give meaningless
distances but never raise; non-finite values are treated as infinitely far.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
ADULT_AGE = 18


class SkillLevel(str, Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"
    PRO = "PRO"


class AgeGroup(str, Enum):
    UNDER_12 = "UNDER_12"
    UNDER_15 = "UNDER_15"
    UNDER_18 = "UNDER_18"
    ADULT = "ADULT"


class Position(str, Enum):
    GOALKEEPER = "GOALKEEPER"
    DEFENDER = "DEFENDER"
    MIDFIELDER = "MIDFIELDER"
    FORWARD = "FORWARD"


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class MatchCandidate:
    id: str
    display_name: str
    skill_level: SkillLevel
    age_group: AgeGroup
    position: Position
    location: Location

    @property
    def is_adult(self) -> bool:
        return self.age_group == AgeGroup.ADULT


@dataclass(frozen=True)
class RankedCandidate:
    candidate: MatchCandidate
    distance_km: float


def haversine_km(origin: Location, target: Location) -> float:
    """Great-circle distance between two points in kilometres."""
    coords = (origin.latitude, origin.longitude, target.latitude, target.longitude)
    if not all(math.isfinite(c) for c in coords):
        return math.inf

    lat1 = math.radians(origin.latitude)
    lat2 = math.radians(target.latitude)
    d_lat = math.radians(target.latitude - origin.latitude)
    d_lon = math.radians(target.longitude - origin.longitude)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    )
    # Float error on nonsense input can push `a` just outside [0, 1].
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def visible_to(requester_age: int, roster: Iterable[MatchCandidate]) -> List[MatchCandidate]:
    """Privacy partition: the candidates a requester of this age may see at all."""
    requester_is_minor = requester_age < ADULT_AGE
    return [c for c in roster if c.is_adult != requester_is_minor]


def find_players(
    origin: Location,
    radius_km: float,
    requester_age: int,
    roster: Iterable[MatchCandidate],
    skill_level: Optional[SkillLevel] = None,
    position: Optional[Position] = None,
    age_group: Optional[AgeGroup] = None,
) -> List[RankedCandidate]:
    """
    Privacy-filter, distance-filter and rank `roster` for a requester.

    Returns new RankedCandidate values; the roster is not modified.
    """
    visible = visible_to(requester_age, roster)

    ranked = [RankedCandidate(c, haversine_km(origin, c.location)) for c in visible]
    in_range = [r for r in ranked if r.distance_km <= radius_km]

    matches = [
        r for r in in_range
        if (skill_level is None or r.candidate.skill_level == skill_level)
        and (position is None or r.candidate.position == position)
        and (age_group is None or r.candidate.age_group == age_group)
    ]

    # sorted() is stable, so equal distances keep roster order.
    result = sorted(matches, key=lambda r: r.distance_km)
    logger.debug(
        f"Matchmaking: {len(visible)} visible, {len(in_range)} within {radius_km}km, {len(result)} matched"
    )
    return result
