"""
Matchmaking API Router

Coordinates are validated here; the matchmaking service itself trusts its
input.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.config import settings
from core.database import get_db
from core.exceptions import ValidationError
from schemas import LocationSchema, MatchRequest, MatchResponse, PlayerMatch
from services.matchmaking import Location, find_players
from services.roster import load_roster

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/matchmaking", tags=["Matchmaking"])


@router.post("/find-players", response_model=MatchResponse)
async def post_find_players(request: MatchRequest, db: Session = Depends(get_db)):
    """Nearby players the requester is allowed to see, closest first."""
    radius_km = request.radius_km or settings.MATCHMAKING_DEFAULT_RADIUS_KM
    if radius_km > settings.MATCHMAKING_MAX_RADIUS_KM:
        raise ValidationError(
            f"radius_km must be <= {settings.MATCHMAKING_MAX_RADIUS_KM}", field="radius_km"
        )

    ranked = find_players(
        origin=Location(request.latitude, request.longitude),
        radius_km=radius_km,
        requester_age=request.requester_age,
        roster=load_roster(db),
        skill_level=request.skill_level,
        position=request.position,
        age_group=request.age_group,
    )
    logger.info(
        f"Matchmaking returned {len(ranked)} players within {radius_km}km",
        extra={"extra_fields": {"radius_km": radius_km, "count": len(ranked)}},
    )

    players = [
        PlayerMatch(
            id=r.candidate.id,
            display_name=r.candidate.display_name,
            skill_level=r.candidate.skill_level,
            age_group=r.candidate.age_group,
            position=r.candidate.position,
            location=LocationSchema(
                latitude=r.candidate.location.latitude,
                longitude=r.candidate.location.longitude,
            ),
            distance_km=round(r.distance_km, 3),
        )
        for r in ranked
    ]
    return MatchResponse(count=len(players), radius_km=radius_km, players=players)
