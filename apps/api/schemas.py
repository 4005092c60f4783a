from pydantic import BaseModel, ConfigDict, Field
from datetime import date
from typing import Optional, List

from services.drill_session import DrillEvent
from services.feedback_session import FeedbackEvent
from services.matchmaking import AgeGroup, Position, SkillLevel
from services.streak_tracker import CheckInOutcome


# ---------------------------------------------------------------------------
# Drill sessions
# ---------------------------------------------------------------------------

class DrillStartRequest(BaseModel):
    athlete_id: Optional[str] = None


class DrillSessionResponse(BaseModel):
    session_id: str
    athlete_id: Optional[str] = None
    state: str
    elapsed_seconds: int
    detection_count: int
    clock: str  # m:ss for display
    available_events: List[str]


class DrillEventRequest(BaseModel):
    event: DrillEvent


class DrillRewardResponse(BaseModel):
    new_best: bool
    best_drill_score: int
    unlocked: Optional[str] = None


class DrillEventResponse(BaseModel):
    session: DrillSessionResponse
    changed: bool
    effects: List[str] = []
    reward: Optional[DrillRewardResponse] = None


class DrillSimulateRequest(BaseModel):
    seconds: int = Field(ge=1)
    detection_every: int = Field(default=2, ge=1)
    seed: Optional[int] = None  # Fixed seed gives a repeatable session
    hit_probability: Optional[float] = Field(default=None, ge=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Feedback sessions
# ---------------------------------------------------------------------------

class FeedbackStartRequest(BaseModel):
    athlete_id: Optional[str] = None


class FeedbackSessionResponse(BaseModel):
    session_id: str
    athlete_id: Optional[str] = None
    state: str
    tips: List[str]
    current_tip: Optional[str] = None
    tracking_losses: int
    available_events: List[str]


class FeedbackEventRequest(BaseModel):
    event: FeedbackEvent


class FeedbackEventResponse(BaseModel):
    session: FeedbackSessionResponse
    changed: bool
    effects: List[str] = []


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------

class StreakResponse(BaseModel):
    athlete_id: str
    current_streak: int
    longest_streak: int
    last_check_in_date: Optional[date] = None
    freeze_inventory: int
    freeze_armed: bool

    model_config = ConfigDict(from_attributes=True)


class CheckInRequest(BaseModel):
    # Client's local calendar day; server date when omitted.
    check_in_date: Optional[date] = None


class CheckInResponse(BaseModel):
    outcome: CheckInOutcome
    message: str
    milestone: Optional[str] = None
    streak: StreakResponse


# ---------------------------------------------------------------------------
# Matchmaking
# ---------------------------------------------------------------------------

class LocationSchema(BaseModel):
    latitude: float
    longitude: float


class MatchRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    radius_km: Optional[float] = Field(default=None, gt=0)
    requester_age: int = Field(ge=0, le=120)  # Required for privacy filtering
    skill_level: Optional[SkillLevel] = None
    age_group: Optional[AgeGroup] = None
    position: Optional[Position] = None


class PlayerMatch(BaseModel):
    id: str
    display_name: str
    skill_level: SkillLevel
    age_group: AgeGroup
    position: Position
    location: LocationSchema
    distance_km: float


class MatchResponse(BaseModel):
    count: int
    radius_km: float
    players: List[PlayerMatch]


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

class ProgressResponse(BaseModel):
    athlete_id: str
    best_drill_score: int
    inventory: List[str]
