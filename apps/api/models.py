from sqlalchemy import Column, Integer, Boolean, CheckConstraint, Float, Date, DateTime, Text, String, Index
from sqlalchemy.sql import func
from core.database import Base
import uuid


class Player(Base):
    """Roster entry visible to matchmaking."""
    __tablename__ = "player"

    # Insertion order; matchmaking breaks distance ties with it.
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    display_name = Column(Text, nullable=False)
    skill_level = Column(Text, nullable=False)  # BEGINNER | INTERMEDIATE | ADVANCED | PRO
    age_group = Column(Text, nullable=False)  # UNDER_12 | UNDER_15 | UNDER_18 | ADULT
    position = Column(Text, nullable=False)  # GOALKEEPER | DEFENDER | MIDFIELDER | FORWARD
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_player_age_group", "age_group"),
    )


class StreakRecordRow(Base):
    """
    Daily check-in streak for one athlete.

    One row per athlete; rewritten on every counted check-in and freeze change.
    """
    __tablename__ = "streak_record"

    athlete_id = Column(String(64), primary_key=True)
    current_streak = Column(Integer, default=0, nullable=False)
    longest_streak = Column(Integer, default=0, nullable=False)
    last_check_in_date = Column(Date, nullable=True)
    freeze_inventory = Column(Integer, default=0, nullable=False)
    freeze_armed = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("current_streak >= 0", name="ck_streak_current_non_negative"),
        CheckConstraint("freeze_inventory >= 0", name="ck_streak_freeze_inventory_non_negative"),
    )


class DrillResult(Base):
    """Final metrics of a finished drill session."""
    __tablename__ = "drill_result"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    athlete_id = Column(String(64), nullable=False, index=True)
    drill = Column(Text, nullable=False, default="juggling_drill")
    elapsed_seconds = Column(Integer, nullable=False)
    detection_count = Column(Integer, nullable=False)
    completed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class AthleteProgress(Base):
    """Best drill score and unlocked kit."""
    __tablename__ = "athlete_progress"

    athlete_id = Column(String(64), primary_key=True)
    best_drill_score = Column(Integer, default=0, nullable=False)
    # Comma-separated item names, in unlock order.
    inventory = Column(Text, default="Basic Kit", nullable=False)
