"""
Explicit application state.

Everything that outlives a single request lives on one AppState object,
attached to `app.state.kickup` at startup and handed to endpoints through
`get_app_state`. Tests build their own AppState with a fixed clock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Callable

from fastapi import Request

from core.config import settings
from services.drill_session import DrillSession
from services.feedback_session import FeedbackSession
from services.session_registry import SessionRegistry


def _feedback_factory() -> FeedbackSession:
    return FeedbackSession(tip_limit=settings.FEEDBACK_TIP_LIMIT)


def _drill_registry() -> SessionRegistry[DrillSession]:
    return SessionRegistry(DrillSession, ttl_seconds=settings.SESSION_TTL_SECONDS)


def _feedback_registry() -> SessionRegistry[FeedbackSession]:
    return SessionRegistry(_feedback_factory, ttl_seconds=settings.SESSION_TTL_SECONDS)


@dataclass
class AppState:
    drills: SessionRegistry[DrillSession] = field(default_factory=_drill_registry)
    feedback: SessionRegistry[FeedbackSession] = field(default_factory=_feedback_registry)
    # Calendar source for check-ins without an explicit date.
    today: Callable[[], date] = date.today


def get_app_state(request: Request) -> AppState:
    return request.app.state.kickup
