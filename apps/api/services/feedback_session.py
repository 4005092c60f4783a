"""
Form feedback session.

    idle -> scanning_body -> detecting_joints -> analyzing_form -> generating_feedback

Detecting joints can fall back to scanning when tracking is lost. Entering
generating_feedback requests a `generate_tips` effect; the session
interprets it by attaching a fixed-priority list of coaching tips, so the
same analysis always yields the same tips.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple

from services.state_machine import (
    Effect,
    MachineDefinition,
    Snapshot,
    Transition,
    TransitionResult,
    build_table,
    transition,
)

logger = logging.getLogger(__name__)


class FeedbackState(str, Enum):
    IDLE = "idle"
    SCANNING_BODY = "scanning_body"
    DETECTING_JOINTS = "detecting_joints"
    ANALYZING_FORM = "analyzing_form"
    GENERATING_FEEDBACK = "generating_feedback"


class FeedbackEvent(str, Enum):
    START = "START"
    BODY_DETECTED = "BODY_DETECTED"
    JOINTS_LOCKED = "JOINTS_LOCKED"
    TRACKING_LOST = "TRACKING_LOST"
    ANALYSIS_COMPLETE = "ANALYSIS_COMPLETE"
    DISMISS = "DISMISS"
    RESTART = "RESTART"


EFFECT_GENERATE_TIPS = "generate_tips"

# Highest priority first.
COACHING_TIPS: Tuple[str, ...] = (
    "Keep your eyes on the ball until it leaves your foot.",
    "Lock your ankle and point your toes slightly up on contact.",
    "Stay on the balls of your feet between touches.",
    "Use soft touches: aim for the ball to rise no higher than your waist.",
    "Relax your shoulders and use your arms for balance.",
    "Alternate feet to build control on your weaker side.",
)


@dataclass(frozen=True)
class FeedbackContext:
    tips: Tuple[str, ...] = ()
    current_tip: Optional[str] = None
    tracking_losses: int = 0


def generate_tips(limit: int = 3) -> List[str]:
    """Top `limit` coaching tips in priority order."""
    if limit <= 0:
        return []
    return list(COACHING_TIPS[:limit])


def _count_tracking_loss(ctx: FeedbackContext) -> FeedbackContext:
    return replace(ctx, tracking_losses=ctx.tracking_losses + 1)


def _clear_tips(ctx: FeedbackContext) -> FeedbackContext:
    return replace(ctx, tips=(), current_tip=None)


def _request_tips(ctx: FeedbackContext) -> Effect:
    return Effect(EFFECT_GENERATE_TIPS)


FORM_FEEDBACK = MachineDefinition(
    name="form_feedback",
    initial=FeedbackState.IDLE,
    context_factory=FeedbackContext,
    transitions=build_table([
        (FeedbackState.IDLE, FeedbackEvent.START, Transition(FeedbackState.SCANNING_BODY)),
        (FeedbackState.SCANNING_BODY, FeedbackEvent.BODY_DETECTED, Transition(FeedbackState.DETECTING_JOINTS)),
        (FeedbackState.DETECTING_JOINTS, FeedbackEvent.JOINTS_LOCKED, Transition(FeedbackState.ANALYZING_FORM)),
        (FeedbackState.DETECTING_JOINTS, FeedbackEvent.TRACKING_LOST,
         Transition(FeedbackState.SCANNING_BODY, actions=(_count_tracking_loss,))),
        (FeedbackState.ANALYZING_FORM, FeedbackEvent.ANALYSIS_COMPLETE,
         Transition(FeedbackState.GENERATING_FEEDBACK, effects=(_request_tips,))),
        (FeedbackState.GENERATING_FEEDBACK, FeedbackEvent.DISMISS,
         Transition(FeedbackState.IDLE, actions=(_clear_tips,))),
        (FeedbackState.GENERATING_FEEDBACK, FeedbackEvent.RESTART,
         Transition(FeedbackState.SCANNING_BODY, actions=(_clear_tips,))),
    ]),
)


class FeedbackSession:
    """Holds one feedback session's snapshot and interprets its effects."""

    def __init__(self, tip_limit: int = 3, definition: MachineDefinition[FeedbackContext] = FORM_FEEDBACK):
        self.definition = definition
        self.tip_limit = tip_limit
        self.snapshot: Snapshot[FeedbackContext] = definition.initial_snapshot()

    @property
    def state(self) -> FeedbackState:
        return self.snapshot.state

    @property
    def context(self) -> FeedbackContext:
        return self.snapshot.context

    @property
    def current_tip(self) -> Optional[str]:
        return self.context.current_tip

    def send(self, event: FeedbackEvent) -> TransitionResult[FeedbackContext]:
        result = transition(self.definition, self.snapshot, event)
        if not result.changed:
            logger.debug(f"Ignored {event.value} in state {self.state.value}")
            return result

        snapshot = result.snapshot
        for effect in result.effects:
            if effect.name == EFFECT_GENERATE_TIPS:
                tips = tuple(generate_tips(self.tip_limit))
                snapshot = Snapshot(
                    state=snapshot.state,
                    context=replace(snapshot.context, tips=tips, current_tip=tips[0] if tips else None),
                )
        self.snapshot = snapshot
        return TransitionResult(snapshot=snapshot, effects=result.effects, changed=True)

    def available_events(self) -> List[FeedbackEvent]:
        return list(self.definition.events_for(self.state))

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "tips": list(self.context.tips),
            "current_tip": self.context.current_tip,
            "tracking_losses": self.context.tracking_losses,
            "available_events": [e.value for e in self.available_events()],
        }
