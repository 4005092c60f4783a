"""
Drill Session Engine

Guided, camera-assisted juggling drill:

    calibrating -> placing_anchor -> fitting_body -> active -> summary

While active the session counts elapsed seconds (TICK) and detected touches
(DETECTION). STOP freezes the metrics and emits a `session_completed` effect.
RESET from the summary starts over with zeroed metrics.

Timing and detection live outside the machine: a DrillDriver feeds it events
from a clock and a Detector, one at a time.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional, Protocol

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


class DrillState(str, Enum):
    CALIBRATING = "calibrating"
    PLACING_ANCHOR = "placing_anchor"
    FITTING_BODY = "fitting_body"
    ACTIVE = "active"
    SUMMARY = "summary"


class DrillEvent(str, Enum):
    PLANE_DETECTED = "PLANE_DETECTED"
    USER_CONFIRM = "USER_CONFIRM"
    POSE_VALID = "POSE_VALID"
    TICK = "TICK"
    DETECTION = "DETECTION"
    STOP = "STOP"
    RESET = "RESET"


EFFECT_SESSION_COMPLETED = "session_completed"


@dataclass(frozen=True)
class DrillContext:
    elapsed_seconds: int = 0
    detection_count: int = 0


def _add_second(ctx: DrillContext) -> DrillContext:
    return replace(ctx, elapsed_seconds=ctx.elapsed_seconds + 1)


def _add_detection(ctx: DrillContext) -> DrillContext:
    return replace(ctx, detection_count=ctx.detection_count + 1)


def _zero_metrics(ctx: DrillContext) -> DrillContext:
    return DrillContext()


def _completed(ctx: DrillContext) -> Effect:
    return Effect(
        EFFECT_SESSION_COMPLETED,
        {"elapsed_seconds": ctx.elapsed_seconds, "detection_count": ctx.detection_count},
    )


JUGGLING_DRILL = MachineDefinition(
    name="juggling_drill",
    initial=DrillState.CALIBRATING,
    context_factory=DrillContext,
    transitions=build_table([
        (DrillState.CALIBRATING, DrillEvent.PLANE_DETECTED, Transition(DrillState.PLACING_ANCHOR)),
        (DrillState.PLACING_ANCHOR, DrillEvent.USER_CONFIRM, Transition(DrillState.FITTING_BODY)),
        (DrillState.FITTING_BODY, DrillEvent.POSE_VALID, Transition(DrillState.ACTIVE)),
        (DrillState.ACTIVE, DrillEvent.TICK, Transition(DrillState.ACTIVE, actions=(_add_second,))),
        (DrillState.ACTIVE, DrillEvent.DETECTION, Transition(DrillState.ACTIVE, actions=(_add_detection,))),
        (DrillState.ACTIVE, DrillEvent.STOP, Transition(DrillState.SUMMARY, effects=(_completed,))),
        (DrillState.SUMMARY, DrillEvent.RESET, Transition(DrillState.CALIBRATING, actions=(_zero_metrics,))),
    ]),
)


class DrillSession:
    """
    Caller-owned holder for one drill's snapshot.

    Not thread-safe; callers serialize events per session.
    """

    def __init__(self, definition: MachineDefinition[DrillContext] = JUGGLING_DRILL):
        self.definition = definition
        self.snapshot: Snapshot[DrillContext] = definition.initial_snapshot()

    @property
    def state(self) -> DrillState:
        return self.snapshot.state

    @property
    def context(self) -> DrillContext:
        return self.snapshot.context

    @property
    def is_active(self) -> bool:
        return self.state == DrillState.ACTIVE

    @property
    def is_finished(self) -> bool:
        return self.state == DrillState.SUMMARY

    def send(self, event: DrillEvent) -> TransitionResult[DrillContext]:
        result = transition(self.definition, self.snapshot, event)
        if not result.changed:
            logger.debug(f"Ignored {event.value} in state {self.state.value}")
        elif result.snapshot.state != self.snapshot.state:
            logger.debug(f"Drill {self.state.value} -> {result.snapshot.state.value}")
        self.snapshot = result.snapshot
        return result

    def available_events(self) -> List[DrillEvent]:
        return list(self.definition.events_for(self.state))

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "elapsed_seconds": self.context.elapsed_seconds,
            "detection_count": self.context.detection_count,
            "available_events": [e.value for e in self.available_events()],
        }


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

class Detector(Protocol):
    def detect(self) -> bool:
        """Return True when a touch was detected since the last poll."""
        ...


class ScriptedDetector:
    """Replays a fixed sequence of readings, then reports nothing."""

    def __init__(self, readings: Iterable[bool]):
        self._readings = iter(list(readings))

    def detect(self) -> bool:
        return next(self._readings, False)


class RandomDetector:
    """Simulated vision: each poll hits with `hit_probability`."""

    def __init__(self, hit_probability: float = 0.7, rng: Optional[random.Random] = None):
        self.hit_probability = hit_probability
        self.rng = rng or random.Random()

    def detect(self) -> bool:
        return self.rng.random() < self.hit_probability


def format_clock(seconds: int) -> str:
    """Render elapsed seconds as m:ss."""
    mins, secs = divmod(max(0, int(seconds)), 60)
    return f"{mins}:{secs:02d}"


class DrillDriver:
    """
    Thin event loop around a DrillSession.

    The real clock belongs to the client; `run` is a synchronous stand-in
    that replays N one-second ticks and polls the detector every
    `detection_every` seconds.
    """

    def __init__(self, session: DrillSession, detector: Detector):
        self.session = session
        self.detector = detector

    def tick(self) -> TransitionResult[DrillContext]:
        return self.session.send(DrillEvent.TICK)

    def poll_detector(self) -> Optional[TransitionResult[DrillContext]]:
        if not self.session.is_active:
            return None
        if self.detector.detect():
            return self.session.send(DrillEvent.DETECTION)
        return None

    def run(self, seconds: int, detection_every: int = 2) -> DrillContext:
        if detection_every < 1:
            raise ValueError("detection_every must be >= 1")
        for second in range(1, seconds + 1):
            if not self.session.is_active:
                break
            self.tick()
            if second % detection_every == 0:
                self.poll_detector()
        return self.session.context
