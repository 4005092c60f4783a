"""
Unit tests for the drill session engine.

Covers:
  1. The transition table, pair by pair
  2. Out-of-order events are no-ops in every state
  3. Metrics only move while active and freeze at the summary
  4. Detector abstraction and the synchronous driver
"""

import random

import pytest

from services.drill_session import (
    EFFECT_SESSION_COMPLETED,
    JUGGLING_DRILL,
    DrillContext,
    DrillDriver,
    DrillEvent,
    DrillSession,
    DrillState,
    RandomDetector,
    ScriptedDetector,
    format_clock,
)

# Event sequences that bring a fresh session into each state.
PATH_TO = {
    DrillState.CALIBRATING: [],
    DrillState.PLACING_ANCHOR: [DrillEvent.PLANE_DETECTED],
    DrillState.FITTING_BODY: [DrillEvent.PLANE_DETECTED, DrillEvent.USER_CONFIRM],
    DrillState.ACTIVE: [
        DrillEvent.PLANE_DETECTED, DrillEvent.USER_CONFIRM, DrillEvent.POSE_VALID,
        DrillEvent.TICK, DrillEvent.DETECTION,
    ],
    DrillState.SUMMARY: [
        DrillEvent.PLANE_DETECTED, DrillEvent.USER_CONFIRM, DrillEvent.POSE_VALID,
        DrillEvent.TICK, DrillEvent.TICK, DrillEvent.DETECTION, DrillEvent.STOP,
    ],
}

EXPECTED = {
    (DrillState.CALIBRATING, DrillEvent.PLANE_DETECTED): DrillState.PLACING_ANCHOR,
    (DrillState.PLACING_ANCHOR, DrillEvent.USER_CONFIRM): DrillState.FITTING_BODY,
    (DrillState.FITTING_BODY, DrillEvent.POSE_VALID): DrillState.ACTIVE,
    (DrillState.ACTIVE, DrillEvent.TICK): DrillState.ACTIVE,
    (DrillState.ACTIVE, DrillEvent.DETECTION): DrillState.ACTIVE,
    (DrillState.ACTIVE, DrillEvent.STOP): DrillState.SUMMARY,
    (DrillState.SUMMARY, DrillEvent.RESET): DrillState.CALIBRATING,
}

INVALID_PAIRS = [
    (state, event)
    for state in DrillState
    for event in DrillEvent
    if (state, event) not in EXPECTED
]


def session_in(state: DrillState) -> DrillSession:
    session = DrillSession()
    for event in PATH_TO[state]:
        session.send(event)
    assert session.state == state
    return session


class TestTransitionTable:
    def test_starts_calibrating_with_zero_metrics(self):
        session = DrillSession()
        assert session.state == DrillState.CALIBRATING
        assert session.context == DrillContext(elapsed_seconds=0, detection_count=0)

    def test_table_matches_expected(self):
        assert set(JUGGLING_DRILL.transitions) == set(EXPECTED)

    @pytest.mark.parametrize("pair,target", list(EXPECTED.items()))
    def test_valid_pairs(self, pair, target):
        state, event = pair
        session = session_in(state)
        result = session.send(event)
        assert result.changed is True
        assert session.state == target

    @pytest.mark.parametrize("state,event", INVALID_PAIRS)
    def test_invalid_pairs_are_noops(self, state, event):
        session = session_in(state)
        before = session.snapshot
        result = session.send(event)
        assert result.changed is False
        assert result.effects == ()
        assert session.snapshot == before

    def test_full_session(self):
        session = DrillSession()
        for event in (DrillEvent.PLANE_DETECTED, DrillEvent.USER_CONFIRM, DrillEvent.POSE_VALID):
            session.send(event)
        for _ in range(5):
            session.send(DrillEvent.TICK)
        for _ in range(3):
            session.send(DrillEvent.DETECTION)
        result = session.send(DrillEvent.STOP)

        assert session.state == DrillState.SUMMARY
        assert session.is_finished
        assert result.effects[0].name == EFFECT_SESSION_COMPLETED
        assert result.effects[0].payload == {"elapsed_seconds": 5, "detection_count": 3}


class TestMetrics:
    def test_tick_and_detection_increment_while_active(self):
        session = session_in(DrillState.ACTIVE)
        before = session.context
        session.send(DrillEvent.TICK)
        session.send(DrillEvent.DETECTION)
        assert session.context.elapsed_seconds == before.elapsed_seconds + 1
        assert session.context.detection_count == before.detection_count + 1

    def test_metrics_monotonic_during_random_stream(self):
        rng = random.Random(7)
        session = session_in(DrillState.ACTIVE)
        previous = session.context
        for _ in range(200):
            session.send(rng.choice([DrillEvent.TICK, DrillEvent.DETECTION, DrillEvent.PLANE_DETECTED]))
            assert session.context.elapsed_seconds >= previous.elapsed_seconds
            assert session.context.detection_count >= previous.detection_count
            previous = session.context

    @pytest.mark.parametrize("state", [DrillState.CALIBRATING, DrillState.PLACING_ANCHOR, DrillState.FITTING_BODY])
    def test_no_counting_before_active(self, state):
        session = session_in(state)
        session.send(DrillEvent.TICK)
        session.send(DrillEvent.DETECTION)
        assert session.context == DrillContext()

    def test_metrics_frozen_in_summary(self):
        session = session_in(DrillState.SUMMARY)
        final = session.context
        for event in (DrillEvent.TICK, DrillEvent.DETECTION, DrillEvent.STOP, DrillEvent.POSE_VALID):
            session.send(event)
        assert session.state == DrillState.SUMMARY
        assert session.context == final
        assert final == DrillContext(elapsed_seconds=2, detection_count=1)

    def test_reset_zeroes_metrics(self):
        session = session_in(DrillState.SUMMARY)
        session.send(DrillEvent.RESET)
        assert session.state == DrillState.CALIBRATING
        assert session.context == DrillContext()


class TestSessionView:
    def test_available_events(self):
        assert DrillSession().available_events() == [DrillEvent.PLANE_DETECTED]
        assert session_in(DrillState.ACTIVE).available_events() == [
            DrillEvent.TICK, DrillEvent.DETECTION, DrillEvent.STOP,
        ]

    def test_to_dict(self):
        data = session_in(DrillState.ACTIVE).to_dict()
        assert data == {
            "state": "active",
            "elapsed_seconds": 1,
            "detection_count": 1,
            "available_events": ["TICK", "DETECTION", "STOP"],
        }

    @pytest.mark.parametrize("seconds,expected", [(0, "0:00"), (9, "0:09"), (61, "1:01"), (600, "10:00")])
    def test_format_clock(self, seconds, expected):
        assert format_clock(seconds) == expected


class TestDetectors:
    def test_scripted_detector_replays_then_stops(self):
        detector = ScriptedDetector([True, False, True])
        assert [detector.detect() for _ in range(5)] == [True, False, True, False, False]

    def test_random_detector_bounds(self):
        assert not any(RandomDetector(0.0, random.Random(1)).detect() for _ in range(50))
        assert all(RandomDetector(1.0, random.Random(1)).detect() for _ in range(50))

    def test_random_detector_is_repeatable_with_seed(self):
        a = RandomDetector(0.5, random.Random(42))
        b = RandomDetector(0.5, random.Random(42))
        assert [a.detect() for _ in range(30)] == [b.detect() for _ in range(30)]


class TestDriver:
    def test_run_ticks_and_polls(self):
        session = session_in(DrillState.FITTING_BODY)
        session.send(DrillEvent.POSE_VALID)
        driver = DrillDriver(session, ScriptedDetector([True, False, True]))
        context = driver.run(seconds=6, detection_every=2)
        # Polled at seconds 2, 4 and 6.
        assert context == DrillContext(elapsed_seconds=6, detection_count=2)

    def test_run_does_nothing_before_active(self):
        session = DrillSession()
        DrillDriver(session, ScriptedDetector([True] * 10)).run(seconds=10)
        assert session.state == DrillState.CALIBRATING
        assert session.context == DrillContext()

    def test_poll_outside_active_does_not_consume_readings(self):
        session = session_in(DrillState.SUMMARY)
        detector = ScriptedDetector([True])
        assert DrillDriver(session, detector).poll_detector() is None
        assert detector.detect() is True

    def test_detection_every_must_be_positive(self):
        with pytest.raises(ValueError):
            DrillDriver(DrillSession(), ScriptedDetector([])).run(seconds=1, detection_every=0)
