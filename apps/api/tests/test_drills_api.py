"""
API tests for drill sessions and athlete progress.
"""

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from core.events import EVENT_DRILL_COMPLETED, subscribe, unsubscribe
from models import DrillResult

SETUP = ["PLANE_DETECTED", "USER_CONFIRM", "POSE_VALID"]


def start(client, athlete_id="u1"):
    response = client.post("/v1/drills", json={"athlete_id": athlete_id})
    assert response.status_code == 201
    return response.json()["session_id"]


def send(client, session_id, event):
    return client.post(f"/v1/drills/{session_id}/events", json={"event": event})


class TestLifecycle:
    def test_start(self, client):
        response = client.post("/v1/drills", json={"athlete_id": "u1"})
        data = response.json()
        assert data["state"] == "calibrating"
        assert data["elapsed_seconds"] == 0
        assert data["available_events"] == ["PLANE_DETECTED"]
        assert data["clock"] == "0:00"

    def test_full_drill_is_stored_and_rewarded(self, client, db_session):
        session_id = start(client)
        for event in SETUP + ["TICK"] * 65 + ["DETECTION"] * 14:
            assert send(client, session_id, event).json()["changed"] is True

        data = send(client, session_id, "STOP").json()
        assert data["session"]["state"] == "summary"
        assert data["session"]["clock"] == "1:05"
        assert data["effects"] == ["session_completed"]
        assert data["reward"] == {"new_best": True, "best_drill_score": 14, "unlocked": "Elite Kit (Level 1)"}

        stored = db_session.query(DrillResult).filter(DrillResult.athlete_id == "u1").one()
        assert stored.elapsed_seconds == 65
        assert stored.detection_count == 14

        progress = client.get("/v1/athletes/u1/progress").json()
        assert progress == {"athlete_id": "u1", "best_drill_score": 14,
                            "inventory": ["Basic Kit", "Elite Kit (Level 1)"]}

    def test_anonymous_drill_not_stored(self, client, db_session):
        response = client.post("/v1/drills", json={})
        session_id = response.json()["session_id"]
        for event in SETUP + ["DETECTION"]:
            send(client, session_id, event)
        data = send(client, session_id, "STOP").json()
        assert data["reward"] is None
        assert db_session.query(DrillResult).count() == 0

    def test_completion_emits_event(self, client):
        received = []

        def handler(**kwargs):
            received.append(kwargs)

        subscribe(EVENT_DRILL_COMPLETED, handler)
        try:
            session_id = start(client, "u9")
            for event in SETUP + ["TICK", "DETECTION", "STOP"]:
                send(client, session_id, event)
        finally:
            unsubscribe(EVENT_DRILL_COMPLETED, handler)

        assert received == [{"athlete_id": "u9", "elapsed_seconds": 1, "detection_count": 1}]

    def test_reset_after_summary(self, client):
        session_id = start(client)
        for event in SETUP + ["TICK", "STOP"]:
            send(client, session_id, event)
        data = send(client, session_id, "RESET").json()
        assert data["session"]["state"] == "calibrating"
        assert data["session"]["elapsed_seconds"] == 0

    def test_failed_store_keeps_session_active(self, client, db_session):
        from main import app

        session_id = start(client)
        for event in SETUP + ["TICK", "DETECTION"]:
            send(client, session_id, event)

        failing_client = TestClient(app, raise_server_exceptions=False)
        with patch("routers.drills.record_drill_score", side_effect=RuntimeError("db down")):
            response = send(failing_client, session_id, "STOP")
        assert response.status_code == 500

        session = client.get(f"/v1/drills/{session_id}").json()
        assert session["state"] == "active"
        assert session["detection_count"] == 1
        assert db_session.query(DrillResult).count() == 0

        data = send(client, session_id, "STOP").json()
        assert data["changed"] is True
        assert data["reward"]["best_drill_score"] == 1
        assert db_session.query(DrillResult).count() == 1

    def test_concurrent_events_each_see_their_own_count(self, client):
        session_id = start(client)
        for event in SETUP:
            send(client, session_id, event)

        with ThreadPoolExecutor(max_workers=8) as pool:
            responses = list(pool.map(lambda _: send(client, session_id, "DETECTION").json(), range(40)))

        counts = sorted(r["session"]["detection_count"] for r in responses)
        assert counts == list(range(1, 41))
        assert client.get(f"/v1/drills/{session_id}").json()["detection_count"] == 40

    def test_exit(self, client):
        session_id = start(client)
        assert client.delete(f"/v1/drills/{session_id}").status_code == 204
        assert client.get(f"/v1/drills/{session_id}").status_code == 404


class TestInvalidInput:
    def test_out_of_order_event_is_ignored(self, client):
        session_id = start(client)
        data = send(client, session_id, "TICK").json()
        assert data["changed"] is False
        assert data["session"]["state"] == "calibrating"
        assert data["session"]["elapsed_seconds"] == 0

    def test_unknown_event_name(self, client):
        session_id = start(client)
        assert send(client, session_id, "JUGGLE_HARDER").status_code == 422

    def test_unknown_session(self, client):
        response = client.get("/v1/drills/missing")
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    def test_event_for_unknown_session(self, client):
        assert send(client, "missing", "TICK").status_code == 404


class TestSimulate:
    def _active(self, client):
        session_id = start(client)
        for event in SETUP:
            send(client, session_id, event)
        return session_id

    def test_certain_detector(self, client):
        session_id = self._active(client)
        response = client.post(f"/v1/drills/{session_id}/simulate",
                               json={"seconds": 10, "detection_every": 2, "hit_probability": 1.0})
        data = response.json()
        assert data["elapsed_seconds"] == 10
        assert data["detection_count"] == 5

    def test_seeded_runs_match(self, client):
        results = []
        for _ in range(2):
            session_id = self._active(client)
            response = client.post(f"/v1/drills/{session_id}/simulate", json={"seconds": 40, "seed": 1234})
            results.append(response.json()["detection_count"])
        assert results[0] == results[1]
        assert 0 <= results[0] <= 20

    def test_not_active_is_noop(self, client):
        session_id = start(client)
        data = client.post(f"/v1/drills/{session_id}/simulate", json={"seconds": 5}).json()
        assert data["state"] == "calibrating"
        assert data["elapsed_seconds"] == 0

    @pytest.mark.parametrize("seconds", [0, -3])
    def test_seconds_must_be_positive(self, client, seconds):
        session_id = self._active(client)
        response = client.post(f"/v1/drills/{session_id}/simulate", json={"seconds": seconds})
        assert response.status_code == 422

    def test_seconds_capped(self, client):
        session_id = self._active(client)
        response = client.post(f"/v1/drills/{session_id}/simulate", json={"seconds": 100000})
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR_SECONDS"
