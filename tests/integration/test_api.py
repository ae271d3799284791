"""
Integration tests for the HTTP API.

Runs the FastAPI app against the in-memory database with fake collaborators.
"""

import pytest
from fastapi.testclient import TestClient

from practice_engine.api.main import create_app

LEARNER = "learner-1"


@pytest.fixture
def client(services):
    app = create_app(services)
    with TestClient(app) as client:
        yield client


def _create(client, skill_id, minutes=2, session_type="practice"):
    return client.post(
        "/sessions",
        json={
            "learner_id": LEARNER,
            "skill_id": skill_id,
            "session_type": session_type,
            "target_minutes": minutes,
        },
    )


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["components"]["database"] == "ok"

    def test_root(self, client):
        assert client.get("/").json()["status"] == "ok"


class TestSessionFlow:
    def test_complete_session_and_recap(self, client, xp_service, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 3)

        created = _create(client, skill_chain[0])
        assert created.status_code == 201
        session = created.json()
        assert session["total_steps"] == 4
        assert len(session["exercise_ids"]) == 3

        active = client.get("/sessions/active", params={"learner_id": LEARNER, "skill_id": skill_chain[0]})
        assert active.json()["session_id"] == session["session_id"]

        exercise = client.get(f"/sessions/{session['session_id']}/exercises/0").json()
        assert exercise["exercise_id"] == session["exercise_ids"][0]
        assert exercise["content"]["prompt"].startswith("Question")

        results = [
            client.post(
                f"/sessions/{session['session_id']}/answers",
                json={"exercise_id": exercise_id, "is_correct": True, "time_spent_seconds": 15},
            ).json()
            for exercise_id in session["exercise_ids"]
        ]
        assert [r["current_step"] for r in results] == [1, 2, 3]
        assert results[-1]["is_complete"] is True

        recap = client.get(f"/sessions/{session['session_id']}/recap")
        assert recap.status_code == 200
        assert recap.json()["accuracy"] == 100
        assert recap.json()["streak_bonus"] is True
        assert recap.json()["reward_points"] == 30
        assert xp_service.xp_calls == [(LEARNER, 30, "session_complete")]

        assert client.get(f"/sessions/{session['session_id']}").json()["status"] == "completed"

    def test_learn_session_theory_step(self, client, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 2)
        session = _create(client, skill_chain[0], minutes=1, session_type="learn").json()

        response = client.post(f"/sessions/{session['session_id']}/theory")

        assert response.status_code == 200
        assert response.json()["theory_shown"] is True
        assert response.json()["current_step"] == 1

    def test_duplicate_session_conflict(self, client, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 6)
        first = _create(client, skill_chain[0]).json()

        response = _create(client, skill_chain[0])

        assert response.status_code == 409
        assert response.json()["error"] == "DuplicateActiveSession"
        assert response.json()["session_id"] == first["session_id"]

    def test_no_content(self, client, skill_chain):
        response = _create(client, skill_chain[0])

        assert response.status_code == 422
        assert response.json()["error"] == "NoContentAvailable"

    def test_unknown_skill(self, client):
        assert _create(client, "missing-skill").status_code == 404

    def test_invalid_target_minutes(self, client, skill_chain):
        assert _create(client, skill_chain[0], minutes=0).status_code == 422

    def test_no_active_session(self, client, skill_chain):
        response = client.get("/sessions/active", params={"learner_id": LEARNER, "skill_id": skill_chain[0]})

        assert response.status_code == 404

    def test_unknown_session(self, client):
        assert client.get("/sessions/missing").status_code == 404

    def test_exercise_index_out_of_range(self, client, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 2)
        session = _create(client, skill_chain[0], minutes=1).json()

        assert client.get(f"/sessions/{session['session_id']}/exercises/5").status_code == 404

    def test_recap_before_completion(self, client, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 3)
        session = _create(client, skill_chain[0]).json()

        response = client.get(f"/sessions/{session['session_id']}/recap")

        assert response.status_code == 409
        assert response.json()["error"] == "InvalidSessionState"

    def test_abandon_twice(self, client, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 3)
        session = _create(client, skill_chain[0]).json()

        first = client.post(f"/sessions/{session['session_id']}/abandon")
        second = client.post(f"/sessions/{session['session_id']}/abandon")

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.json()["status"] == "abandoned"

    def test_answer_after_abandon(self, client, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 3)
        session = _create(client, skill_chain[0]).json()
        client.post(f"/sessions/{session['session_id']}/abandon")

        response = client.post(
            f"/sessions/{session['session_id']}/answers",
            json={"exercise_id": session["exercise_ids"][0], "is_correct": True},
        )

        assert response.status_code == 409


class TestLearners:
    def test_progress_for_new_learner(self, client, skill_chain):
        response = client.get(f"/learners/{LEARNER}/skills/{skill_chain[0]}/progress")

        assert response.status_code == 200
        assert response.json()["mastery_level"] == 0
        assert response.json()["attempts_count"] == 0

    def test_progress_unknown_skill(self, client):
        assert client.get(f"/learners/{LEARNER}/skills/missing/progress").status_code == 404

    def test_unlock_and_grant(self, client, skill_chain):
        base = f"/learners/{LEARNER}/skills"

        assert client.get(f"{base}/{skill_chain[0]}/unlocked").json()["is_unlocked"] is True
        assert client.get(f"{base}/{skill_chain[1]}/unlocked").json()["is_unlocked"] is False

        granted = client.post(f"{base}/{skill_chain[1]}/unlock", json={"reason": "placement_test"})
        assert granted.status_code == 200
        assert granted.json()["reason"] == "placement_test"

        assert client.get(f"{base}/{skill_chain[1]}/unlocked").json()["is_unlocked"] is True

    def test_domain_overview(self, client, skill_chain):
        response = client.get(f"/learners/{LEARNER}/domains/fractions/skills")

        assert response.status_code == 200
        body = response.json()
        assert [s["skill_id"] for s in body] == skill_chain
        assert [s["is_unlocked"] for s in body] == [True, False, False]


class TestExercises:
    def test_rating_flags_exercise(self, client, skill_chain, make_exercises):
        exercise_id = make_exercises(skill_chain[0], 1)[0]

        outcomes = [
            client.post(f"/exercises/{exercise_id}/rating", json={"verdict": "bad"}).json()
            for _ in range(4)
        ]

        assert [o["quality_score"] for o in outcomes] == [40, 30, 20, 10]
        assert outcomes[-1]["flagged"] is True
        assert client.get(f"/exercises/{exercise_id}").json()["eligibility"] == "flagged"

    def test_invalid_verdict(self, client, skill_chain, make_exercises):
        exercise_id = make_exercises(skill_chain[0], 1)[0]

        response = client.post(f"/exercises/{exercise_id}/rating", json={"verdict": "meh"})

        assert response.status_code == 422

    def test_rating_unknown_exercise(self, client):
        response = client.post("/exercises/missing/rating", json={"verdict": "good"})

        assert response.status_code == 404


class TestSelection:
    def test_raw_selection_consumes_rotation(self, client, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 3)
        url = f"/skills/{skill_chain[0]}/selection"

        first = client.post(url, json={"learner_id": LEARNER, "count": 3}).json()
        second = client.post(url, json={"learner_id": LEARNER, "count": 1}).json()

        assert len(first["exercises"]) == 3
        assert first["rotation"] == 1
        assert second["rotation"] == 2
        assert second["rotation_wrapped"] is True
