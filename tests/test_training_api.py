"""HTTP-level tests for the training endpoints."""
from datetime import timedelta

import httpx
import pytest

from training_service.core.dependencies import create_access_token, get_progress_service
from training_service.main import app


def auth_headers(user_id="u1"):
    token = create_access_token({"sub": user_id}, expires_delta=timedelta(minutes=5))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(progress_service):
    app.dependency_overrides[get_progress_service] = lambda: progress_service
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


class TestAuth:
    async def test_requires_token(self, client):
        response = await client.get("/api/training/courses/C/progress")
        assert response.status_code in (401, 403)

    async def test_rejects_bad_token(self, client):
        response = await client.get(
            "/api/training/courses/C/progress",
            headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401


class TestTrainingEndpoints:
    async def test_scenario(self, client):
        headers = auth_headers()

        response = await client.post("/api/training/courses/C/topics/T1/complete", json={"viewed": True}, headers=headers)
        assert response.status_code == 200
        assert response.json()["completed"] is True

        response = await client.get("/api/training/courses/C/progress", headers=headers)
        assert response.json()["course_completion_percent"] == 50

        response = await client.post(
            "/api/training/courses/C/topics/T2/score",
            json={"answers": {"q1": 0, "q2": 0}},
            headers=headers
        )
        assert response.json() == {
            "score_percent": 50,
            "has_quiz": True,
            "is_final": True,
            "answered_count": 2,
            "total_count": 2,
        }

        response = await client.post(
            "/api/training/courses/C/topics/T2/complete",
            json={"answers": {"q1": 0, "q2": 0}},
            headers=headers
        )
        assert response.json() == {"completed": False, "reason": "ScoreBelowThreshold", "score_percent": 50}

        response = await client.post(
            "/api/training/courses/C/topics/T2/complete",
            json={"answers": {"q1": 0, "q2": 1}},
            headers=headers
        )
        assert response.json()["completed"] is True

        body = (await client.get("/api/training/courses/C/progress", headers=headers)).json()
        assert body["course_completion_percent"] == 100
        assert body["certificate_eligible"] is True
        assert body["per_module_percent"] == {"M1": 100}

    async def test_grade(self, client):
        response = await client.post(
            "/api/training/courses/C/topics/T2/questions/q2/grade",
            json={"selected_option_index": 0},
            headers=auth_headers()
        )
        assert response.status_code == 200
        assert response.json() == {"is_correct": False, "points_earned": 0, "explanation": "B is right"}

    async def test_invalid_selection_keeps_error_kind(self, client):
        response = await client.post(
            "/api/training/courses/C/topics/T2/questions/q2/grade",
            json={"selected_option_index": 9},
            headers=auth_headers()
        )
        assert response.status_code == 422
        assert response.json()["error"] == "InvalidSelection"

    async def test_incomplete_attempt(self, client):
        response = await client.post(
            "/api/training/courses/C/topics/T2/complete",
            json={"answers": {"q1": 0}},
            headers=auth_headers()
        )
        assert response.status_code == 409
        assert response.json()["error"] == "IncompleteAttempt"

    async def test_unknown_course(self, client):
        response = await client.get("/api/training/courses/missing/progress", headers=auth_headers())
        assert response.status_code == 404
        assert response.json()["error"] == "UnknownCourse"

    async def test_completion_needs_one_signal(self, client):
        response = await client.post("/api/training/courses/C/topics/T1/complete", json={}, headers=auth_headers())
        assert response.status_code == 422

    async def test_predecessor_reason(self, client):
        response = await client.post(
            "/api/training/courses/SEQ/topics/T2/complete",
            json={"viewed": True},
            headers=auth_headers()
        )
        assert response.status_code == 200
        assert response.json()["reason"] == "PredecessorIncomplete"

    async def test_enrollment_flow(self, client):
        headers = auth_headers()
        response = await client.post("/api/training/courses/GRID/enroll", headers=headers)
        assert response.status_code == 201
        assert response.json()["status"] == "enrolled"

        response = await client.post("/api/training/courses/GRID/enroll", headers=headers)
        assert response.status_code == 409
        assert response.json()["error"] == "AlreadyEnrolled"

        response = await client.get("/api/training/enrollments", headers=headers)
        assert [item["course_id"] for item in response.json()] == ["GRID"]
