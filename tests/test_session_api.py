"""
执行会话API测试
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from plan_agent.api.session_api import router


@pytest.fixture
def client(scheduler):
    """挂载会话路由的测试应用"""
    app = FastAPI()
    app.state.scheduler = scheduler
    app.include_router(router, prefix="/api/v1")
    with TestClient(app) as test_client:
        yield test_client


class TestSessionApi:
    """会话接口测试"""

    def test_trigger_and_get_session(self, client):
        response = client.post("/api/v1/sessions/trigger", json={"admin_user_id": "admin-1"})

        assert response.status_code == 200
        session = response.json()
        assert session["status"] == "confirmed"
        assert session["delivery_ids"] == ["msg-1", "msg-2"]

        fetched = client.get(f"/api/v1/sessions/{session['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["id"] == session["id"]

    def test_trigger_uses_default_admin(self, client):
        response = client.post("/api/v1/sessions/trigger", json={})

        assert response.status_code == 200
        assert response.json()["admin_user_id"] == "admin-1"

    def test_list_and_stats(self, client):
        client.post("/api/v1/sessions/trigger", json={"team_id": "team-1"})

        listing = client.get("/api/v1/sessions/")
        stats = client.get("/api/v1/sessions/stats")

        assert listing.json()["total"] == 1
        assert stats.json()["confirmed_sessions"] == 1
        assert stats.json()["success_rate"] == 100.0

    def test_get_missing_session(self, client):
        assert client.get("/api/v1/sessions/session_missing").status_code == 404

    def test_update_status(self, client):
        session_id = client.post("/api/v1/sessions/trigger", json={}).json()["id"]

        response = client.put(f"/api/v1/sessions/{session_id}/status", json={"status": "completed"})

        assert response.status_code == 200
        assert response.json()["status"] == "completed"

    def test_unknown_status_rejected(self, client, scheduler):
        """边界层拒绝四种状态以外的值"""
        session_id = client.post("/api/v1/sessions/trigger", json={}).json()["id"]

        response = client.put(f"/api/v1/sessions/{session_id}/status", json={"status": "archived"})

        assert response.status_code == 422
        assert scheduler.get_session(session_id).status.value == "confirmed"

    def test_update_status_missing_session(self, client):
        response = client.put("/api/v1/sessions/session_missing/status", json={"status": "completed"})
        assert response.status_code == 404

    def test_retry_requires_failed_session(self, client, ticket_gateway):
        ticket_gateway.fail_people = True
        failed_id = client.post("/api/v1/sessions/trigger", json={}).json()["id"]
        ticket_gateway.fail_people = False

        retried = client.post(f"/api/v1/sessions/{failed_id}/retry")
        again = client.post(f"/api/v1/sessions/{failed_id}/retry")

        assert retried.status_code == 200
        assert retried.json()["status"] == "confirmed"
        assert retried.json()["retry_count"] == 1
        assert again.status_code == 409
        assert client.post("/api/v1/sessions/session_missing/retry").status_code == 404

    def test_cleanup(self, client):
        client.post("/api/v1/sessions/trigger", json={})

        response = client.post("/api/v1/sessions/cleanup", json={"max_age_hours": 0})

        assert response.json() == {"removed": 1, "remaining": 0}

    def test_schedule_lifecycle(self, client):
        armed = client.post("/api/v1/sessions/schedule", json={"cron_expression": "0 9 * * 1"})

        assert armed.status_code == 200
        assert armed.json()["scheduled"] is True
        assert armed.json()["next_execution"].startswith("2024-01-08T09:00:00")
        assert client.get("/api/v1/sessions/schedule").json()["schedule"]["is_active"] is True

        cancelled = client.delete("/api/v1/sessions/schedule")
        assert cancelled.json() == {"cancelled": True}
        assert client.get("/api/v1/sessions/schedule").json()["schedule"]["is_active"] is False

    def test_invalid_schedule_rejected(self, client):
        response = client.post("/api/v1/sessions/schedule", json={"cron_expression": "every monday"})

        assert response.status_code == 400
        assert "Invalid cron expression" in response.json()["detail"]
