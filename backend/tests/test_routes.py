"""Tests for HTTP routes using FastAPI TestClient."""

import json
from contextlib import asynccontextmanager
from unittest.mock import patch

import pytest
from fakes import INSIGHTS_DATA, RESUME_DATA, FakeChatClient, FakeGenerationClient
from fastapi.testclient import TestClient

from careermirror.config import settings
from careermirror.generation.orchestrator import GenerationOrchestrator
from careermirror.rate_limit import limiter

API = "/api/v1"

TRANSCRIPT = [
    {"role": "model", "text": "Hi! What do you do today?"},
    {"role": "user", "text": "I write programs for the Analytical Engine."},
]

SAVE_BODY = {"professionalResume": RESUME_DATA, "careerInsights": INSIGHTS_DATA, "conversationHistory": TRANSCRIPT}


@pytest.fixture
def app_client(backend, orchestrator):
    """TestClient with a patched lifespan: in-memory backend, scripted model clients."""
    from careermirror.main import create_app

    @asynccontextmanager
    async def _test_lifespan(app):
        app.state.backend = backend
        app.state.orchestrator = orchestrator
        app.state.chat_client = FakeChatClient("Ready to generate your resume?")
        yield

    limiter.reset()
    with patch("careermirror.main.lifespan", _test_lifespan):
        app = create_app()
        with TestClient(app, raise_server_exceptions=False) as client:
            yield client


def _signup(client, email="ada@example.com"):
    response = client.post(f"{API}/auth/signup", json={"name": "Ada", "email": email, "password": "pw-123456"})
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}


class TestHealth:
    def test_health(self, app_client):
        body = app_client.get("/health").json()
        assert body["status"] == "ok"
        assert body["backend"] == "local"
        assert "timestamp" in body

    def test_security_headers(self, app_client):
        response = app_client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"


class TestAuthRoutes:
    def test_signup_returns_user_and_token(self, app_client):
        response = app_client.post(
            f"{API}/auth/signup", json={"name": "Ada", "email": "Ada@Example.com", "password": "pw-123456"}
        )
        body = response.json()
        assert response.status_code == 201
        assert body["token"]
        assert body["user"]["email"] == "ada@example.com"
        assert body["user"]["plan"] == "free"
        assert "passwordHash" not in body["user"]

    def test_duplicate_signup(self, app_client):
        _signup(app_client)
        response = app_client.post(
            f"{API}/auth/signup", json={"name": "Ada", "email": "ada@example.com", "password": "other"}
        )
        assert response.status_code == 409
        assert response.json()["error"] == "duplicate_user"

    def test_login_and_me(self, app_client):
        _signup(app_client)
        response = app_client.post(f"{API}/auth/login", json={"email": "ada@example.com", "password": "pw-123456"})
        assert response.status_code == 200
        headers = {"Authorization": f"Bearer {response.json()['token']}"}
        assert app_client.get(f"{API}/auth/me", headers=headers).json()["email"] == "ada@example.com"

    def test_login_wrong_password(self, app_client):
        _signup(app_client)
        response = app_client.post(f"{API}/auth/login", json={"email": "ada@example.com", "password": "nope"})
        assert response.status_code == 401
        assert response.json()["error"] == "invalid_credentials"

    def test_me_without_token(self, app_client):
        response = app_client.get(f"{API}/auth/me")
        assert response.status_code == 401
        assert response.json()["error"] == "unauthenticated"

    def test_expired_session(self, app_client, clock):
        headers = _signup(app_client)
        clock.advance(days=31)
        response = app_client.get(f"{API}/auth/me", headers=headers)
        assert response.status_code == 401
        assert response.json()["error"] == "session_expired"

    def test_logout(self, app_client):
        headers = _signup(app_client)
        assert app_client.post(f"{API}/auth/logout", headers=headers).status_code == 204
        assert app_client.get(f"{API}/auth/me", headers=headers).status_code == 401

    def test_update_profile_and_plan(self, app_client):
        headers = _signup(app_client)
        response = app_client.patch(f"{API}/users/me", json={"location": "London"}, headers=headers)
        assert response.json()["location"] == "London"
        response = app_client.post(f"{API}/users/me/plan", json={"plan": "enterprise"}, headers=headers)
        assert response.json()["plan"] == "enterprise"

    def test_unknown_plan_rejected(self, app_client):
        headers = _signup(app_client)
        response = app_client.post(f"{API}/users/me/plan", json={"plan": "free"}, headers=headers)
        assert response.status_code == 422


class TestResumeRoutes:
    def test_crud_flow(self, app_client):
        headers = _signup(app_client)
        created = app_client.post(f"{API}/resumes", json=SAVE_BODY, headers=headers)
        assert created.status_code == 201
        resume = created.json()
        assert resume["version"] == 1
        assert resume["isActive"] is True
        assert resume["title"] == "Ada Lovelace"

        listed = app_client.get(f"{API}/resumes", headers=headers).json()["resumes"]
        assert [r["id"] for r in listed] == [resume["id"]]

        patched = app_client.patch(f"{API}/resumes/{resume['id']}", json={"title": "New Title"}, headers=headers)
        assert patched.json()["title"] == "New Title"

        assert app_client.delete(f"{API}/resumes/{resume['id']}", headers=headers).status_code == 204
        assert app_client.get(f"{API}/resumes", headers=headers).json()["resumes"] == []
        assert app_client.get(f"{API}/resumes/{resume['id']}", headers=headers).status_code == 404

    def test_quota_exceeded(self, app_client):
        headers = _signup(app_client)
        app_client.post(f"{API}/resumes", json=SAVE_BODY, headers=headers)
        response = app_client.post(f"{API}/resumes", json=SAVE_BODY, headers=headers)
        body = response.json()
        assert response.status_code == 403
        assert body["error"] == "quota_exceeded"
        assert body["upgradeAvailable"] is True

    def test_foreign_resume_is_not_found(self, app_client):
        owner = _signup(app_client)
        intruder = _signup(app_client, "mallory@example.com")
        resume_id = app_client.post(f"{API}/resumes", json=SAVE_BODY, headers=owner).json()["id"]

        response = app_client.get(f"{API}/resumes/{resume_id}", headers=intruder)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
        assert app_client.delete(f"{API}/resumes/{resume_id}", headers=intruder).status_code == 404

    def test_update_rejects_immutable_field(self, app_client):
        headers = _signup(app_client)
        resume_id = app_client.post(f"{API}/resumes", json=SAVE_BODY, headers=headers).json()["id"]
        response = app_client.patch(f"{API}/resumes/{resume_id}", json={"version": 9}, headers=headers)
        assert response.status_code == 422

    def test_list_requires_auth(self, app_client):
        assert app_client.get(f"{API}/resumes").status_code == 401

    def test_generate_and_save(self, app_client):
        headers = _signup(app_client)
        response = app_client.post(
            f"{API}/resumes/generate", json={"conversationHistory": TRANSCRIPT}, headers=headers
        )
        assert response.status_code == 201
        assert response.json()["careerInsightsData"]["personalityProfile"]["workStyle"] == "Visionary Analyst"


class TestGenerationRoutes:
    def test_generate_without_persistence(self, app_client, backend):
        response = app_client.post(f"{API}/generate", json={"conversationHistory": TRANSCRIPT})
        body = response.json()
        assert response.status_code == 200
        assert body["professionalResume"]["personalInfo"]["name"] == "Ada Lovelace"
        assert len(body["careerInsights"]["idealRoles"]) == 4

    def test_insufficient_input(self, app_client):
        response = app_client.post(f"{API}/generate", json={"conversationHistory": TRANSCRIPT[:1]})
        assert response.status_code == 422
        assert response.json()["error"] == "insufficient_input"

    def test_generation_failure(self, app_client):
        failing = FakeGenerationClient(
            {"professional_resume": json.dumps(RESUME_DATA), "career_insights": "{}"}
        )
        app_client.app.state.orchestrator = GenerationOrchestrator(failing)
        response = app_client.post(f"{API}/generate", json={"conversationHistory": TRANSCRIPT})
        assert response.status_code == 502
        assert response.json()["error"] == "generation_failed"

    def test_rate_limited(self, app_client):
        statuses = [
            app_client.post(f"{API}/generate", json={"conversationHistory": TRANSCRIPT}).status_code
            for _ in range(6)
        ]
        assert statuses[:5] == [200] * 5
        assert statuses[5] == 429


class TestInterviewRoutes:
    def test_reply(self, app_client):
        response = app_client.post(
            f"{API}/interview/reply", json={"conversationHistory": TRANSCRIPT, "message": "Also some poetry."}
        )
        body = response.json()
        assert body["message"]["role"] == "model"
        assert len(body["conversationHistory"]) == 4
        assert body["readyToGenerate"] is False

    def test_restore_transcript(self, app_client):
        headers = _signup(app_client)
        resume_id = app_client.post(f"{API}/resumes", json=SAVE_BODY, headers=headers).json()["id"]
        body = app_client.get(f"{API}/interview/{resume_id}/transcript", headers=headers).json()
        assert [m["text"] for m in body["conversationHistory"]] == [m["text"] for m in TRANSCRIPT]

    def test_reply_rate_limited(self, app_client):
        allowed = int(settings.rate_limit_chat.split("/")[0])
        body = {"conversationHistory": TRANSCRIPT, "message": "Hello"}
        statuses = [app_client.post(f"{API}/interview/reply", json=body).status_code for _ in range(allowed + 1)]
        assert statuses[:allowed] == [200] * allowed
        assert statuses[allowed] == 429
