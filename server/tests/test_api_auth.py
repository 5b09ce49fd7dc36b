"""Tests for auth and dump-run endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def app(db):
    from main import app as _app
    from database import get_db

    def _override_get_db():
        try:
            yield db
        finally:
            pass

    _app.dependency_overrides[get_db] = _override_get_db
    yield _app
    _app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_client(client, api_key):
    client.headers["Authorization"] = f"Bearer {api_key.key}"
    return client


# ── Register / token / me ───────────────────────────────────────────────────


class TestRegister:
    def test_register_returns_working_key(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"username": "hauler", "password": "s3cret", "email": "h@example.com", "has_truck": True},
        )
        assert resp.status_code == 201
        key = resp.json()["key"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {key}"})
        assert me.status_code == 200
        assert me.json()["username"] == "hauler"
        assert me.json()["has_truck"] is True

    def test_duplicate_username_409(self, client, user_profile):
        resp = client.post("/api/auth/register", json={"username": "testuser", "password": "s3cret"})
        assert resp.status_code == 409

    def test_duplicate_email_409(self, client, user_profile):
        resp = client.post(
            "/api/auth/register",
            json={"username": "someone", "password": "s3cret", "email": "test@example.com"},
        )
        assert resp.status_code == 409

    def test_short_password_422(self, client):
        resp = client.post("/api/auth/register", json={"username": "x", "password": "abc"})
        assert resp.status_code == 422


class TestToken:
    def test_valid_credentials_rotate_key(self, client, api_key):
        old_key = api_key.key
        resp = client.post("/api/auth/token", json={"username": "testuser", "password": "testpass"})

        assert resp.status_code == 200
        new_key = resp.json()["key"]
        assert new_key and new_key != old_key

    def test_issues_key_when_none_exists(self, client, user_profile):
        resp = client.post("/api/auth/token", json={"username": "testuser", "password": "testpass"})
        assert resp.status_code == 200
        assert resp.json()["key"]

    def test_wrong_password_401(self, client, user_profile):
        resp = client.post("/api/auth/token", json={"username": "testuser", "password": "nope"})
        assert resp.status_code == 401

    def test_unknown_user_401(self, client):
        resp = client.post("/api/auth/token", json={"username": "ghost", "password": "testpass"})
        assert resp.status_code == 401


class TestMe:
    def test_me(self, auth_client, user_profile):
        resp = auth_client.get("/api/auth/me")
        assert resp.status_code == 200
        assert resp.json()["id"] == user_profile.id
        assert set(resp.json()) == {"id", "username", "first_name", "last_name", "has_truck"}

    def test_profile_table_columns(self):
        from models.user import UserProfile

        assert set(UserProfile.__table__.columns.keys()) == {
            "id", "username", "password_hash", "first_name", "last_name",
            "email", "has_truck", "created_at",
        }

    def test_me_invalid_key(self, client):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer bogus"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid API key."
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_rotated_key_stops_working(self, client, api_key):
        old = api_key.key
        resp = client.post("/api/auth/token", json={"username": "testuser", "password": "testpass"})
        assert resp.status_code == 200
        assert resp.json()["key"] != old

        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {old}"})
        assert resp.status_code == 401


# ── Dump runs ───────────────────────────────────────────────────────────────


class TestDumpRuns:
    def test_create_sets_organizer(self, auth_client, user_profile):
        resp = auth_client.post(
            "/api/dump-runs",
            json={
                "title": "Basement purge",
                "location": "Maple Court",
                "date": "2026-11-21T10:00:00",
                "maxParticipants": 4,
            },
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["organizerId"] == user_profile.id
        assert data["maxParticipants"] == 4
        assert data["status"] == "active"

    def test_create_requires_title(self, auth_client):
        resp = auth_client.post(
            "/api/dump-runs",
            json={"title": "", "location": "Maple Court", "date": "2026-11-21T10:00:00"},
        )
        assert resp.status_code == 422

    def test_create_requires_auth(self, client):
        resp = client.post(
            "/api/dump-runs",
            json={"title": "t", "location": "l", "date": "2026-11-21T10:00:00"},
        )
        assert resp.status_code in (401, 403)

    def test_read(self, client, dump_run):
        resp = client.get(f"/api/dump-runs/{dump_run.id}")
        assert resp.status_code == 200
        assert resp.json()["title"] == "Garage cleanout"

    def test_read_unknown_404(self, client):
        resp = client.get("/api/dump-runs/4242")
        assert resp.status_code == 404
