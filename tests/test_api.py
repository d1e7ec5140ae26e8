"""
Tests for the Supabase migration endpoints in api/routers/migration/supabase.py

Covers:
- GET /supabase/status: progress, ETA and error truncation
- POST /supabase/migrate: background start, defaults, refusal while running
- POST /supabase/pause: only while running
- X-API-Key protection when an API password is configured
- Security and timing headers
"""

import pytest
from fastapi.requests import Request
from fastapi.testclient import TestClient

from api.app import create_app
from api.middleware import get_client_ip
from api.routers.migration import supabase as supabase_routes
from db.config import Settings, get_settings
from db.enums import MigrationStatus
from migrations.supabase_to_better_auth.state import MigrationStateManager


def make_settings(**overrides) -> Settings:
    return Settings(
        source_postgres_uri="postgresql://postgres@localhost/supabase",
        target_postgres_uri="postgresql://postgres@localhost/better_auth",
        **overrides,
    )


@pytest.fixture
def state_manager():
    return MigrationStateManager()


@pytest.fixture
def app(state_manager):
    app = create_app(state_manager)
    app.dependency_overrides[get_settings] = lambda: make_settings()
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def migrate_calls(monkeypatch):
    calls = []

    async def fake_migrate_users(settings, state_manager, batch_size=None, resume_from_id=None):
        calls.append({"batch_size": batch_size, "resume_from_id": resume_from_id})

    monkeypatch.setattr(supabase_routes, "migrate_users", fake_migrate_users)
    return calls


class PendingTask:
    def done(self):
        return False

    def cancel(self):
        pass


class TestStatus:
    def test_idle_status(self, client):
        response = client.get("/supabase/status")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "idle"
        assert data["progress"] == "0%"
        assert data["eta"] is None
        assert data["errors"] == []

    def test_running_status(self, client, state_manager):
        state_manager.start(1000, 100)
        state_manager.update_progress(250, 240, 5, 5, "user-00250")
        for i in range(15):
            state_manager.add_error(f"user-{i:05d}", f"error {i}")

        data = client.get("/supabase/status").json()

        assert data["status"] == "running"
        assert data["progress"] == "25%"
        assert data["totalBatches"] == 10
        assert data["currentBatch"] == 1
        assert data["lastProcessedId"] == "user-00250"
        assert isinstance(data["eta"], str)
        assert len(data["errors"]) == 10
        assert data["errors"][0] == {"userId": "user-00000", "error": "error 0"}

    def test_status_does_not_truncate_stored_errors(self, client, state_manager):
        state_manager.start(10, 1)
        for i in range(15):
            state_manager.add_error("bulk", f"error {i}")

        client.get("/supabase/status")

        assert len(state_manager.get_state().errors) == 15


class TestMigrate:
    def test_start_with_defaults(self, client, migrate_calls):
        response = client.post("/supabase/migrate")

        assert response.status_code == 200
        assert response.json() == {
            "message": "Migration started",
            "config": {"batchSize": 5000, "resumeFromId": None, "tempEmailDomain": "temp.better-auth.com"},
        }

    def test_start_with_body(self, client, migrate_calls):
        response = client.post("/supabase/migrate", json={"batchSize": 250, "resumeFromId": "user-00100"})

        assert response.status_code == 200
        assert response.json()["config"]["batchSize"] == 250
        assert response.json()["config"]["resumeFromId"] == "user-00100"

    def test_invalid_batch_size(self, client, migrate_calls):
        response = client.post("/supabase/migrate", json={"batchSize": 0})
        assert response.status_code == 422
        assert migrate_calls == []

    def test_refused_while_running(self, client, state_manager, migrate_calls):
        state_manager.start(100, 10)

        response = client.post("/supabase/migrate")

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Migration already in progress"
        assert data["state"]["status"] == "running"
        assert "no-store" in response.headers["Cache-Control"]
        assert migrate_calls == []

    def test_refused_while_task_pending(self, client, app, migrate_calls):
        app.state.migration_task = PendingTask()

        response = client.post("/supabase/migrate")

        assert response.status_code == 400
        assert migrate_calls == []
        app.state.migration_task = None

    def test_restart_after_pause(self, client, state_manager, migrate_calls):
        state_manager.start(100, 10)
        state_manager.pause()

        response = client.post("/supabase/migrate", json={"resumeFromId": "user-00010"})

        assert response.status_code == 200


class TestPause:
    def test_pause_without_running_migration(self, client):
        response = client.post("/supabase/pause")

        assert response.status_code == 400
        assert "idle" in response.json()["error"]

    def test_pause_running_migration(self, client, state_manager):
        state_manager.start(100, 10)
        state_manager.update_progress(10, 10, 0, 0, "user-00010")

        response = client.post("/supabase/pause")

        assert response.status_code == 200
        assert response.json()["lastProcessedId"] == "user-00010"
        assert state_manager.status == MigrationStatus.PAUSED


class TestApiKey:
    @pytest.fixture
    def protected_client(self, app):
        app.dependency_overrides[get_settings] = lambda: make_settings(api_password="s3cret")
        with TestClient(app) as client:
            yield client

    @pytest.mark.parametrize("headers", [{}, {"X-API-Key": "wrong"}])
    def test_rejected(self, protected_client, headers):
        response = protected_client.get("/supabase/status", headers=headers)
        assert response.status_code == 401

    def test_accepted(self, protected_client):
        response = protected_client.get("/supabase/status", headers={"X-API-Key": "s3cret"})
        assert response.status_code == 200

    def test_open_without_password(self, client):
        assert client.get("/supabase/status").status_code == 200


class TestHeaders:
    def test_secure_and_timing_headers(self, client):
        response = client.get("/supabase/status")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
        assert response.headers["Referrer-Policy"] == "no-referrer"
        assert response.headers["X-Process-Time"].endswith("seconds")

    @pytest.mark.parametrize(
        "headers,expected",
        [
            ([(b"x-forwarded-for", b"203.0.113.7, 10.0.0.1")], "203.0.113.7"),
            ([(b"x-real-ip", b"198.51.100.4")], "198.51.100.4"),
            ([], "10.0.0.1"),
        ],
    )
    def test_client_ip(self, headers, expected):
        request = Request({"type": "http", "headers": headers, "client": ("10.0.0.1", 51234)})
        assert get_client_ip(request) == expected
