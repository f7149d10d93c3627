"""Tests for the HTTP API.

Uses FastAPI's TestClient against a temporary SQLite backend. The
configuration dependency is overridden per test.

Run with: pytest tests/test_api.py -v
"""

import base64
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_app_config
from api.main import app
from config import AppConfig, AuthConfig
from storage.database import QueryFailure, SQLiteBackend, close_database, set_backend
from utils.security import get_password_hash

ADMIN = ("admin@example.com", "correct horse")

REPORT = (
    "User's email,Total Emails [2024-01-15 - 2024-02-14],Emails sent,Emails received\n"
    "kyle@example.com,10,4,6\n"
    "ann@example.com,3,1,2\n"
)


def _encode(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


class FailingReadBackend(SQLiteBackend):
    """SQLite backend whose reads fail."""

    def query_rows(self, sql, params=()):
        raise QueryFailure("no such table: daily_stats", backend=self.name)


@pytest.fixture
def backend():
    with tempfile.TemporaryDirectory() as tmpdir:
        db = SQLiteBackend(Path(tmpdir) / "api.db")
        db.create_schema()
        db.execute(
            "INSERT INTO auth_users (email, password_hash, name) VALUES (?, ?, ?)",
            (ADMIN[0], get_password_hash(ADMIN[1]), "Admin"),
        )
        set_backend(db)
        yield db
        close_database()


@pytest.fixture
def config():
    return AppConfig()


@pytest.fixture
def client(backend, config):
    app.dependency_overrides[get_app_config] = lambda: config
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upload(client, content=REPORT, filename="report.csv", auth=ADMIN):
    return client.post(
        "/api/upload",
        json={"file": _encode(content), "filename": filename},
        auth=auth,
    )


class TestAuthGate:
    """Tests for HTTP Basic authentication."""

    def test_missing_credentials(self, client):
        response = client.get("/api/stats")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Basic"

    def test_wrong_password(self, client):
        response = client.get("/api/stats", auth=(ADMIN[0], "wrong"))
        assert response.status_code == 401

    def test_unknown_account(self, client):
        response = client.get("/api/summary", auth=("nobody@example.com", "x"))
        assert response.status_code == 401

    def test_valid_credentials(self, client):
        response = client.get("/api/stats", auth=ADMIN)
        assert response.status_code == 200

    def test_upload_requires_auth(self, client):
        response = _upload(client, auth=None)
        assert response.status_code == 401

    def test_auth_disabled(self, backend):
        app.dependency_overrides[get_app_config] = lambda: AppConfig(
            auth=AuthConfig(required=False)
        )
        try:
            response = TestClient(app).get("/api/stats")
        finally:
            app.dependency_overrides.clear()
        assert response.status_code == 200

    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["backend"] == "sqlite"
        assert data["schema_ready"] is True


class TestUpload:
    """Tests for POST /api/upload."""

    def test_upload_report(self, client):
        response = _upload(client)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["insertedCount"] == 2
        assert data["skippedCount"] == 0
        assert data["totalRecords"] == 2
        assert data["reportDate"] == "2024-01-15"
        assert data["errors"] is None

    def test_reupload_keeps_one_row_per_user_and_date(self, client):
        _upload(client)
        _upload(client)

        rows = client.get("/api/stats", auth=ADMIN).json()
        assert rows["count"] == 2

    def test_missing_fields(self, client):
        response = client.post("/api/upload", json={"file": "", "filename": ""}, auth=ADMIN)
        assert response.status_code == 400
        assert response.json()["detail"] == "File and filename are required"

    def test_no_valid_data(self, client):
        response = _upload(client, content="Department,Total emails\nSales,4\n")
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "No valid data found in CSV file"

    def test_not_utf8(self, client):
        payload = base64.b64encode(b"\xff\xfe\xfa\x00bad").decode("ascii")
        response = client.post(
            "/api/upload", json={"file": payload, "filename": "x.csv"}, auth=ADMIN
        )
        assert response.status_code == 400

    def test_bom_is_tolerated(self, client):
        response = _upload(client, content="\ufeff" + REPORT)
        assert response.status_code == 200
        assert response.json()["insertedCount"] == 2


class TestStats:
    """Tests for the aggregation endpoints."""

    def test_stats_with_filters(self, client):
        _upload(client)

        response = client.get(
            "/api/stats",
            params={"startDate": "2024-01-15", "endDate": "2024-01-15", "email": "KYLE"},
            auth=ADMIN,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["count"] == 1
        row = body["data"][0]
        assert row["email"] == "kyle@example.com"
        assert row["user_name"] == "kyle"
        assert row["total_emails"] == 10
        assert row["date"] == "2024-01-15"

    def test_stats_empty_range(self, client):
        _upload(client)
        response = client.get("/api/stats", params={"startDate": "2030-01-01"}, auth=ADMIN)
        assert response.json() == {"success": True, "data": [], "count": 0}

    def test_summary(self, client):
        _upload(client)

        body = client.get("/api/summary", auth=ADMIN).json()

        assert body["count"] == 1
        day = body["data"][0]
        assert day["date"] == "2024-01-15"
        assert day["total_users"] == 2
        assert day["total_emails"] == 13
        assert day["total_sent"] == 5

    def test_user_totals(self, client):
        _upload(client)
        body = client.get("/api/users", auth=ADMIN).json()
        assert [row["email"] for row in body["data"]] == ["kyle@example.com", "ann@example.com"]

    def test_overview(self, client):
        _upload(client)

        data = client.get("/api/overview", auth=ADMIN).json()["data"]

        assert data["total_emails"] == 13
        assert data["unique_users"] == 2
        assert data["active_users"] == 2
        assert data["avg_emails_per_user"] == 6.5

    def test_backend_failure_is_500(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            db = FailingReadBackend(Path(tmpdir) / "broken.db")
            db.create_schema()
            set_backend(db)
            app.dependency_overrides[get_app_config] = lambda: AppConfig(
                auth=AuthConfig(required=False)
            )
            try:
                response = TestClient(app).get("/api/stats")
            finally:
                app.dependency_overrides.clear()
                close_database()

        assert response.status_code == 500
        detail = response.json()["detail"]
        assert detail["error"] == "Failed to fetch statistics"
        assert "no such table" in detail["details"]


class TestAccounts:
    """Tests for init and account creation."""

    def test_create_user(self, client):
        response = client.post(
            "/api/auth/create-user",
            json={"email": "new@example.com", "password": "pw"},
            auth=ADMIN,
        )
        assert response.status_code == 200
        assert response.json()["created"] is True

        # The new account can sign in
        assert client.get("/api/stats", auth=("new@example.com", "pw")).status_code == 200

    def test_create_existing_user_is_left_alone(self, client):
        response = client.post(
            "/api/auth/create-user",
            json={"email": ADMIN[0], "password": "different"},
            auth=ADMIN,
        )
        assert response.status_code == 200
        assert response.json()["created"] is False
        assert client.get("/api/stats", auth=ADMIN).status_code == 200

    def test_create_user_requires_fields(self, client):
        response = client.post(
            "/api/auth/create-user", json={"email": "x@example.com"}, auth=ADMIN
        )
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "config",
        [
            AppConfig(
                auth=AuthConfig(seed_email="seed@example.com", seed_password="seed-pw")
            )
        ],
    )
    def test_init_seeds_configured_account(self, client, config):
        response = client.post("/api/init")

        assert response.status_code == 200
        body = response.json()
        assert body["schema_ready"] is True
        assert body["seeded_account"] == "seed@example.com"
        assert client.get("/api/stats", auth=("seed@example.com", "seed-pw")).status_code == 200
