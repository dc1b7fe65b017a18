"""
Integration tests for the full account lifecycle.

Drives the HTTP API over real PostgreSQL repositories: register, verify,
login, refresh, profile update, email change and deletion. Skipped when the
database is not reachable.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from psycopg_pool import ConnectionPool

from tests.fakes import RecordingEmailSender
from workout_auth.api.main import create_app, wire_services
from workout_auth.config.settings import Settings

pytestmark = pytest.mark.integration

EMAIL = "athlete@example.com"
PASSWORD = "secure-password"


@pytest.fixture
def sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def app(settings: Settings, clean_database: ConnectionPool, sender: RecordingEmailSender) -> FastAPI:
    """Application wired to the test database; the lifespan is not started."""
    app = create_app(settings)
    wire_services(app, settings, clean_database)
    app.state.auth_service.email_sender = sender
    app.state.account_service.email_sender = sender
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestAccountLifecycle:
    def test_register_verify_login_refresh(
        self, client: TestClient, sender: RecordingEmailSender
    ) -> None:
        response = client.post(
            "/v1/auth/register",
            json={"email": EMAIL, "password": PASSWORD, "username": "athlete"},
        )
        assert response.status_code == 201

        response = client.post("/v1/auth/login", json={"email": EMAIL, "password": PASSWORD})
        assert response.status_code == 403

        response = client.post(
            "/v1/auth/verify-email",
            json={"email": EMAIL, "code": sender.last_code_for(EMAIL)},
        )
        assert response.status_code == 200

        response = client.post("/v1/auth/login", json={"email": EMAIL, "password": PASSWORD})
        assert response.status_code == 200
        tokens = response.json()

        response = client.post("/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 200

        response = client.get("/v1/users/me", headers=bearer(response.json()["access_token"]))
        assert response.json()["email"] == EMAIL

    def test_resend_invalidates_old_code(
        self, client: TestClient, sender: RecordingEmailSender
    ) -> None:
        client.post(
            "/v1/auth/register",
            json={"email": EMAIL, "password": PASSWORD, "username": "athlete"},
        )
        old_code = sender.last_code_for(EMAIL)
        client.post("/v1/auth/resend-verification", json={"email": EMAIL})
        new_code = sender.last_code_for(EMAIL)

        if old_code != new_code:
            response = client.post("/v1/auth/verify-email", json={"email": EMAIL, "code": old_code})
            assert response.status_code == 400

        response = client.post("/v1/auth/verify-email", json={"email": EMAIL, "code": new_code})
        assert response.status_code == 200

    def test_email_change_and_delete(
        self, client: TestClient, sender: RecordingEmailSender
    ) -> None:
        client.post(
            "/v1/auth/register",
            json={"email": EMAIL, "password": PASSWORD, "username": "athlete"},
        )
        tokens = client.post(
            "/v1/auth/verify-email",
            json={"email": EMAIL, "code": sender.last_code_for(EMAIL)},
        ).json()
        headers = bearer(tokens["access_token"])

        response = client.post(
            "/v1/users/me/email", headers=headers, json={"new_email": "moved@example.com"}
        )
        assert response.status_code == 202
        response = client.post(
            "/v1/users/me/email/verify",
            headers=headers,
            json={"code": sender.last_code_for("moved@example.com")},
        )
        assert response.status_code == 200
        assert response.json()["email"] == "moved@example.com"

        response = client.post(
            "/v1/auth/login", json={"email": "moved@example.com", "password": PASSWORD}
        )
        assert response.status_code == 200

        assert client.delete("/v1/users/me", headers=headers).status_code == 204
        response = client.post(
            "/v1/auth/login", json={"email": "moved@example.com", "password": PASSWORD}
        )
        assert response.status_code == 401
