"""
Integration tests for the auth flow through the API with a real database.

The console email sender logs the code; tests read it back from the
log records the way an operator would from container logs.
"""

import logging
import re
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from psycopg_pool import ConnectionPool

from src.adapters.smtp.console import ConsoleEmailSender
from src.api.main import app
from src.config.settings import Settings, get_settings
from tests.fakes import TEST_PASSWORD

pytestmark = pytest.mark.integration

CODE_PATTERN = re.compile(r"\[VERIFICATION\] Email: (\S+) Code: ([0-9a-f]{6})")


@pytest.fixture
def client(clean_postgres: ConnectionPool, settings: Settings) -> Generator[TestClient, None, None]:
    """Test client wired to the test pool; the lifespan is not started."""
    app.state.pool = clean_postgres
    app.state.email_sender = ConsoleEmailSender()
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


def _signup(client: TestClient, caplog: pytest.LogCaptureFixture, email: str) -> str:
    """Sign up and return the emailed code."""
    caplog.clear()
    with caplog.at_level(logging.INFO):
        response = client.post("/v1/auth/signup", json={"email": email})
    assert response.status_code == 201
    codes = [m.group(2) for m in CODE_PATTERN.finditer(caplog.text) if m.group(1) == email]
    assert codes, "no verification code logged"
    return codes[-1]


class TestAuthFlow:
    def test_full_account_lifecycle(
        self, client: TestClient, caplog: pytest.LogCaptureFixture, clean_postgres: ConnectionPool
    ) -> None:
        code = _signup(client, caplog, "flow@example.com")

        verify = client.post("/v1/auth/verify-email", json={"email": "flow@example.com", "otp": code})
        assert verify.status_code == 200
        setup_token = verify.json()["setup_token"]

        set_password = client.post(
            "/v1/auth/set-password",
            json={"password": TEST_PASSWORD},
            headers={"Authorization": f"Bearer {setup_token}"},
        )
        assert set_password.status_code == 200

        login = client.post(
            "/v1/auth/login", json={"email": "flow@example.com", "password": TEST_PASSWORD}
        )
        assert login.status_code == 200

        me = client.get("/v1/auth/me")
        assert me.status_code == 200
        assert me.json()["role"] == "user"

        old_refresh = client.cookies.get("refresh_token")
        assert client.post("/v1/auth/refresh").status_code == 200
        replay = TestClient(app, cookies={"refresh_token": old_refresh}).post("/v1/auth/refresh")
        assert replay.status_code == 401

        assert client.post("/v1/auth/logout").status_code == 200
        with clean_postgres.connection() as conn:
            remaining = conn.execute("SELECT COUNT(*) FROM refresh_token").fetchone()[0]
        assert remaining == 0

    def test_password_stored_as_bcrypt_hash(
        self, client: TestClient, caplog: pytest.LogCaptureFixture, clean_postgres: ConnectionPool
    ) -> None:
        code = _signup(client, caplog, "hash@example.com")
        setup_token = client.post(
            "/v1/auth/verify-email", json={"email": "hash@example.com", "otp": code}
        ).json()["setup_token"]
        client.post(
            "/v1/auth/set-password",
            json={"password": TEST_PASSWORD},
            headers={"Authorization": f"Bearer {setup_token}"},
        )

        with clean_postgres.connection() as conn:
            stored = conn.execute(
                "SELECT password FROM users WHERE email = %s", ("hash@example.com",)
            ).fetchone()[0]
        assert stored.startswith("$2b$")
        assert TEST_PASSWORD not in stored

    def test_code_stored_only_as_hash(
        self, client: TestClient, caplog: pytest.LogCaptureFixture, clean_postgres: ConnectionPool
    ) -> None:
        code = _signup(client, caplog, "otp@example.com")

        with clean_postgres.connection() as conn:
            stored = conn.execute("SELECT otp_hash FROM email_verification").fetchone()[0]
        assert code not in stored

    def test_repeat_signup_inside_cooldown_sends_no_new_code(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        _signup(client, caplog, "again@example.com")

        caplog.clear()
        with caplog.at_level(logging.INFO):
            response = client.post("/v1/auth/signup", json={"email": "again@example.com"})

        assert response.status_code == 201
        assert "[VERIFICATION]" not in caplog.text

    def test_email_is_normalized(
        self, client: TestClient, caplog: pytest.LogCaptureFixture, clean_postgres: ConnectionPool
    ) -> None:
        caplog.clear()
        with caplog.at_level(logging.INFO):
            client.post("/v1/auth/signup", json={"email": "Mixed.Case@Example.com"})

        with clean_postgres.connection() as conn:
            emails = [row[0] for row in conn.execute("SELECT email FROM users").fetchall()]
        assert emails == ["mixed.case@example.com"]


class TestHealth:
    def test_health_checks_database(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
