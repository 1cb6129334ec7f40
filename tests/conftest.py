"""
Shared fixtures: settings for an in-memory database, a controllable
clock, a mail dispatcher that records instead of sending, and clients.
"""
import base64
import hashlib
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from backend.app.container import build_container
from backend.app.core.config import Settings
from backend.app.db.session import create_tables
from backend.app.main import create_app

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def password_field(plaintext: str) -> str:
    """What a client sends: base64url(hex_upper(SHA-512(plaintext)))."""
    digest = hashlib.sha512(plaintext.encode("utf-8")).hexdigest().upper()
    return base64.urlsafe_b64encode(digest.encode("ascii")).decode("ascii")


def credentials(email: str, plaintext: str = "secret") -> dict:
    return {"email": email, "password": password_field(plaintext)}


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingMailer:
    def __init__(self):
        self.codes = []
        self.new_device_notices = []
        self.suspicious_reports = []
        self.fail_codes = False
        self.fail_notices = False

    def send_2fa_code(self, email, code):
        from backend.app.core import errors

        if self.fail_codes:
            raise errors.MailError("Error sending email: smtp down")
        self.codes.append((email, code))

    def send_new_device_notice(self, attempt):
        from backend.app.core import errors

        if self.fail_notices:
            raise errors.MailError("Error sending email: smtp down")
        self.new_device_notices.append(attempt)

    def send_suspicious_activity_report(self, attempt):
        from backend.app.core import errors

        if self.fail_notices:
            raise errors.MailError("Error sending email: smtp down")
        self.suspicious_reports.append(attempt)

    def last_code(self, email):
        return [code for to, code in self.codes if to == email][-1]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        AES_KEY="0123456789abcdef-test-key",
        SECRET_KEY="test-secret-key",
        DATABASE_ENGINE="sqlite",
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        BCRYPT_ROUNDS=10,
        MAX_UNSUCCESSFUL_ATTEMPTS=3,
        FILES_PATH=str(tmp_path / "files"),
        CORS_ORIGINS="",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def container(settings, clock, mailer):
    return build_container(settings, clock=clock, mailer=mailer)


@pytest.fixture
async def db_container(container):
    """Container with tables created, for tests that call services directly."""
    await create_tables(container.engine)
    yield container
    await container.engine.dispose()


@pytest.fixture
def client(settings, container):
    app = create_app(settings, container)
    with TestClient(app) as test_client:
        yield test_client


def login(client, mailer, email, plaintext="secret", headers=None):
    """Register-free helper: request a code, then exchange it for a token."""
    body = credentials(email, plaintext)
    response = client.post("/2fa-verification", json=body, headers=headers)
    assert response.status_code == 200, response.text
    code = mailer.last_code(email)
    response = client.post(
        "/login", json=body, params={"verification_code": code}, headers=headers
    )
    assert response.status_code == 200, response.text
    return response.json()["token"]


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}
