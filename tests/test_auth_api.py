"""
End-to-end tests of registration, 2FA, login, lockout and token refresh
over HTTP, with a simulated clock and a recording mailer.
"""
from datetime import datetime, timedelta

from pydantic import TypeAdapter

from backend.app.core import errors
from tests.conftest import T0, auth_header, credentials, login, password_field

as_datetime = TypeAdapter(datetime).validate_python


class TestRegister:
    """Test POST /register."""

    def test_register(self, client):
        response = client.post("/register", json=credentials("alice@example.com"))
        assert response.status_code == 201
        assert response.json() == {"email": "alice@example.com"}

    def test_invalid_email(self, client):
        response = client.post("/register", json=credentials("not-an-email"))
        assert response.status_code == 400
        assert response.json()["code"] == 400

    def test_plain_password_rejected(self, client):
        """Test the server refuses anything but the SHA-512 hex field."""
        response = client.post(
            "/register", json={"email": "alice@example.com", "password": "secret"}
        )
        assert response.status_code == 400
        assert response.json()["message"] == errors.InvalidPasswordFormatError.default_message

    def test_duplicate(self, client):
        """Test a second registration fails and leaves the first user working."""
        client.post("/register", json=credentials("alice@example.com"))
        response = client.post("/register", json=credentials("alice@example.com", "other"))
        assert response.status_code == 400

        response = client.post("/2fa-verification", json=credentials("alice@example.com"))
        assert response.status_code == 200


class TestHappyPath:
    """Test register, request a code, log in."""

    def test_login_flow(self, client, mailer, clock):
        body = credentials("alice@example.com", "secret")
        assert client.post("/register", json=body).status_code == 201

        response = client.post("/2fa-verification", json=body)
        assert response.status_code == 200
        assert "alice@example.com" in response.json()["message"]
        code = mailer.last_code("alice@example.com")
        assert len(code) == 6 and code.isdigit()

        response = client.post("/login", json=body, params={"verification_code": code})
        assert response.status_code == 200
        data = response.json()
        assert data["code"] == 200
        remaining = as_datetime(data["expire"]) - clock.now
        assert timedelta(minutes=59, seconds=59) <= remaining <= timedelta(hours=1)

    def test_username_field_rejected(self, client, mailer):
        """Test /login only accepts {email, password}."""
        body = credentials("alice@example.com")
        client.post("/register", json=body)
        response = client.post(
            "/login",
            json={"username": "alice@example.com", "password": body["password"]},
            params={"verification_code": "123456"},
        )
        assert response.status_code == 422
        assert response.json()["code"] == 422

    def test_wrong_code_is_generic(self, client, mailer):
        body = credentials("alice@example.com")
        client.post("/register", json=body)
        client.post("/2fa-verification", json=body)
        response = client.post("/login", json=body, params={"verification_code": "abcdef"})
        assert response.status_code == 401
        assert response.json()["message"] == errors.GENERIC_LOGIN_ERROR


class TestLockout:
    """Test three unsuccessful logins lock the account."""

    def test_lockout(self, client, mailer):
        body = credentials("bob@example.com", "secret")
        wrong = credentials("bob@example.com", "wrong")
        client.post("/register", json=body)

        statuses = [
            client.post("/login", json=wrong, params={"verification_code": "000000"}).status_code
            for _ in range(3)
        ]
        assert statuses == [401, 401, 423]
        assert len(mailer.suspicious_reports) == 1

        # Correct credentials do not lift the lock
        assert client.post("/2fa-verification", json=body).status_code == 423
        assert client.post("/login", json=body, params={"verification_code": "000000"}).status_code == 423
        assert mailer.codes == []


class TestCodeExpiry:
    """Test a code older than five minutes is refused."""

    def test_expired_code(self, client, mailer, clock):
        body = credentials("carol@example.com")
        client.post("/register", json=body)
        client.post("/2fa-verification", json=body)
        code = mailer.last_code("carol@example.com")

        clock.advance(minutes=5, seconds=1)
        response = client.post("/login", json=body, params={"verification_code": code})
        assert response.status_code == 401
        assert response.json()["message"] == errors.GENERIC_LOGIN_ERROR


class TestRefresh:
    """Test GET /refresh-token."""

    def test_refresh_window(self, client, mailer, clock):
        client.post("/register", json=credentials("alice@example.com"))
        token = login(client, mailer, "alice@example.com")

        clock.advance(minutes=30)
        response = client.get("/refresh-token", headers=auth_header(token))
        assert response.status_code == 200
        assert as_datetime(response.json()["expire"]) == T0 + timedelta(hours=1, minutes=30)
        refreshed = response.json()["token"]

        clock.advance(minutes=31)
        response = client.get("/refresh-token", headers=auth_header(refreshed))
        assert response.status_code == 401
        assert response.json()["message"] == errors.OutsideRefreshWindowError.default_message

    def test_missing_token(self, client):
        response = client.get("/refresh-token")
        assert response.status_code == 401

    def test_garbage_token(self, client):
        response = client.get("/refresh-token", headers=auth_header("garbage"))
        assert response.status_code == 401

    def test_deleted_user(self, client, mailer):
        """Test a deleted user cannot keep renewing an unexpired token."""
        client.post("/register", json=credentials("alice@example.com"))
        headers = auth_header(login(client, mailer, "alice@example.com"))
        assert client.delete("/users/alice@example.com", headers=headers).status_code == 204

        response = client.get("/refresh-token", headers=headers)
        assert response.status_code == 401
        assert response.json()["code"] == 401


class TestStoreFailure:
    """Test a failing attempt store over HTTP."""

    def test_attempt_query_failure_is_500(self, client, container, mailer, monkeypatch):
        """Test the request fails with 500 after a single store call."""
        client.post("/register", json=credentials("alice@example.com"))
        calls = []

        async def failing(email, n):
            calls.append(email)
            raise errors.PersistenceError("Unable to retrieve login attempts")

        monkeypatch.setattr(container.attempts, "get_last_n_by_user", failing)
        response = client.post("/2fa-verification", json=credentials("alice@example.com"))

        assert response.status_code == 500
        assert response.json() == {"code": 500, "message": "Unable to retrieve login attempts"}
        assert calls == ["alice@example.com"]
        assert mailer.codes == []


class TestNoEnumeration:
    """Test unknown users and wrong passwords look the same."""

    def test_same_response(self, client, mailer):
        client.post("/register", json=credentials("alice@example.com"))

        known = client.post("/2fa-verification", json=credentials("alice@example.com", "wrong"))
        unknown = client.post("/2fa-verification", json=credentials("nobody@example.com", "wrong"))

        assert known.status_code == unknown.status_code == 404
        assert known.json() == unknown.json()
        assert mailer.codes == []


class TestNewDevice:
    """Test the notice when a known user logs in from a new user agent."""

    def test_notice_on_new_user_agent(self, client, mailer):
        client.post("/register", json=credentials("dave@example.com"))
        for _ in range(2):
            login(client, mailer, "dave@example.com", headers={"User-Agent": "UA-X"})
        notices_before = len(mailer.new_device_notices)

        login(client, mailer, "dave@example.com", headers={"User-Agent": "UA-Y"})

        assert len(mailer.new_device_notices) == notices_before + 1
        assert mailer.new_device_notices[-1].user_agent == "UA-Y"

    def test_health(self, client):
        assert client.get("/healthz").json() == {"status": "ok"}
