"""
Service-level tests of the authentication orchestrator.
"""
import pytest

from backend.app.core import errors
from backend.app.schemas.user import Credentials
from backend.app.security.two_factor import TwoFactorIssuer
from tests.conftest import password_field


def creds(email, plaintext="secret"):
    return Credentials(email=email, password=password_field(plaintext))


async def full_login(auth, mailer, email, user_agent, ip):
    await auth.request_2fa(creds(email), user_agent, ip)
    return await auth.login(creds(email), mailer.last_code(email), user_agent, ip)


class TestUserExists:
    """Test the credential check primitive."""

    async def test_match(self, db_container):
        auth = db_container.auth
        await auth.register(creds("alice@example.com"))
        user, ok = await auth.user_exists("alice@example.com", password_field("secret"))
        assert ok is True
        assert user.email == "alice@example.com"

    async def test_unknown_returns_email(self, db_container):
        """Test a miss still carries the email back."""
        user, ok = await db_container.auth.user_exists("ghost@example.com", password_field("secret"))
        assert ok is False
        assert user.email == "ghost@example.com"
        assert user.password is None


class TestAttempts:
    """Test what gets recorded."""

    async def test_unknown_user_not_recorded(self, db_container):
        with pytest.raises(errors.NotFoundError):
            await db_container.auth.request_2fa(creds("ghost@example.com"), "UA", "1.1.1.1")
        assert await db_container.attempts.get_last_n_by_user("ghost@example.com", -1) == []

    async def test_correct_login_on_locked_account_recorded_unsuccessful(self, db_container, mailer):
        auth = db_container.auth
        await auth.register(creds("bob@example.com"))
        for _ in range(3):
            with pytest.raises(errors.StrongboxError):
                await auth.login(creds("bob@example.com", "wrong"), "000000", "UA", "1.1.1.1")

        with pytest.raises(errors.LockoutError):
            await auth.request_2fa(creds("bob@example.com"), "UA", "1.1.1.1")

        attempts = await db_container.attempts.get_last_n_by_user("bob@example.com", -1)
        assert len(attempts) == 4
        assert not any(a.successful for a in attempts)
        assert mailer.codes == []

    @pytest.mark.parametrize("ip, stored", [
        ("1.1.1.1", "1.1.1.1"),
        ("2001:DB8::1", "2001:db8::1"),
        ("not-an-ip", None),
        ("testclient", None),
        ("", None),
    ])
    async def test_ip_validated(self, db_container, ip, stored):
        """Test only well-formed addresses are kept on the attempt."""
        await db_container.auth.register(creds("alice@example.com"))
        await db_container.auth.request_2fa(creds("alice@example.com"), "UA", ip)
        attempts = await db_container.attempts.get_last_n_by_user("alice@example.com", -1)
        assert [a.ip for a in attempts] == [stored]

    async def test_attempt_store_failure(self, db_container, mailer, monkeypatch):
        """Test a failing attempt query surfaces once and no code is sent."""
        await db_container.auth.register(creds("alice@example.com"))
        calls = []

        async def failing(email, n):
            calls.append(email)
            raise errors.PersistenceError("Unable to retrieve login attempts")

        monkeypatch.setattr(db_container.attempts, "get_last_n_by_user", failing)
        with pytest.raises(errors.PersistenceError):
            await db_container.auth.request_2fa(creds("alice@example.com"), "UA", "1.1.1.1")
        assert calls == ["alice@example.com"]
        assert mailer.codes == []


class TestNewDeviceNotice:
    """Test a login from a new (user agent, ip) pair."""

    async def test_exactly_one_notice(self, db_container, mailer):
        auth = db_container.auth
        await auth.register(creds("dave@example.com"))
        for _ in range(3):
            await full_login(auth, mailer, "dave@example.com", "X", "1.1.1.1")
        before = len(mailer.new_device_notices)

        token, _ = await full_login(auth, mailer, "dave@example.com", "Y", "2.2.2.2")

        assert token
        assert len(mailer.new_device_notices) == before + 1
        notice = mailer.new_device_notices[-1]
        assert (notice.user_agent, notice.ip) == ("Y", "2.2.2.2")

    async def test_notice_failure_does_not_fail_login(self, db_container, mailer):
        auth = db_container.auth
        await auth.register(creds("dave@example.com"))
        mailer.fail_notices = True
        token, _ = await full_login(auth, mailer, "dave@example.com", "X", "1.1.1.1")
        assert token


class TestMailFailure:
    """Test the 2FA request depends on mail delivery."""

    async def test_code_mail_failure(self, db_container, mailer):
        await db_container.auth.register(creds("alice@example.com"))
        mailer.fail_codes = True
        with pytest.raises(errors.MailError):
            await db_container.auth.request_2fa(creds("alice@example.com"), "UA", "1.1.1.1")


class TestUserAdministration:
    """Test modify and delete."""

    async def test_modify_password(self, db_container):
        auth = db_container.auth
        await auth.register(creds("alice@example.com"))
        await auth.modify_user("alice@example.com", creds("alice@example.com", "new"))

        _, old_ok = await auth.user_exists("alice@example.com", password_field("secret"))
        _, new_ok = await auth.user_exists("alice@example.com", password_field("new"))
        assert (old_ok, new_ok) == (False, True)

    async def test_code_issue_keeps_concurrent_password_change(self, db_container, clock):
        """Test issuing a code for a stale copy of the user keeps the new password."""
        auth = db_container.auth
        await auth.register(creds("alice@example.com"))
        stale = await db_container.users.get("alice@example.com")

        await auth.modify_user("alice@example.com", creds("alice@example.com", "new"))
        _, code = await TwoFactorIssuer(db_container.users, clock).issue(stale)

        _, old_ok = await auth.user_exists("alice@example.com", password_field("secret"))
        user, new_ok = await auth.user_exists("alice@example.com", password_field("new"))
        assert (old_ok, new_ok) == (False, True)
        assert user.two_factor_auth == code

    async def test_email_cannot_change(self, db_container):
        auth = db_container.auth
        await auth.register(creds("alice@example.com"))
        with pytest.raises(errors.ValidationError):
            await auth.modify_user("alice@example.com", creds("eve@example.com"))

    async def test_deleted_user_cannot_register_again(self, db_container):
        """Test the soft-deleted row keeps its email."""
        auth = db_container.auth
        await auth.register(creds("alice@example.com"))
        await auth.delete_user("alice@example.com")
        with pytest.raises(errors.NotFoundError):
            await auth.get_user("alice@example.com")
        with pytest.raises(errors.DuplicateUserError):
            await auth.register(creds("alice@example.com"))


class TestRefresh:
    """Test refresh against the user store."""

    async def test_refresh(self, db_container, mailer, clock):
        auth = db_container.auth
        await auth.register(creds("alice@example.com"))
        token, _ = await full_login(auth, mailer, "alice@example.com", "UA", "1.1.1.1")
        clock.advance(minutes=10)
        _, expire = await auth.refresh(token)
        assert expire > clock.now

    async def test_deleted_user_cannot_refresh(self, db_container, mailer):
        """Test a still-valid token of a deleted user is not renewed."""
        auth = db_container.auth
        await auth.register(creds("alice@example.com"))
        token, _ = await full_login(auth, mailer, "alice@example.com", "UA", "1.1.1.1")
        await auth.delete_user("alice@example.com")
        with pytest.raises(errors.AuthError):
            await auth.refresh(token)
