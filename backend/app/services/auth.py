# backend/app/services/auth.py
"""
Authentication entry points: register, 2FA request, login, token refresh
and authorization, plus user administration.

Every 2FA request and login of an existing user is recorded as a
LoginAttempt *before* the risk verdict is computed. An attempt counts as
successful only if the password matched, the code matched (login only)
and the account was not already locked, so a correct login on a locked
account keeps it locked.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from starlette.concurrency import run_in_threadpool

from backend.app.core import errors
from backend.app.models.login_attempt import LoginAttempt
from backend.app.models.user import User
from backend.app.repositories.interfaces import AttemptStore, UserStore
from backend.app.schemas.user import Credentials
from backend.app.security.hashing import PasswordCipher
from backend.app.security.tokens import TokenService
from backend.app.security.two_factor import TwoFactorIssuer
from backend.app.security.validator import normalize_ip, validate_credentials
from backend.app.services.mail import MailDispatcher
from backend.app.services.risk import RiskEngine, Verdict

logger = logging.getLogger(__name__)


class AuthOrchestrator:
    def __init__(
        self,
        users: UserStore,
        attempts: AttemptStore,
        password_cipher: PasswordCipher,
        two_factor: TwoFactorIssuer,
        tokens: TokenService,
        risk: RiskEngine,
        mailer: MailDispatcher,
    ):
        self._users = users
        self._attempts = attempts
        self._password_cipher = password_cipher
        self._two_factor = two_factor
        self._tokens = tokens
        self._risk = risk
        self._mailer = mailer

    # ─────────────────────────────────────────────────────────────
    # Credentials
    # ─────────────────────────────────────────────────────────────
    async def _lookup(self, email: str, password: str) -> Tuple[Optional[User], bool]:
        user = await self._users.get(email)
        if user is None:
            # Same bcrypt cost as a real comparison
            await run_in_threadpool(self._password_cipher.dummy_verify)
            return None, False
        matches = await run_in_threadpool(
            self._password_cipher.verify, password, user.password
        )
        return user, matches

    async def user_exists(self, email: str, password: str) -> Tuple[User, bool]:
        """
        (stored user, True) when the password matches. Otherwise the stored
        user, or a transient User carrying only the email, and False.
        """
        user, matches = await self._lookup(email, password)
        if user is None:
            return User(email=email), False
        return user, matches

    async def register(self, credentials: Credentials) -> User:
        """
        Raises:
            InvalidEmailError, InvalidPasswordFormatError, DuplicateUserError
        """
        validate_credentials(credentials)
        if await self._users.get(credentials.email) is not None:
            raise errors.DuplicateUserError()

        stored = await run_in_threadpool(self._password_cipher.cipher, credentials.password)
        user = await self._users.create(User(email=credentials.email, password=stored))
        logger.info(f"Registered user {user.email}")
        return user

    # ─────────────────────────────────────────────────────────────
    # Attempts and risk
    # ─────────────────────────────────────────────────────────────
    async def _record(
        self,
        user: User,
        successful: bool,
        user_agent: Optional[str],
        ip: Optional[str],
    ) -> Tuple[LoginAttempt, Verdict]:
        attempt = await self._attempts.create(
            LoginAttempt(
                user=user.email,
                user_agent=user_agent or None,
                ip=normalize_ip(ip),
                successful=successful,
            )
        )
        verdict = await self._risk.assess(attempt)

        if verdict is Verdict.LOCKED:
            await self._notify(self._mailer.send_suspicious_activity_report, attempt)
            raise errors.LockoutError()
        if verdict is Verdict.NEW_DEVICE and successful:
            await self._notify(self._mailer.send_new_device_notice, attempt)
        return attempt, verdict

    async def _notify(self, send, attempt: LoginAttempt) -> None:
        try:
            await run_in_threadpool(send, attempt)
        except errors.MailError as e:
            logger.warning(f"Notice for {attempt.user} not delivered: {e.message}")

    # ─────────────────────────────────────────────────────────────
    # Public entry points
    # ─────────────────────────────────────────────────────────────
    async def request_2fa(
        self,
        credentials: Credentials,
        user_agent: Optional[str] = None,
        ip: Optional[str] = None,
    ) -> str:
        """
        Check credentials, then mail a fresh verification code.

        Unknown users and wrong passwords both raise NotFoundError with the
        same message. Returns the confirmation message.

        Raises:
            NotFoundError, LockoutError, MailError
        """
        user, matches = await self._lookup(credentials.email, credentials.password)
        if user is None:
            logger.warning("2FA request for an unknown user")
            raise errors.NotFoundError(errors.WRONG_CREDENTIALS_ERROR)

        locked = await self._risk.is_locked(user.email)
        await self._record(user, matches and not locked, user_agent, ip)

        if not matches:
            logger.warning(f"2FA request with wrong credentials for {user.email}")
            raise errors.NotFoundError(errors.WRONG_CREDENTIALS_ERROR)

        user, code = await self._two_factor.issue(user)
        await run_in_threadpool(self._mailer.send_2fa_code, user.email, code)
        return f"Verification code sent correctly to {user.email}. Check your inbox!"

    async def login(
        self,
        credentials: Credentials,
        code: Optional[str],
        user_agent: Optional[str] = None,
        ip: Optional[str] = None,
    ) -> Tuple[str, datetime]:
        """
        Returns (token, expiry).

        Raises:
            AuthError: generic message for any password or code mismatch
            LockoutError
        """
        user, matches = await self._lookup(credentials.email, credentials.password)
        if user is None:
            logger.warning("Login attempt for an unknown user")
            raise errors.AuthError()

        code_ok = matches and self._two_factor.verify(user, code)
        locked = await self._risk.is_locked(user.email)
        await self._record(user, code_ok and not locked, user_agent, ip)

        if not code_ok:
            logger.warning(f"Rejected login for {user.email}")
            raise errors.AuthError()

        logger.info(f"User {user.email} logged in")
        return self._tokens.mint(user.email)

    async def refresh(self, token: str) -> Tuple[str, datetime]:
        """
        Raises:
            AuthError: bad or expired token, or its subject no longer exists
        """
        claims = self._tokens.parse(token)
        if await self._users.get(claims.sub) is None:
            raise errors.AuthError("token subject no longer exists")
        return self._tokens.refresh(token)

    def authorize(self, token: str, path_subject: Optional[str] = None) -> bool:
        return self._tokens.authorize(token, path_subject)

    # ─────────────────────────────────────────────────────────────
    # User administration
    # ─────────────────────────────────────────────────────────────
    async def get_users(self) -> List[User]:
        return await self._users.get_all()

    async def get_user(self, email: str) -> User:
        user = await self._users.get(email)
        if user is None:
            raise errors.NotFoundError(f"Unable to find user: {email}")
        return user

    async def modify_user(self, email: str, credentials: Credentials) -> User:
        """Only the password can change; the email is the identity."""
        if credentials.email != email:
            raise errors.ValidationError("the email of a user cannot be modified")
        validate_credentials(credentials)

        await self.get_user(email)
        stored = await run_in_threadpool(self._password_cipher.cipher, credentials.password)
        updated = await self._users.set_password(email, stored)
        logger.info(f"Modified user {email}")
        return updated

    async def delete_user(self, email: str) -> None:
        await self._users.delete(email)
        logger.info(f"Deleted user {email}")
