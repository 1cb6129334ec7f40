# backend/app/security/two_factor.py
"""
Email-delivered verification codes.

Key points:
- 6-digit codes, zero-padded ("000042" is a valid code)
- Drawn from `secrets` (CSPRNG), uniform in [0, 999999)
- Valid for 5 minutes after issuance (fixed window, not configurable)
- Stored on the user row; a new issue() overwrites the previous code
"""
import hmac
import logging
import secrets
from datetime import timedelta
from typing import Optional, Tuple

from backend.app.core.clock import Clock, as_aware, utcnow
from backend.app.models.user import User
from backend.app.repositories.interfaces import UserStore

logger = logging.getLogger(__name__)

CODE_WINDOW = timedelta(minutes=5)
CODE_UPPER_BOUND = 999999


def generate_code() -> str:
    return "%06d" % secrets.randbelow(CODE_UPPER_BOUND)


class TwoFactorIssuer:
    def __init__(self, users: UserStore, clock: Clock = utcnow):
        self._users = users
        self._clock = clock

    async def issue(self, user: User) -> Tuple[User, str]:
        """Bind a fresh code to the user and persist it. Returns (user, code)."""
        code = generate_code()
        updated = await self._users.set_two_factor(user.email, code, self._clock())
        logger.info(f"Verification code issued for {user.email}")
        return updated, code

    def verify(self, user: User, presented: Optional[str]) -> bool:
        """
        True iff the presented code equals the stored one and was issued
        less than CODE_WINDOW ago. The code is not cleared on success.
        """
        if not presented or not user.two_factor_auth or user.two_factor_time is None:
            return False

        if not hmac.compare_digest(
            user.two_factor_auth.encode("utf-8"), presented.encode("utf-8")
        ):
            return False

        return self._clock() - as_aware(user.two_factor_time) < CODE_WINDOW
