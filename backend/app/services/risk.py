# backend/app/services/risk.py
"""
Login risk verdicts, computed after the attempt has been recorded.

1. Last N attempts of the user (ascending id) all unsuccessful -> LOCKED
   (N < 0: the whole history; N = 0: lockout disabled)
2. No earlier attempt with the same (user, user_agent, ip) -> NEW_DEVICE
3. Otherwise OK

There is no time-based release: an account stays locked until a
successful attempt re-enters the window.
"""
import enum
import logging
from typing import List

from backend.app.models.login_attempt import LoginAttempt
from backend.app.repositories.interfaces import AttemptStore

logger = logging.getLogger(__name__)


class Verdict(str, enum.Enum):
    OK = "ok"
    NEW_DEVICE = "new_device"
    LOCKED = "locked"


class RiskEngine:
    def __init__(self, attempts: AttemptStore, max_unsuccessful_attempts: int = 3):
        self._attempts = attempts
        self._n = max_unsuccessful_attempts

    def _window_locks(self, window: List[LoginAttempt]) -> bool:
        if not window:
            return False
        if self._n > 0 and len(window) < self._n:
            return False
        return all(not attempt.successful for attempt in window)

    async def is_locked(self, email: str) -> bool:
        """Lockout rule on the current window, without a new attempt."""
        if self._n == 0:
            return False
        window = await self._attempts.get_last_n_by_user(email, self._n)
        return self._window_locks(window)

    async def assess(self, attempt: LoginAttempt) -> Verdict:
        """Store errors propagate; nothing is retried here."""
        if await self.is_locked(attempt.user):
            logger.warning(f"Account {attempt.user} locked after unsuccessful attempts")
            return Verdict.LOCKED

        similar = await self._attempts.get_similar(attempt)
        if not similar:
            logger.info(f"Login for {attempt.user} from a new device")
            return Verdict.NEW_DEVICE
        return Verdict.OK
