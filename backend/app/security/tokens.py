# backend/app/security/tokens.py
"""
Bearer tokens: HS256 JWTs signed with python-jose.

Claims (integer epoch seconds):
- sub:      user email
- iat:      issue time of this token
- exp:      iat + TOKEN_TIMEOUT
- orig_iat: issue time of the first token of a refresh chain

Expiry is checked against the injected clock, not python-jose's own.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from jose import JWTError, jwt
from pydantic import ValidationError

from backend.app.core import errors
from backend.app.core.clock import Clock, utcnow
from backend.app.schemas.user import TokenClaims

logger = logging.getLogger(__name__)


def _epoch(value: datetime) -> int:
    return int(value.timestamp())


def _from_epoch(value: int) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


class TokenService:
    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        timeout: timedelta = timedelta(hours=1),
        max_refresh: timedelta = timedelta(hours=1),
        clock: Clock = utcnow,
    ):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._timeout = timeout
        self._max_refresh = max_refresh
        self._clock = clock

    @property
    def timeout(self) -> timedelta:
        return self._timeout

    def mint(
        self,
        subject: str,
        now: Optional[datetime] = None,
        original_issue: Optional[datetime] = None,
    ) -> Tuple[str, datetime]:
        """Returns (token, expiry)."""
        now = now or self._clock()
        issued = _epoch(now)
        expire = issued + int(self._timeout.total_seconds())
        claims = {
            "sub": subject,
            "iat": issued,
            "exp": expire,
            "orig_iat": _epoch(original_issue) if original_issue else issued,
        }
        token = jwt.encode(claims, self._secret_key, algorithm=self._algorithm)
        return token, _from_epoch(expire)

    def parse(self, token: str, now: Optional[datetime] = None) -> TokenClaims:
        """
        Verify signature and expiry.

        Raises:
            TokenMalformedError: not a JWT, or claims missing
            BadSignatureError: signature does not match
            TokenExpiredError: now >= exp
        """
        try:
            jwt.get_unverified_claims(token)
        except JWTError:
            raise errors.TokenMalformedError()

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError:
            # Never log the token body
            logger.warning("Rejected token with an invalid signature")
            raise errors.BadSignatureError()

        try:
            claims = TokenClaims(
                sub=payload["sub"],
                iat=_from_epoch(payload["iat"]),
                exp=_from_epoch(payload["exp"]),
                orig_iat=_from_epoch(payload.get("orig_iat", payload["iat"])),
            )
        except (KeyError, TypeError, ValueError, OverflowError, ValidationError):
            raise errors.TokenMalformedError()

        now = now or self._clock()
        if now >= claims.exp:
            raise errors.TokenExpiredError()
        return claims

    def refresh(self, token: str, now: Optional[datetime] = None) -> Tuple[str, datetime]:
        """
        Exchange a live token for a new one with a later expiry.

        The original issue time travels along the chain, so a chain can
        never outlive orig_iat + MAX_REFRESH.
        """
        now = now or self._clock()
        claims = self.parse(token, now)
        if now - claims.orig_iat > self._max_refresh:
            raise errors.OutsideRefreshWindowError()
        return self.mint(claims.sub, now, original_issue=claims.orig_iat)

    def authorize(self, token: str, path_subject: Optional[str] = None) -> bool:
        claims = self.parse(token)
        return not path_subject or claims.sub == path_subject
