# backend/app/container.py
"""
Composition root.

build_container() reads nothing on its own: it receives the loaded
Settings and wires cipher, stores, token service, risk engine,
orchestrator and file service. The HTTP layer gets the result through
create_app().
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncEngine

from backend.app.core import errors
from backend.app.core.clock import Clock, utcnow
from backend.app.core.config import Settings
from backend.app.db.session import create_engine, create_sessionmaker
from backend.app.repositories.interfaces import AttemptStore, FileStore, UserStore
from backend.app.repositories.sql import SqlAttemptStore, SqlFileStore, SqlUserStore
from backend.app.security.cipher import AesCtrCipher
from backend.app.security.hashing import PasswordCipher
from backend.app.security.tokens import TokenService
from backend.app.security.two_factor import TwoFactorIssuer
from backend.app.services.auth import AuthOrchestrator
from backend.app.services.files import FileService
from backend.app.services.mail import MailDispatcher, SmtpMailDispatcher
from backend.app.services.risk import RiskEngine

logger = logging.getLogger(__name__)

Stores = Tuple[UserStore, AttemptStore, FileStore]


def _sql_stores(engine: AsyncEngine, clock: Clock) -> Stores:
    sessionmaker = create_sessionmaker(engine)
    return (
        SqlUserStore(sessionmaker, clock),
        SqlAttemptStore(sessionmaker, clock),
        SqlFileStore(sessionmaker, clock),
    )


# DATABASE_ENGINE -> store factory
STORE_BACKENDS: Dict[str, Callable[[AsyncEngine, Clock], Stores]] = {
    "sqlite": _sql_stores,
    "postgres": _sql_stores,
}


@dataclass(frozen=True)
class Container:
    settings: Settings
    engine: AsyncEngine
    users: UserStore
    attempts: AttemptStore
    files: FileStore
    tokens: TokenService
    risk: RiskEngine
    mailer: MailDispatcher
    auth: AuthOrchestrator
    file_service: FileService


def build_container(
    settings: Settings,
    clock: Clock = utcnow,
    mailer: Optional[MailDispatcher] = None,
) -> Container:
    """
    Raises:
        ConfigurationError: unknown DATABASE_ENGINE or unusable AES key
    """
    factory = STORE_BACKENDS.get(settings.DATABASE_ENGINE)
    if factory is None:
        raise errors.ConfigurationError(
            f"unknown database engine '{settings.DATABASE_ENGINE}', "
            f"expected one of {sorted(STORE_BACKENDS)}"
        )

    engine = create_engine(settings)
    users, attempts, files = factory(engine, clock)

    cipher = AesCtrCipher(settings.aes_key_bytes)
    password_cipher = PasswordCipher(cipher, rounds=settings.BCRYPT_ROUNDS)
    tokens = TokenService(
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        timeout=settings.TOKEN_TIMEOUT,
        max_refresh=settings.MAX_REFRESH,
        clock=clock,
    )
    risk = RiskEngine(attempts, settings.MAX_UNSUCCESSFUL_ATTEMPTS)
    mailer = mailer or SmtpMailDispatcher(settings)

    auth = AuthOrchestrator(
        users=users,
        attempts=attempts,
        password_cipher=password_cipher,
        two_factor=TwoFactorIssuer(users, clock),
        tokens=tokens,
        risk=risk,
        mailer=mailer,
    )
    file_service = FileService(files, cipher, settings.FILES_PATH)

    logger.info(f"Container built with '{settings.DATABASE_ENGINE}' storage")
    return Container(
        settings=settings,
        engine=engine,
        users=users,
        attempts=attempts,
        files=files,
        tokens=tokens,
        risk=risk,
        mailer=mailer,
        auth=auth,
        file_service=file_service,
    )
