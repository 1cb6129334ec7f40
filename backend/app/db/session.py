# backend/app/db/session.py
"""
Async database engine and session factory.

Production considerations:
- Uses asyncpg for PostgreSQL
- Uses aiosqlite for SQLite (local development and tests)
- Pool settings differ for SQLite (no pooling) vs PostgreSQL

Security considerations:
- DATABASE_ECHO disabled by default (prevents SQL query exposure)
- Connection pool overflow limited to prevent resource exhaustion
- Pool pre-ping enabled to detect stale connections

Nothing here runs at import time: the container calls create_engine()
once with the loaded Settings.
"""
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool, AsyncAdaptedQueuePool

from backend.app.core.config import Settings
from backend.app.db.base import Base, import_models


def create_engine(settings: Settings) -> AsyncEngine:
    """
    Create and configure the async SQLAlchemy engine.

    SQLite:
    - NullPool (SQLite doesn't support connection pooling well)
    - StaticPool for ":memory:" so every session sees the same database
    - check_same_thread=False for async compatibility

    PostgreSQL:
    - AsyncAdaptedQueuePool, pool_size=5, max_overflow=10
    - pool_pre_ping=True: Validate connections before use
    - pool_recycle=300: Recycle connections every 5 minutes
    """
    if settings.is_sqlite:
        in_memory = ":memory:" in settings.DATABASE_URL
        return create_async_engine(
            settings.DATABASE_URL,
            echo=settings.DATABASE_ECHO,
            poolclass=StaticPool if in_memory else NullPool,
            connect_args={"check_same_thread": False},
        )

    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=300,
    )


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    expire_on_commit=False: Prevents attribute access errors after commit
    autoflush=False: Explicit flush control, prevents unexpected queries
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine, drop: bool = False) -> None:
    import_models()
    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
