# backend/app/repositories/sql.py
"""
SQLAlchemy implementations of the storage capabilities.

Each call opens its own session and commits before returning, so an
attempt is durable as soon as create() returns. SQLAlchemy failures are
logged and re-raised as PersistenceError.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.core import errors
from backend.app.core.clock import Clock, utcnow
from backend.app.models.file import File
from backend.app.models.login_attempt import LoginAttempt
from backend.app.models.user import User

logger = logging.getLogger(__name__)


class _SqlStore:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession], clock: Clock = utcnow):
        self._sessionmaker = sessionmaker
        self._clock = clock

    def _fail(self, action: str, e: Exception) -> errors.PersistenceError:
        logger.error(f"Unable to {action}: {e}")
        return errors.PersistenceError(f"Unable to {action}")


class SqlUserStore(_SqlStore):
    async def get(self, email: str) -> Optional[User]:
        try:
            async with self._sessionmaker() as db:
                result = await db.execute(
                    select(User).where(User.email == email, User.deleted_at.is_(None))
                )
                return result.scalars().first()
        except SQLAlchemyError as e:
            raise self._fail("retrieve user", e)

    async def get_all(self) -> List[User]:
        try:
            async with self._sessionmaker() as db:
                result = await db.execute(
                    select(User).where(User.deleted_at.is_(None)).order_by(User.email)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("retrieve users", e)

    async def create(self, user: User) -> User:
        now = self._clock()
        user.created_at = now
        user.updated_at = now
        try:
            async with self._sessionmaker() as db:
                # A soft-deleted row still owns the primary key
                existing = await db.get(User, user.email)
                if existing is not None:
                    raise errors.DuplicateUserError()
                db.add(user)
                await db.commit()
                await db.refresh(user)
                return user
        except IntegrityError:
            raise errors.DuplicateUserError()
        except SQLAlchemyError as e:
            raise self._fail("create user", e)

    async def _set(self, email: str, **values) -> User:
        # Only the named columns are written; concurrent writes to other
        # columns of the same row survive.
        live = (User.email == email, User.deleted_at.is_(None))
        try:
            async with self._sessionmaker() as db:
                result = await db.execute(
                    update(User).where(*live).values(updated_at=self._clock(), **values)
                )
                if result.rowcount == 0:
                    raise errors.NotFoundError(f"Unable to find user: {email}")
                await db.commit()

                result = await db.execute(select(User).where(*live))
                return result.scalars().first()
        except SQLAlchemyError as e:
            raise self._fail("update user", e)

    async def set_password(self, email: str, password: str) -> User:
        return await self._set(email, password=password)

    async def set_two_factor(self, email: str, code: str, issued_at: datetime) -> User:
        return await self._set(email, two_factor_auth=code, two_factor_time=issued_at)

    async def delete(self, email: str) -> None:
        try:
            async with self._sessionmaker() as db:
                result = await db.execute(
                    update(User)
                    .where(User.email == email, User.deleted_at.is_(None))
                    .values(deleted_at=self._clock())
                )
                await db.commit()
        except SQLAlchemyError as e:
            raise self._fail("delete user", e)

        if result.rowcount == 0:
            raise errors.NotFoundError(f"Unable to find user: {email}")


class SqlAttemptStore(_SqlStore):
    async def create(self, attempt: LoginAttempt) -> LoginAttempt:
        attempt.created_at = self._clock()
        try:
            async with self._sessionmaker() as db:
                db.add(attempt)
                await db.commit()
                await db.refresh(attempt)
                return attempt
        except SQLAlchemyError as e:
            raise self._fail("record login attempt", e)

    async def get_last_n_by_user(self, email: str, n: int) -> List[LoginAttempt]:
        if n == 0:
            return []

        query = (
            select(LoginAttempt)
            .where(LoginAttempt.user == email)
            .order_by(LoginAttempt.id.desc())
        )
        if n > 0:
            query = query.limit(n)

        try:
            async with self._sessionmaker() as db:
                result = await db.execute(query)
                attempts = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("retrieve login attempts", e)

        attempts.reverse()
        return attempts

    async def get_similar(self, attempt: LoginAttempt) -> List[LoginAttempt]:
        query = (
            select(LoginAttempt)
            .join(User, User.email == LoginAttempt.user)
            .where(
                User.deleted_at.is_(None),
                LoginAttempt.user == attempt.user,
                LoginAttempt.user_agent.is_not_distinct_from(attempt.user_agent),
                LoginAttempt.ip.is_not_distinct_from(attempt.ip),
                LoginAttempt.id != attempt.id,
            )
            .order_by(LoginAttempt.id)
        )
        try:
            async with self._sessionmaker() as db:
                result = await db.execute(query)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("retrieve similar login attempts", e)


class SqlFileStore(_SqlStore):
    def _live(self, name: str, owner: str):
        return select(File).where(
            File.name == name, File.owner == owner, File.deleted_at.is_(None)
        )

    async def create(self, file: File) -> File:
        now = self._clock()
        file.created_at = now
        file.updated_at = now
        try:
            async with self._sessionmaker() as db:
                db.add(file)
                await db.commit()
                await db.refresh(file)
                return file
        except SQLAlchemyError as e:
            raise self._fail("create file", e)

    async def get_all_by_owner(self, owner: str) -> List[File]:
        try:
            async with self._sessionmaker() as db:
                result = await db.execute(
                    select(File)
                    .where(File.owner == owner, File.deleted_at.is_(None))
                    .order_by(File.id)
                )
                files = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("retrieve files", e)

        # Latest version of each name, in upload order of that version
        latest = {}
        for file in files:
            latest[file.name] = file
        return sorted(latest.values(), key=lambda f: f.id)

    async def get_versions(self, name: str, owner: str) -> List[File]:
        try:
            async with self._sessionmaker() as db:
                result = await db.execute(self._live(name, owner).order_by(File.id))
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("retrieve file versions", e)

    async def get_last_version(self, name: str, owner: str) -> Optional[File]:
        try:
            async with self._sessionmaker() as db:
                result = await db.execute(
                    self._live(name, owner).order_by(File.id.desc()).limit(1)
                )
                return result.scalars().first()
        except SQLAlchemyError as e:
            raise self._fail("retrieve file", e)

    async def get_by_version(self, version: int) -> Optional[File]:
        try:
            async with self._sessionmaker() as db:
                result = await db.execute(
                    select(File).where(File.id == version, File.deleted_at.is_(None))
                )
                return result.scalars().first()
        except SQLAlchemyError as e:
            raise self._fail("retrieve file version", e)

    async def delete_version(self, version: int) -> None:
        try:
            async with self._sessionmaker() as db:
                await db.execute(
                    update(File)
                    .where(File.id == version, File.deleted_at.is_(None))
                    .values(deleted_at=self._clock())
                )
                await db.commit()
        except SQLAlchemyError as e:
            raise self._fail("delete file version", e)

    async def delete(self, name: str, owner: str) -> List[File]:
        try:
            async with self._sessionmaker() as db:
                result = await db.execute(self._live(name, owner).order_by(File.id))
                files = list(result.scalars().all())
                now = self._clock()
                for file in files:
                    file.deleted_at = now
                await db.commit()
                return files
        except SQLAlchemyError as e:
            raise self._fail("delete file", e)
