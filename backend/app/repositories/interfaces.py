# backend/app/repositories/interfaces.py
"""
Storage capabilities the services depend on.

Concrete implementations are picked once, in backend.app.container, from
DATABASE_ENGINE. Services only ever see these protocols.
"""
from datetime import datetime
from typing import List, Optional, Protocol

from backend.app.models.file import File
from backend.app.models.login_attempt import LoginAttempt
from backend.app.models.user import User


class UserStore(Protocol):
    async def get(self, email: str) -> Optional[User]:
        ...

    async def get_all(self) -> List[User]:
        ...

    async def create(self, user: User) -> User:
        ...

    async def set_password(self, email: str, password: str) -> User:
        """Write only the stored password. NotFoundError for a missing user."""
        ...

    async def set_two_factor(self, email: str, code: str, issued_at: datetime) -> User:
        ...

    async def delete(self, email: str) -> None:
        ...


class AttemptStore(Protocol):
    async def create(self, attempt: LoginAttempt) -> LoginAttempt:
        ...

    async def get_last_n_by_user(self, email: str, n: int) -> List[LoginAttempt]:
        """Ascending by id. A negative n returns the whole history."""
        ...

    async def get_similar(self, attempt: LoginAttempt) -> List[LoginAttempt]:
        """Same (user, user_agent, ip), live users only, excluding `attempt`."""
        ...


class FileStore(Protocol):
    async def create(self, file: File) -> File:
        ...

    async def get_all_by_owner(self, owner: str) -> List[File]:
        ...

    async def get_versions(self, name: str, owner: str) -> List[File]:
        ...

    async def get_last_version(self, name: str, owner: str) -> Optional[File]:
        ...

    async def get_by_version(self, version: int) -> Optional[File]:
        ...

    async def delete_version(self, version: int) -> None:
        ...

    async def delete(self, name: str, owner: str) -> List[File]:
        ...
