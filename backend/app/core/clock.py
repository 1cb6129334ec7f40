# backend/app/core/clock.py
from datetime import datetime, timezone
from typing import Callable

# Every time-dependent component receives one of these instead of calling
# datetime.now() itself, so tests can drive time explicitly.
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_aware(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
