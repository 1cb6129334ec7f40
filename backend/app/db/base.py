# backend/app/db/base.py
"""
SQLAlchemy declarative base.

This module defines the Base class for all ORM models. Engines and
sessions are built from Settings in db/session.py; importing this module
never opens a connection.
"""
from sqlalchemy.orm import DeclarativeBase


# ─────────────────────────────────────────────────────────────────────────────
# Declarative Base for ORM Models
# All models inherit from this class
# ─────────────────────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Usage:
        class User(Base):
            __tablename__ = "users"
            email = Column(String(320), primary_key=True)
            ...
    """
    pass


def import_models() -> None:
    """Register every table on Base.metadata before create_all()."""
    from backend.app.models import file, login_attempt, user  # noqa: F401
