# backend/app/models/login_attempt.py
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime
from sqlalchemy.sql import func
from backend.app.db.base import Base


class LoginAttempt(Base):
    """Append-only record of a 2FA request or login. Never updated or deleted."""

    __tablename__ = "login_attempts"

    # Strictly increasing; "last N" is ordered by id
    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # "user" is a reserved word in PostgreSQL; SQLAlchemy quotes it
    user = Column("user", String(320), ForeignKey("users.email"), nullable=False, index=True)

    user_agent = Column(String(512), nullable=True)
    ip = Column(String(45), nullable=True)
    successful = Column(Boolean, nullable=False, default=False)
