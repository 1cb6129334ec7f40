# backend/app/models/user.py
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from backend.app.db.base import Base


class User(Base):
    __tablename__ = "users"

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )
    # Soft delete: every query filters deleted_at IS NULL
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    # Single identity attribute (token sub, attempts and files all reference it)
    email = Column(String(320), primary_key=True)

    # base64url(IV || AES-CTR(key, bcrypt_hash)); never the client hash itself
    password = Column(String(255), nullable=False)

    # Pending verification code and its issue time; both set or both empty
    two_factor_auth = Column(String(6), nullable=True)
    two_factor_time = Column(DateTime(timezone=True), nullable=True)
