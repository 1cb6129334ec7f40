# backend/app/models/file.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.sql import func
from backend.app.db.base import Base


class File(Base):
    __tablename__ = "files"

    # Doubles as the version id; the encrypted blob lives at FILES_PATH/<id>
    id = Column(Integer, primary_key=True, autoincrement=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    # --- METADATA (plain, the server needs it to look files up) ---
    # Uploading an existing name adds a new row: one row per version
    name = Column(String(255), nullable=False, index=True)
    owner = Column(String(320), ForeignKey("users.email"), nullable=False, index=True)

    # --- CONTENTS ---
    # Never stored here. IV(16) || AES-CTR(key, bytes) on disk.
