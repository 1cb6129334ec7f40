# backend/app/schemas/file.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class FileResponse(BaseModel):
    # id doubles as the version number (?version=<id>)
    id: int
    name: str
    owner: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
