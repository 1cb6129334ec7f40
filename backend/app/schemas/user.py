# backend/app/schemas/user.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


# Body of /register, /2fa-verification, /login and PUT /users/{email}.
# password = base64url(hex(SHA-512(plaintext))), computed client-side
class Credentials(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str
    password: str


# Never exposes the stored password nor the 2FA code
class UserResponse(BaseModel):
    email: str

    model_config = ConfigDict(from_attributes=True)


class UserDetail(UserResponse):
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Same shape for /login and /refresh-token
class TokenResponse(BaseModel):
    code: int
    token: str
    expire: datetime


class MessageResponse(BaseModel):
    message: str


class TokenClaims(BaseModel):
    sub: str
    iat: datetime
    exp: datetime
    orig_iat: datetime
