# backend/app/api/deps.py
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.app.container import Container
from backend.app.core import errors
from backend.app.schemas.user import TokenClaims
from backend.app.services.auth import AuthOrchestrator
from backend.app.services.files import FileService

# auto_error=False: a missing header goes through the same 401 body as a bad token
reusable_bearer = HTTPBearer(auto_error=False)


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_auth(container: Container = Depends(get_container)) -> AuthOrchestrator:
    return container.auth


def get_file_service(container: Container = Depends(get_container)) -> FileService:
    return container.file_service


def client_info(request: Request) -> tuple:
    """(user_agent, ip) recorded on every login attempt."""
    user_agent = request.headers.get("user-agent")
    ip = request.client.host if request.client else None
    return user_agent, ip


def get_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(reusable_bearer),
) -> str:
    if credentials is None or not credentials.credentials:
        raise errors.AuthError("missing bearer token")
    return credentials.credentials


def get_current_claims(
    token: str = Depends(get_token),
    container: Container = Depends(get_container),
) -> TokenClaims:
    return container.tokens.parse(token)


async def get_current_user_email(
    claims: TokenClaims = Depends(get_current_claims),
    container: Container = Depends(get_container),
) -> str:
    """Subject of a valid token whose user has not been deleted since."""
    if await container.users.get(claims.sub) is None:
        raise errors.AuthError("token subject no longer exists")
    return claims.sub


def authorize_path_user(
    email: str,
    token: str = Depends(get_token),
    auth: AuthOrchestrator = Depends(get_auth),
) -> str:
    """Routes under /users/{email}: the token subject must be that user."""
    if not auth.authorize(token, email):
        raise errors.ForbiddenError()
    return email
