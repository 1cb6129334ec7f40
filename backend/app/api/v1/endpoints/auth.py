# backend/app/api/v1/endpoints/auth.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from backend.app.api import deps
from backend.app.schemas.user import Credentials, MessageResponse, TokenResponse, UserResponse
from backend.app.services.auth import AuthOrchestrator

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
        credentials: Credentials,
        auth: AuthOrchestrator = Depends(deps.get_auth),
):
    return await auth.register(credentials)


@router.post("/2fa-verification", response_model=MessageResponse)
async def request_verification_code(
        credentials: Credentials,
        request: Request,
        auth: AuthOrchestrator = Depends(deps.get_auth),
):
    user_agent, ip = deps.client_info(request)
    message = await auth.request_2fa(credentials, user_agent, ip)
    return {"message": message}


@router.post("/login", response_model=TokenResponse)
async def login(
        credentials: Credentials,
        request: Request,
        verification_code: Optional[str] = Query(default=None),
        auth: AuthOrchestrator = Depends(deps.get_auth),
):
    user_agent, ip = deps.client_info(request)
    token, expire = await auth.login(credentials, verification_code, user_agent, ip)
    return {"code": status.HTTP_200_OK, "token": token, "expire": expire}


@router.get("/refresh-token", response_model=TokenResponse)
async def refresh_token(
        token: str = Depends(deps.get_token),
        auth: AuthOrchestrator = Depends(deps.get_auth),
):
    new_token, expire = await auth.refresh(token)
    return {"code": status.HTTP_200_OK, "token": new_token, "expire": expire}
