# backend/app/api/v1/endpoints/users.py
from typing import List

from fastapi import APIRouter, Depends, Response, status

from backend.app.api import deps
from backend.app.schemas.user import Credentials, UserDetail, UserResponse
from backend.app.services.auth import AuthOrchestrator

router = APIRouter()


# 1. LIST USERS - any authenticated user
@router.get("", response_model=List[UserResponse])
async def read_users(
        auth: AuthOrchestrator = Depends(deps.get_auth),
        _: str = Depends(deps.get_current_user_email),
):
    return await auth.get_users()


# 2. ONE USER - only the user itself
@router.get("/{email}", response_model=UserDetail)
async def read_user(
        email: str = Depends(deps.authorize_path_user),
        auth: AuthOrchestrator = Depends(deps.get_auth),
):
    return await auth.get_user(email)


# 3. CHANGE PASSWORD (PUT)
@router.put("/{email}", response_model=UserDetail)
async def modify_user(
        credentials: Credentials,
        email: str = Depends(deps.authorize_path_user),
        auth: AuthOrchestrator = Depends(deps.get_auth),
):
    return await auth.modify_user(email, credentials)


# 4. SOFT DELETE (DELETE)
@router.delete("/{email}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
        email: str = Depends(deps.authorize_path_user),
        auth: AuthOrchestrator = Depends(deps.get_auth),
):
    await auth.delete_user(email)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
