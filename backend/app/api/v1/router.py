# backend/app/api/v1/router.py
from fastapi import APIRouter
from backend.app.api.v1.endpoints import auth, files, users

api_router = APIRouter()
# /register, /2fa-verification, /login, /refresh-token sit at the root
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(files.router, prefix="/files", tags=["files"])
