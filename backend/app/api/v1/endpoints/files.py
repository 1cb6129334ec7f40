# backend/app/api/v1/endpoints/files.py
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status

from backend.app.api import deps
from backend.app.schemas.file import FileResponse
from backend.app.services.files import FileService

router = APIRouter()


def content_disposition(name: str) -> str:
    """Attachment header with an ASCII fallback and the RFC 5987 UTF-8 name."""
    fallback = name.encode("ascii", "replace").decode("ascii")
    fallback = fallback.replace("\\", "_").replace('"', "_")
    return "attachment; filename=\"%s\"; filename*=UTF-8''%s" % (fallback, quote(name, safe=""))


# 1. LIST FILES (latest version of each name)
@router.get("", response_model=List[FileResponse])
async def read_files(
        owner: str = Depends(deps.get_current_user_email),
        files: FileService = Depends(deps.get_file_service),
):
    return await files.list_files(owner)


# 2. UPLOAD (a name that already exists gets a new version)
@router.post("", response_model=FileResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
        file: UploadFile = File(...),
        owner: str = Depends(deps.get_current_user_email),
        files: FileService = Depends(deps.get_file_service),
):
    data = await file.read()
    return await files.upload(owner, file.filename or "", data)


# 3. VERSIONS
@router.get("/{name}/versions", response_model=List[FileResponse])
async def read_file_versions(
        name: str,
        owner: str = Depends(deps.get_current_user_email),
        files: FileService = Depends(deps.get_file_service),
):
    return await files.versions(owner, name)


# 4. DOWNLOAD (decrypted)
@router.get("/{name}")
async def download_file(
        name: str,
        version: Optional[int] = Query(default=None),
        owner: str = Depends(deps.get_current_user_email),
        files: FileService = Depends(deps.get_file_service),
):
    file, data = await files.download(owner, name, version)
    return Response(
        content=data,
        media_type="application/octet-stream",
        headers={"Content-Disposition": content_disposition(file.name)},
    )


# 5. DELETE (every version)
@router.delete("/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_file(
        name: str,
        owner: str = Depends(deps.get_current_user_email),
        files: FileService = Depends(deps.get_file_service),
):
    await files.delete(owner, name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
