# backend/app/services/files.py
"""
Owner-only, versioned, encrypted file storage.

Each upload adds a File row; its id names the blob on disk:
    FILES_PATH/<id> = IV(16) || AES-CTR(key, contents)
"""
import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

from starlette.concurrency import run_in_threadpool

from backend.app.core import errors
from backend.app.models.file import File
from backend.app.repositories.interfaces import FileStore
from backend.app.security.cipher import AesCtrCipher

logger = logging.getLogger(__name__)


class FileService:
    def __init__(self, files: FileStore, cipher: AesCtrCipher, files_path: str):
        self._files = files
        self._cipher = cipher
        self._root = Path(files_path or "files")

    def ensure_storage(self) -> None:
        try:
            self._root.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Error creating files directory {self._root}: {e}")
            raise errors.ConfigurationError(f"Unable to create {self._root}")

    def _blob(self, file: File) -> Path:
        return self._root / str(file.id)

    def _write(self, file: File, data: bytes) -> None:
        self.ensure_storage()
        path = self._blob(file)
        path.write_bytes(self._cipher.encrypt(data))
        os.chmod(path, 0o600)

    def _read(self, file: File) -> bytes:
        return self._cipher.decrypt(self._blob(file).read_bytes())

    async def list_files(self, owner: str) -> List[File]:
        return await self._files.get_all_by_owner(owner)

    async def upload(self, owner: str, name: str, data: bytes) -> File:
        if not name:
            raise errors.ValidationError("a file name is required")

        file = await self._files.create(File(name=name, owner=owner))
        try:
            await run_in_threadpool(self._write, file, data)
        except OSError as e:
            logger.error(f"Unable to store contents of file {file.id}: {e}")
            # No listing or download may see a version without its blob
            await self._files.delete_version(file.id)
            self._blob(file).unlink(missing_ok=True)
            raise errors.PersistenceError("Unable to store file")

        logger.info(f"Stored version {file.id} of '{name}' for {owner}")
        return file

    async def versions(self, owner: str, name: str) -> List[File]:
        files = await self._files.get_versions(name, owner)
        if not files:
            raise errors.NotFoundError(f"Unable to find file: {name}")
        return files

    async def download(
        self, owner: str, name: str, version: Optional[int] = None
    ) -> Tuple[File, bytes]:
        if version is None:
            file = await self._files.get_last_version(name, owner)
        else:
            file = await self._files.get_by_version(version)
            # Versions of other users' files look exactly like missing ones
            if file is not None and (file.owner != owner or file.name != name):
                file = None

        if file is None:
            raise errors.NotFoundError(f"Unable to find file: {name}")

        try:
            data = await run_in_threadpool(self._read, file)
        except OSError as e:
            logger.error(f"Unable to read contents of file {file.id}: {e}")
            raise errors.PersistenceError("Unable to read file")
        return file, data

    async def delete(self, owner: str, name: str) -> None:
        files = await self._files.delete(name, owner)
        if not files:
            raise errors.NotFoundError(f"Unable to find file: {name}")

        for file in files:
            try:
                await run_in_threadpool(self._blob(file).unlink, True)
            except OSError as e:
                logger.error(f"Unable to remove contents of file {file.id}: {e}")
                raise errors.PersistenceError("Unable to delete file")
        logger.info(f"Deleted '{name}' ({len(files)} versions) for {owner}")
