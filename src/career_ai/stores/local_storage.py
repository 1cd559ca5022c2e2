"""Local-disk storage service; files are served under ``/uploads/<key>``."""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path, PurePath

from career_ai.stores.base import UploadedFile

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_DIR = Path.home() / ".career-ai" / "uploads"


class LocalStorage:
    def __init__(self, root: str | Path = DEFAULT_UPLOAD_DIR):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Storage key escapes the upload directory: {key}")
        return path

    async def upload(
        self, data: bytes, folder: str, file_name: str, mime_type: str | None = None
    ) -> UploadedFile:
        suffix = PurePath(file_name).suffix.lower()
        key = f"{folder.strip('/')}/{uuid.uuid4().hex}{suffix}"
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, data)
        logger.info("File stored locally: %s (%d bytes)", key, len(data))
        return UploadedFile(url=f"/uploads/{key}", key=key, size=len(data), mime_type=mime_type)

    async def download(self, key: str) -> bytes:
        path = self._path(key)
        if not path.exists():
            raise FileNotFoundError(f"No stored file for key: {key}")
        return await asyncio.to_thread(path.read_bytes)

    async def delete(self, key: str) -> None:
        path = self._path(key)
        await asyncio.to_thread(path.unlink, True)
        logger.info("File deleted: %s", key)
