"""
File store used by assignment submission. The core only sees FileRef.
"""

import os
import re
import secrets
import time
from abc import ABC, abstractmethod
from typing import NamedTuple

from fastapi import UploadFile

from app.core.errors import ValidationError


class FileRef(NamedTuple):
    url: str
    name: str


class FileStore(ABC):
    max_bytes: int

    @abstractmethod
    def store(self, data: bytes, filename: str) -> FileRef: ...


def _too_large(max_bytes: int) -> ValidationError:
    return ValidationError(f"File upload error: file exceeds {max_bytes} bytes")


async def read_upload(upload: UploadFile, max_bytes: int) -> bytes:
    """Read at most max_bytes + 1 bytes; anything longer is rejected unread."""
    data = await upload.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise _too_large(max_bytes)
    return data


_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


class LocalFileStore(FileStore):
    """Writes uploads to <root>/assignments and serves them under /uploads."""

    def __init__(self, root: str, max_bytes: int, url_prefix: str = "/uploads"):
        self.root = root
        self.max_bytes = max_bytes
        self.url_prefix = url_prefix.rstrip("/")

    def store(self, data: bytes, filename: str) -> FileRef:
        if len(data) > self.max_bytes:
            raise _too_large(self.max_bytes)

        folder = os.path.join(self.root, "assignments")
        os.makedirs(folder, exist_ok=True)

        safe_name = _UNSAFE.sub("_", os.path.basename(filename or "upload")) or "upload"
        stored = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}-{safe_name}"
        with open(os.path.join(folder, stored), "wb") as fh:
            fh.write(data)

        return FileRef(url=f"{self.url_prefix}/assignments/{stored}", name=filename)


_file_store: FileStore | None = None


def get_file_store() -> FileStore:
    """FastAPI dependency returning the configured upload store."""
    global _file_store
    if _file_store is None:
        from app.core.config import settings
        _file_store = LocalFileStore(settings.UPLOAD_DIR, settings.MAX_UPLOAD_BYTES)
    return _file_store
