"""Durable storage for uploaded resource media."""

from __future__ import annotations

import asyncio
import base64
import logging
import os
import time
import uuid
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Optional

from config import settings
from services.errors import StorageError

logger = logging.getLogger(__name__)

UPLOAD_PREFIX = "resources"


def safe_filename(name: str, default: str = "upload.bin") -> str:
    base = os.path.basename(name or default)
    cleaned = "".join(ch if ch.isalnum() or ch in {"-", "_", "."} else "_" for ch in base)
    return cleaned.lstrip(".") or default


def owner_scope(owner_id: str) -> str:
    """Path segment for an owner; distinct ids never share a segment."""
    return base64.urlsafe_b64encode(owner_id.encode("utf-8")).decode("ascii").rstrip("=")


def build_upload_path(owner_id: str, filename: str) -> str:
    """Owner-scoped, collision-free object path for an upload."""
    token = f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"
    return f"{UPLOAD_PREFIX}/{owner_scope(owner_id)}/{token}_{safe_filename(filename)}"


def locator_owner(locator: str) -> Optional[str]:
    parts = PurePosixPath(str(locator or "")).parts
    if len(parts) >= 3 and parts[0] == UPLOAD_PREFIX:
        return parts[1]
    return None


class FileStorage(ABC):
    """Byte storage returning durable locators."""

    @abstractmethod
    async def put(self, owner_scoped_path: str, data: bytes, content_type: Optional[str] = None) -> str:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, locator: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def resolve(self, locator: str) -> str:
        """Downloadable URL for a locator."""
        raise NotImplementedError


class LocalFileStorage(FileStorage):
    """Filesystem-backed storage rooted at ``MEDIA_UPLOAD_DIR``.

    Locators are POSIX paths relative to the root; downloads are served by
    the media router under ``MEDIA_PUBLIC_BASE_URL``.
    """

    def __init__(self, root: Optional[str] = None, public_base_url: Optional[str] = None):
        self.root = Path(root or settings.MEDIA_UPLOAD_DIR)
        self.public_base_url = (public_base_url if public_base_url is not None else settings.MEDIA_PUBLIC_BASE_URL).rstrip("/")

    def path_for(self, locator: str) -> Path:
        relative = PurePosixPath(str(locator or ""))
        if not relative.parts or relative.is_absolute() or ".." in relative.parts:
            raise StorageError(f"Invalid storage locator: {locator!r}")
        root = self.root.resolve()
        target = (root / Path(*relative.parts)).resolve()
        if root not in target.parents:
            raise StorageError(f"Invalid storage locator: {locator!r}")
        return target

    async def put(self, owner_scoped_path: str, data: bytes, content_type: Optional[str] = None) -> str:
        target = self.path_for(owner_scoped_path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            raise StorageError(f"Could not store upload {owner_scoped_path}: {exc}") from exc
        logger.info("media_stored locator=%s bytes=%s content_type=%s", owner_scoped_path, len(data), content_type)
        return owner_scoped_path

    async def delete(self, locator: str) -> None:
        target = self.path_for(locator)
        try:
            await asyncio.to_thread(target.unlink)
        except FileNotFoundError as exc:
            raise StorageError(f"Stored object {locator} does not exist") from exc
        except OSError as exc:
            raise StorageError(f"Could not delete stored object {locator}: {exc}") from exc
        logger.info("media_deleted locator=%s", locator)

    def resolve(self, locator: str) -> str:
        return f"{self.public_base_url}/{locator}"


async def release_media(storage: FileStorage, locator: Optional[str]) -> bool:
    """Best-effort delete of a stored object; failures are logged, never raised."""
    if not locator:
        return False
    try:
        await storage.delete(locator)
    except StorageError as exc:
        logger.warning("media_release_failed locator=%s: %s", locator, exc)
        return False
    return True
