"""
Resource router: vault CRUD, listing/search and link previews.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from routers.auth_scope import AuthContext, get_auth_context
from routers.dependencies import (
    ensure_owner,
    get_preview_fetcher,
    get_resource_store,
)
from routers.rate_limit import rate_limit
from services.file_storage import FileStorage, safe_filename
from services.resource_query import filter_resources
from services.resource_schema import RESOURCE_TYPES, ResourceRecord, UploadedFile
from services.resource_store import ResourceStore
from services.url_preview import UrlPreviewFetcher, fetch_url_metadata, get_resource_preview

router = APIRouter()
logger = logging.getLogger(__name__)

ALLOWED_MEDIA_MIME_PREFIXES = ("image/", "video/")
ALLOWED_MEDIA_EXTENSIONS = {
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic", ".svg",
    ".mp4", ".mov", ".m4v", ".webm", ".avi", ".mkv",
}
CLEARABLE_FIELDS = {"url", "notes", "tags", "reminder_date"}
UPLOAD_CHUNK_BYTES = 1024 * 1024


class PreviewRequest(BaseModel):
    url: str = Field(min_length=1, max_length=2000)


def _serialize(record: ResourceRecord, storage: FileStorage) -> Dict[str, Any]:
    payload = record.to_payload()
    payload["media_download_url"] = storage.resolve(record.media_url) if record.media_url else None
    return payload


async def _read_upload(file: Optional[UploadFile]) -> Optional[UploadedFile]:
    """Validate and buffer an optional image/video upload."""
    if file is None or not file.filename:
        return None

    filename = safe_filename(file.filename)
    suffix = Path(filename).suffix.lower()
    content_type = (file.content_type or "").lower()
    if suffix not in ALLOWED_MEDIA_EXTENSIONS and not content_type.startswith(ALLOWED_MEDIA_MIME_PREFIXES):
        raise HTTPException(
            status_code=422,
            detail="Unsupported file type. Upload an image or video file.",
        )

    max_bytes = max(int(settings.MAX_UPLOAD_BYTES), 1)
    chunks: List[bytes] = []
    total_size = 0
    try:
        while True:
            chunk = await file.read(UPLOAD_CHUNK_BYTES)
            if not chunk:
                break
            total_size += len(chunk)
            if total_size > max_bytes:
                raise HTTPException(
                    status_code=413,
                    detail=f"File too large. Max upload size is {max_bytes // (1024 * 1024)}MB.",
                )
            chunks.append(chunk)
    finally:
        await file.close()

    return UploadedFile(filename=filename, content=b"".join(chunks), content_type=content_type or None)


def _clear_requests(clear: Optional[str]) -> List[str]:
    fields = [name.strip() for name in str(clear or "").split(",") if name.strip()]
    unknown = sorted(set(fields) - CLEARABLE_FIELDS)
    if unknown:
        raise HTTPException(status_code=422, detail=f"Cannot clear fields: {', '.join(unknown)}")
    return fields


@router.post("")
async def create_resource(
    title: str = Form(default=""),
    url: Optional[str] = Form(default=None),
    type: str = Form(default="article"),
    tags: Optional[str] = Form(default=None),
    notes: Optional[str] = Form(default=None),
    reminder_date: Optional[str] = Form(default=None),
    file: Optional[UploadFile] = File(default=None),
    _rate_limit: None = Depends(rate_limit("resource_create", limit=240, window_seconds=3600)),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    store: ResourceStore = Depends(get_resource_store),
):
    """Create a resource, optionally with an uploaded image/video."""
    await ensure_owner(db, auth.owner_id)
    upload = await _read_upload(file)
    data: Dict[str, Any] = {"title": title, "url": url, "type": type, "tags": tags, "notes": notes}
    if reminder_date:
        data["reminder_date"] = reminder_date
    resource_id = await store.create(data, auth.owner_id, upload)
    record = await store.read(resource_id, auth.owner_id)
    return _serialize(record, store.storage)


@router.get("")
async def list_resources(
    type: Optional[str] = Query(default=None),
    q: Optional[str] = Query(default=None),
    auth: AuthContext = Depends(get_auth_context),
    store: ResourceStore = Depends(get_resource_store),
):
    """List the owner's resources newest first, narrowed by type and search term."""
    resource_type = (type or "").strip()
    if resource_type and resource_type not in RESOURCE_TYPES:
        raise HTTPException(status_code=422, detail=f"type must be one of: {', '.join(RESOURCE_TYPES)}")

    if resource_type:
        records = await store.list_by_owner_and_type(auth.owner_id, resource_type)
    else:
        records = await store.list_by_owner(auth.owner_id)
    items = filter_resources(records, term=q)
    return {
        "total_count": len(items),
        "items": [_serialize(record, store.storage) for record in items],
    }


@router.post("/preview")
async def preview_url(
    request: PreviewRequest,
    _rate_limit: None = Depends(rate_limit("resource_preview", limit=120, window_seconds=3600)),
    _auth: AuthContext = Depends(get_auth_context),
    fetcher: UrlPreviewFetcher = Depends(get_preview_fetcher),
):
    """Preview a URL before saving it."""
    url = request.url.strip()
    if not url:
        raise HTTPException(status_code=422, detail="url is required")
    record = await fetch_url_metadata(url, fetcher)
    return record.to_document()


@router.get("/{resource_id}")
async def get_resource(
    resource_id: str,
    auth: AuthContext = Depends(get_auth_context),
    store: ResourceStore = Depends(get_resource_store),
):
    record = await store.read(resource_id, auth.owner_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    return _serialize(record, store.storage)


@router.get("/{resource_id}/preview")
async def get_resource_link_preview(
    resource_id: str,
    auth: AuthContext = Depends(get_auth_context),
    store: ResourceStore = Depends(get_resource_store),
):
    """Display preview for a saved resource, using its own title and notes."""
    record = await store.read(resource_id, auth.owner_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    preview = await get_resource_preview(record, store.fetcher)
    return {"preview": preview.to_document() if preview else None}


@router.patch("/{resource_id}")
async def update_resource(
    resource_id: str,
    title: Optional[str] = Form(default=None),
    url: Optional[str] = Form(default=None),
    type: Optional[str] = Form(default=None),
    tags: Optional[str] = Form(default=None),
    notes: Optional[str] = Form(default=None),
    reminder_date: Optional[str] = Form(default=None),
    clear: Optional[str] = Form(default=None),
    file: Optional[UploadFile] = File(default=None),
    auth: AuthContext = Depends(get_auth_context),
    store: ResourceStore = Depends(get_resource_store),
):
    """Partially update a resource; omitted fields stay untouched.

    Empty form values are indistinguishable from omitted ones, so fields are
    emptied by naming them in ``clear`` (comma separated).
    """
    patch: Dict[str, Any] = {}
    submitted = {
        "title": title,
        "url": url,
        "type": type,
        "tags": tags,
        "notes": notes,
        "reminder_date": reminder_date,
    }
    for name, value in submitted.items():
        if value is not None:
            patch[name] = value
    for name in _clear_requests(clear):
        patch[name] = None

    upload = await _read_upload(file)
    await store.update(resource_id, patch, upload, owner_id=auth.owner_id)
    record = await store.read(resource_id, auth.owner_id)
    return _serialize(record, store.storage)


@router.delete("/{resource_id}")
async def delete_resource(
    resource_id: str,
    auth: AuthContext = Depends(get_auth_context),
    store: ResourceStore = Depends(get_resource_store),
):
    await store.delete(resource_id, owner_id=auth.owner_id)
    return {"id": resource_id, "deleted": True}
