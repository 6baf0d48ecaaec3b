"""Uploaded media download router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from routers.auth_scope import AuthContext, get_auth_context
from routers.dependencies import get_file_storage
from services.errors import StorageError
from services.file_storage import LocalFileStorage, locator_owner, owner_scope

router = APIRouter()


@router.get("/{locator:path}")
async def download_media(
    locator: str,
    auth: AuthContext = Depends(get_auth_context),
    storage: LocalFileStorage = Depends(get_file_storage),
):
    """Serve an uploaded file to the owner who stored it."""
    if locator_owner(locator) != owner_scope(auth.owner_id):
        raise HTTPException(status_code=404, detail="Media not found")
    try:
        path = storage.path_for(locator)
    except StorageError as exc:
        raise HTTPException(status_code=404, detail="Media not found") from exc
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Media not found")
    return FileResponse(path, filename=path.name.split("_", 2)[-1])
