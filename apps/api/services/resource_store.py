"""Resource persistence: CRUD, media resolution and owner listings."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from services.document_store import DocumentStore
from services.errors import NotFoundError, StorageError, ValidationError
from services.file_storage import FileStorage, release_media
from services.media_attachment import MediaResolution, resolve_media_attachment
from services.resource_query import filter_resources
from services.resource_schema import (
    RESOURCE_TYPES,
    ResourceDraft,
    ResourcePatch,
    ResourceRecord,
    UploadedFile,
    parse_draft,
    parse_patch,
)
from services.store_health import StoreHealth
from services.url_preview import UrlPreviewFetcher

logger = logging.getLogger(__name__)

RESOURCES_COLLECTION = "resources"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def sort_newest_first(records: Iterable[ResourceRecord]) -> List[ResourceRecord]:
    """Order by ``created_at`` descending; equal timestamps fall back to id ascending."""
    by_id = sorted(records, key=lambda record: record.id)
    return sorted(by_id, key=lambda record: record.created_at, reverse=True)


def _media_fields(resolution: MediaResolution) -> Dict[str, Any]:
    return {
        "media_url": resolution.media_url,
        "url_preview": resolution.url_preview.to_document() if resolution.url_preview else None,
    }


class ResourceStore:
    """Adapter between callers and the document store.

    Listings filter remotely by equality only and sort in memory, so the
    backing store never needs a composite (owner, created_at) index. Keep it
    that way: adding an ``order_by`` to the query would reintroduce that
    requirement.
    """

    def __init__(
        self,
        documents: DocumentStore,
        storage: FileStorage,
        fetcher: Optional[UrlPreviewFetcher] = None,
        health: Optional[StoreHealth] = None,
        clock: Optional[Callable[[], datetime]] = None,
        preview_timeout_seconds: Optional[float] = None,
    ):
        self.documents = documents
        self.storage = storage
        self.fetcher = fetcher or UrlPreviewFetcher()
        self.health = health
        self.clock = clock or _utc_now
        self.preview_timeout_seconds = preview_timeout_seconds

    async def _ensure_ready(self) -> None:
        if self.health is not None:
            await self.health.ensure_ready(self.documents.ping)

    @staticmethod
    def _require_owner(owner_id: Optional[str]) -> str:
        owner = str(owner_id or "").strip()
        if not owner:
            raise ValidationError("owner id is required")
        return owner

    async def create(
        self,
        data: Union[ResourceDraft, Mapping[str, Any]],
        owner_id: str,
        file: Optional[UploadedFile] = None,
    ) -> str:
        owner = self._require_owner(owner_id)
        draft = data if isinstance(data, ResourceDraft) else parse_draft(dict(data))
        await self._ensure_ready()

        resolution = await resolve_media_attachment(
            owner_id=owner,
            url=draft.url,
            file=file,
            storage=self.storage,
            fetcher=self.fetcher,
            preview_timeout_seconds=self.preview_timeout_seconds,
        )
        now = self.clock()
        document = {
            "user_id": owner,
            "title": draft.title,
            "url": draft.url,
            "type": draft.type,
            "tags": list(draft.tags),
            "notes": draft.notes,
            "reminder_date": draft.reminder_date,
            "created_at": now,
            "updated_at": now,
            **_media_fields(resolution),
        }
        try:
            resource_id = await self.documents.insert(RESOURCES_COLLECTION, document)
        except StorageError:
            await release_media(self.storage, resolution.uploaded_media_url)
            raise

        logger.info(
            "resource_create user=%s resource=%s type=%s media=%s preview=%s",
            owner,
            resource_id,
            draft.type,
            bool(resolution.media_url),
            resolution.url_preview.type if resolution.url_preview else None,
        )
        return resource_id

    async def read(self, resource_id: str, owner_id: Optional[str] = None) -> Optional[ResourceRecord]:
        document = await self.documents.get(RESOURCES_COLLECTION, resource_id)
        if document is None:
            return None
        record = ResourceRecord.from_document(document)
        if owner_id is not None and record.user_id != owner_id:
            return None
        return record

    async def _require(self, resource_id: str, owner_id: Optional[str]) -> ResourceRecord:
        record = await self.read(resource_id, owner_id)
        if record is None:
            raise NotFoundError("Resource not found")
        return record

    async def update(
        self,
        resource_id: str,
        patch: Union[ResourcePatch, Mapping[str, Any]],
        file: Optional[UploadedFile] = None,
        owner_id: Optional[str] = None,
    ) -> None:
        changes = (patch if isinstance(patch, ResourcePatch) else parse_patch(dict(patch))).changes()
        prior = await self._require(resource_id, owner_id)

        url = changes["url"] if "url" in changes else prior.url
        resolution = await resolve_media_attachment(
            owner_id=prior.user_id,
            url=url,
            file=file,
            storage=self.storage,
            fetcher=self.fetcher,
            prior=prior,
            preview_timeout_seconds=self.preview_timeout_seconds,
        )
        update_document = {
            **changes,
            **_media_fields(resolution),
            "updated_at": self.clock(),
        }
        try:
            await self.documents.update(RESOURCES_COLLECTION, resource_id, update_document)
        except (StorageError, NotFoundError):
            await release_media(self.storage, resolution.uploaded_media_url)
            raise
        await release_media(self.storage, resolution.pending_release)

        logger.info(
            "resource_update resource=%s fields=%s media=%s preview=%s",
            resource_id,
            ",".join(sorted(changes)) or "-",
            bool(resolution.media_url),
            resolution.url_preview.type if resolution.url_preview else None,
        )

    async def delete(self, resource_id: str, owner_id: Optional[str] = None) -> None:
        prior = await self._require(resource_id, owner_id)
        await release_media(self.storage, prior.media_url)
        await self.documents.remove(RESOURCES_COLLECTION, resource_id)
        logger.info("resource_delete user=%s resource=%s", prior.user_id, resource_id)

    async def _query(self, predicates: Dict[str, Any]) -> List[ResourceRecord]:
        await self._ensure_ready()
        documents = await self.documents.query_by_equality(RESOURCES_COLLECTION, predicates)
        return sort_newest_first(ResourceRecord.from_document(document) for document in documents)

    async def list_by_owner(self, owner_id: str) -> List[ResourceRecord]:
        return await self._query({"user_id": self._require_owner(owner_id)})

    async def list_by_owner_and_type(self, owner_id: str, resource_type: str) -> List[ResourceRecord]:
        owner = self._require_owner(owner_id)
        if resource_type not in RESOURCE_TYPES:
            raise ValidationError(f"type must be one of: {', '.join(RESOURCE_TYPES)}")
        return await self._query({"user_id": owner, "type": resource_type})

    async def search(self, owner_id: str, term: str) -> List[ResourceRecord]:
        return filter_resources(await self.list_by_owner(owner_id), term=term)
