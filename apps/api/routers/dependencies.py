"""Shared FastAPI dependencies for resource and media routes."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import get_db
from models.user import User
from services.document_store import SqlDocumentStore
from services.file_storage import FileStorage, LocalFileStorage
from services.resource_store import ResourceStore
from services.store_health import StoreHealth
from services.url_preview import UrlPreviewFetcher


def get_file_storage() -> FileStorage:
    return LocalFileStorage()


def get_preview_fetcher() -> UrlPreviewFetcher:
    return UrlPreviewFetcher()


def get_store_health(request: Request) -> StoreHealth:
    """Readiness verdict scoped to the running application instance."""
    health = getattr(request.app.state, "store_health", None)
    if health is None:
        health = StoreHealth()
        request.app.state.store_health = health
    return health


async def get_resource_store(
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
    fetcher: UrlPreviewFetcher = Depends(get_preview_fetcher),
    health: StoreHealth = Depends(get_store_health),
) -> ResourceStore:
    return ResourceStore(
        documents=SqlDocumentStore(db),
        storage=storage,
        fetcher=fetcher,
        health=health,
    )


async def ensure_owner(db: AsyncSession, owner_id: str) -> User:
    """Make sure the owner row exists before writing resources that reference it."""
    result = await db.execute(select(User).where(User.id == owner_id))
    user = result.scalar_one_or_none()
    if user:
        return user
    user = User(id=owner_id, email=f"{owner_id}@local.invalid")
    db.add(user)
    await db.commit()
    return user
