"""Document-store contract and its SQLAlchemy implementation."""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.resource import Resource
from models.user import User
from services.errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)

DEFAULT_COLLECTIONS = {
    "resources": Resource,
    "users": User,
}


class DocumentStore(ABC):
    """Minimal document store: CRUD plus equality-only queries.

    No ordering capability is part of the contract; callers sort in memory.
    """

    @abstractmethod
    async def insert(self, collection: str, document: Mapping[str, Any]) -> str:
        raise NotImplementedError

    @abstractmethod
    async def get(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    async def update(self, collection: str, document_id: str, patch: Mapping[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    async def remove(self, collection: str, document_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def query_by_equality(self, collection: str, predicates: Mapping[str, Any]) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> None:
        """Round-trip to the backing store; raises when it is unreachable."""
        raise NotImplementedError


class SqlDocumentStore(DocumentStore):
    """Maps collections onto ORM models and documents onto column dicts."""

    def __init__(self, db: AsyncSession, collections: Optional[Mapping[str, Any]] = None):
        self.db = db
        self.collections = dict(collections or DEFAULT_COLLECTIONS)

    def _model(self, collection: str) -> Any:
        model = self.collections.get(collection)
        if model is None:
            raise StorageError(f"Unknown collection: {collection}")
        return model

    def _columns(self, model: Any) -> List[str]:
        return [column.key for column in model.__table__.columns]

    def _to_document(self, model: Any, row: Any) -> Dict[str, Any]:
        return {key: getattr(row, key) for key in self._columns(model)}

    def _checked_fields(self, model: Any, fields: Mapping[str, Any]) -> Dict[str, Any]:
        allowed = set(self._columns(model))
        unknown = sorted(set(fields) - allowed)
        if unknown:
            raise StorageError(f"Unknown fields for {model.__tablename__}: {', '.join(unknown)}")
        return dict(fields)

    async def _load(self, model: Any, document_id: str) -> Any:
        result = await self.db.execute(select(model).where(model.id == document_id))
        return result.scalar_one_or_none()

    async def _commit(self, action: str, collection: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StorageError(f"Document store {action} failed for {collection}: {exc}") from exc

    async def insert(self, collection: str, document: Mapping[str, Any]) -> str:
        model = self._model(collection)
        fields = self._checked_fields(model, document)
        fields["id"] = str(fields.get("id") or uuid.uuid4())
        self.db.add(model(**fields))
        await self._commit("insert", collection)
        return fields["id"]

    async def get(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        model = self._model(collection)
        try:
            row = await self._load(model, document_id)
        except SQLAlchemyError as exc:
            raise StorageError(f"Document store read failed for {collection}: {exc}") from exc
        return self._to_document(model, row) if row is not None else None

    async def update(self, collection: str, document_id: str, patch: Mapping[str, Any]) -> None:
        model = self._model(collection)
        fields = self._checked_fields(model, patch)
        fields.pop("id", None)
        try:
            row = await self._load(model, document_id)
        except SQLAlchemyError as exc:
            raise StorageError(f"Document store read failed for {collection}: {exc}") from exc
        if row is None:
            raise NotFoundError(f"{collection}/{document_id} not found")
        for key, value in fields.items():
            setattr(row, key, value)
        await self._commit("update", collection)

    async def remove(self, collection: str, document_id: str) -> None:
        model = self._model(collection)
        try:
            row = await self._load(model, document_id)
        except SQLAlchemyError as exc:
            raise StorageError(f"Document store read failed for {collection}: {exc}") from exc
        if row is None:
            raise NotFoundError(f"{collection}/{document_id} not found")
        await self.db.delete(row)
        await self._commit("remove", collection)

    async def query_by_equality(self, collection: str, predicates: Mapping[str, Any]) -> List[Dict[str, Any]]:
        model = self._model(collection)
        fields = self._checked_fields(model, predicates)
        statement = select(model).where(*[getattr(model, key) == value for key, value in fields.items()])
        try:
            result = await self.db.execute(statement)
        except SQLAlchemyError as exc:
            raise StorageError(f"Document store query failed for {collection}: {exc}") from exc
        return [self._to_document(model, row) for row in result.scalars().all()]

    async def ping(self) -> None:
        await self.db.execute(text("SELECT 1"))
