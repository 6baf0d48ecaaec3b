"""Closed record shapes for vault resources and their link previews."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from services.errors import ValidationError

ResourceType = Literal["article", "video", "photo", "note"]
PreviewKind = Literal["youtube", "youtube-short", "article", "instagram-reel", "tiktok", "link"]

RESOURCE_TYPES = ("article", "video", "photo", "note")
PREVIEW_KINDS = ("youtube", "youtube-short", "article", "instagram-reel", "tiktok", "link")
DEFAULT_RESOURCE_TYPE = "article"


def _normalize_text(value: Any) -> str:
    return str(value or "").strip()


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_tags(value: Any) -> List[str]:
    """Split/trim tags, keeping insertion order and duplicates."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [tag for tag in (_normalize_text(item) for item in value) if tag]


def normalize_url(value: Any) -> Optional[str]:
    text = _normalize_text(value)
    return text or None


class PreviewRecord(BaseModel):
    """Derived display metadata for a resource URL."""

    type: PreviewKind
    title: str
    description: str
    image: Optional[str] = None
    url: str
    video_id: Optional[str] = None
    embed_url: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        data = self.model_dump()
        for key in ("video_id", "embed_url"):
            if data[key] is None:
                data.pop(key)
        return data


class ResourceDraft(BaseModel):
    """Validated payload for a resource create."""

    title: str
    url: Optional[str] = None
    type: ResourceType = DEFAULT_RESOURCE_TYPE
    tags: List[str] = Field(default_factory=list)
    notes: str = ""
    reminder_date: Optional[datetime] = None

    @field_validator("title", mode="before")
    @classmethod
    def _title_required(cls, value: Any) -> str:
        title = _normalize_text(value)
        if not title:
            raise ValueError("title is required")
        return title

    @field_validator("url", mode="before")
    @classmethod
    def _blank_url_is_none(cls, value: Any) -> Optional[str]:
        return normalize_url(value)

    @field_validator("type", mode="before")
    @classmethod
    def _default_type(cls, value: Any) -> str:
        return _normalize_text(value) or DEFAULT_RESOURCE_TYPE

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: Any) -> List[str]:
        return normalize_tags(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _notes_text(cls, value: Any) -> str:
        return str(value or "")

    @field_validator("reminder_date")
    @classmethod
    def _reminder_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class ResourcePatch(BaseModel):
    """Partial update; only fields that were explicitly set are merged."""

    title: Optional[str] = None
    url: Optional[str] = None
    type: Optional[ResourceType] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None
    reminder_date: Optional[datetime] = None

    @field_validator("title", mode="before")
    @classmethod
    def _title_not_blank(cls, value: Any) -> str:
        title = _normalize_text(value)
        if not title:
            raise ValueError("title cannot be empty")
        return title

    @field_validator("url", mode="before")
    @classmethod
    def _blank_url_is_none(cls, value: Any) -> Optional[str]:
        return normalize_url(value)

    @field_validator("type", mode="before")
    @classmethod
    def _type_not_blank(cls, value: Any) -> str:
        resource_type = _normalize_text(value)
        if not resource_type:
            raise ValueError("type cannot be empty")
        return resource_type

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: Any) -> List[str]:
        return normalize_tags(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _notes_text(cls, value: Any) -> str:
        return str(value or "")

    @field_validator("reminder_date")
    @classmethod
    def _reminder_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    def changes(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


class ResourceRecord(BaseModel):
    """Persisted resource as returned by the store adapter."""

    id: str
    user_id: str
    title: str
    url: Optional[str] = None
    type: ResourceType = DEFAULT_RESOURCE_TYPE
    tags: List[str] = Field(default_factory=list)
    notes: str = ""
    media_url: Optional[str] = None
    url_preview: Optional[PreviewRecord] = None
    reminder_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_list(cls, value: Any) -> List[str]:
        return list(value or [])

    @field_validator("notes", mode="before")
    @classmethod
    def _notes_text(cls, value: Any) -> str:
        return str(value or "")

    @field_validator("created_at", "updated_at", "reminder_date")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "ResourceRecord":
        return cls.model_validate(document)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "url": self.url,
            "type": self.type,
            "tags": list(self.tags),
            "notes": self.notes,
            "media_url": self.media_url,
            "url_preview": self.url_preview.to_document() if self.url_preview else None,
            "reminder_date": self.reminder_date.isoformat() if self.reminder_date else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class UploadedFile:
    """File bytes supplied with a create or update request."""

    filename: str
    content: bytes
    content_type: Optional[str] = None


def _first_error_message(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid resource payload"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "payload"
    message = str(first.get("msg", "invalid value"))
    return f"{field}: {message.removeprefix('Value error, ')}"


def parse_draft(data: Dict[str, Any]) -> ResourceDraft:
    """Validate create data, raising the vault ValidationError on failure."""
    try:
        return ResourceDraft.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(_first_error_message(exc)) from exc


def parse_patch(data: Dict[str, Any]) -> ResourcePatch:
    """Validate update data, raising the vault ValidationError on failure."""
    try:
        return ResourcePatch.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(_first_error_message(exc)) from exc
