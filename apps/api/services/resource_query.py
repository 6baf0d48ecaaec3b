"""In-memory filtering over an already fetched resource list."""

from __future__ import annotations

from typing import Iterable, List, Optional

from services.resource_schema import ResourceRecord


def _normalize_term(term: Optional[str]) -> str:
    return str(term or "").strip().lower()


def matches_term(resource: ResourceRecord, term: Optional[str]) -> bool:
    """Case-insensitive substring match on title, any tag, or notes."""
    needle = _normalize_term(term)
    if not needle:
        return True
    if needle in (resource.title or "").lower():
        return True
    if any(needle in tag.lower() for tag in resource.tags or []):
        return True
    return needle in (resource.notes or "").lower()


def filter_resources(
    resources: Iterable[ResourceRecord],
    resource_type: Optional[str] = None,
    term: Optional[str] = None,
) -> List[ResourceRecord]:
    """Narrow by exact type, then by search term, preserving input order."""
    items = list(resources)
    if resource_type:
        items = [item for item in items if item.type == resource_type]
    if _normalize_term(term):
        items = [item for item in items if matches_term(item, term)]
    return items
