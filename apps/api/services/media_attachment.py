"""Decides a resource's media fields for a create or update."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from config import settings
from services.file_storage import FileStorage, build_upload_path
from services.resource_schema import PreviewRecord, ResourceRecord, UploadedFile
from services.url_preview import UrlPreviewFetcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MediaResolution:
    """New ``(media_url, url_preview)`` pair; at most one is set.

    ``pending_release`` names the replaced upload; the caller releases it only
    once the record write has succeeded. ``uploaded_media_url`` is set when
    this resolution stored a new file.
    """

    media_url: Optional[str]
    url_preview: Optional[PreviewRecord]
    pending_release: Optional[str] = None
    uploaded_media_url: Optional[str] = None


async def fetch_preview_safely(
    url: str,
    fetcher: UrlPreviewFetcher,
    timeout_seconds: Optional[float] = None,
) -> Optional[PreviewRecord]:
    """Preview for ``url`` or None; never fails the surrounding mutation."""
    bound = float(timeout_seconds or settings.PREVIEW_TOTAL_TIMEOUT_SECONDS)
    try:
        return await asyncio.wait_for(fetcher.fetch(url), timeout=bound)
    except asyncio.TimeoutError:
        logger.warning("url_preview_degraded url=%s reason=timeout after %.1fs", url, bound)
    except Exception as exc:
        logger.warning("url_preview_degraded url=%s reason=%s", url, exc)
    return None


async def resolve_media_attachment(
    *,
    owner_id: str,
    url: Optional[str],
    file: Optional[UploadedFile],
    storage: FileStorage,
    fetcher: UrlPreviewFetcher,
    prior: Optional[ResourceRecord] = None,
    preview_timeout_seconds: Optional[float] = None,
) -> MediaResolution:
    """Resolve media state for a create (``prior`` is None) or an update.

    An uploaded file always wins over a derived preview. Storage errors on
    the new upload propagate. The replaced upload is never deleted here.
    """
    if file is not None:
        locator = await storage.put(
            build_upload_path(owner_id, file.filename),
            file.content,
            file.content_type,
        )
        return MediaResolution(
            media_url=locator,
            url_preview=None,
            pending_release=prior.media_url if prior is not None and prior.media_url else None,
            uploaded_media_url=locator,
        )

    if prior is not None and prior.media_url:
        return MediaResolution(media_url=prior.media_url, url_preview=None)

    if url and (prior is None or url != prior.url):
        preview = await fetch_preview_safely(url, fetcher, preview_timeout_seconds)
        return MediaResolution(media_url=None, url_preview=preview)

    if prior is not None and url and url == prior.url:
        return MediaResolution(media_url=None, url_preview=prior.url_preview)

    return MediaResolution(media_url=None, url_preview=None)
