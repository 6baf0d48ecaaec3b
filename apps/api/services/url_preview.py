"""Link preview metadata for resource URLs."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Sequence
from urllib.parse import urljoin, urlsplit

import httpx
from bs4 import BeautifulSoup

from config import settings
from services.errors import FetchDegraded
from services.fetch_channels import FetchChannel, build_default_channels
from services.preview_classifier import (
    classify,
    extract_youtube_video_id,
    normalize_fetch_url,
    youtube_embed_url,
    youtube_thumbnail_url,
)
from services.resource_schema import PreviewRecord, ResourceRecord

logger = logging.getLogger(__name__)

TITLE_KEYS = ("og:title", "twitter:title", "title")
DESCRIPTION_KEYS = ("og:description", "twitter:description", "description")
IMAGE_KEYS = ("og:image", "twitter:image", "image")
META_ATTRIBUTES = ("property", "name", "itemprop")


def link_fallback(url: str) -> PreviewRecord:
    return PreviewRecord(type="link", title="Link", description="Visit link", image=None, url=url)


def _meta_content(soup: BeautifulSoup, key: str) -> Optional[str]:
    for attribute in META_ATTRIBUTES:
        tag = soup.find("meta", attrs={attribute: key})
        if tag is None:
            continue
        content = str(tag.get("content") or "").strip()
        if content:
            return content
    return None


def _first_meta(soup: BeautifulSoup, keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = _meta_content(soup, key)
        if value:
            return value
    return None


def resolve_image_url(image: str, source_url: str) -> Optional[str]:
    """Absolute image URL, resolving relative paths against the source origin."""
    candidate = str(image or "").strip()
    if not candidate:
        return None
    if candidate.lower().startswith(("http://", "https://")):
        return candidate
    try:
        parts = urlsplit(source_url)
        if not parts.scheme or not parts.netloc:
            return None
        resolved = urljoin(f"{parts.scheme}://{parts.netloc}/", candidate)
    except ValueError:
        return None
    if not resolved.lower().startswith(("http://", "https://")):
        return None
    return resolved


def parse_preview_html(html: str, source_url: str) -> Optional[Dict[str, Any]]:
    """Extract title/description/image from page HTML.

    Returns None when the page carries none of them, so the caller can try
    the next channel.
    """
    soup = BeautifulSoup(html or "", "html.parser")

    title = _first_meta(soup, TITLE_KEYS)
    if not title and soup.title is not None:
        title = soup.title.get_text(strip=True) or None
    description = _first_meta(soup, DESCRIPTION_KEYS)
    raw_image = _first_meta(soup, IMAGE_KEYS)

    if not (title or description or raw_image):
        return None
    return {
        "title": title or "Article",
        "description": description or "Read more",
        "image": resolve_image_url(raw_image, source_url) if raw_image else None,
    }


class UrlPreviewFetcher:
    """Builds PreviewRecords, walking fetch channels in order for generic pages."""

    def __init__(
        self,
        channels: Optional[Sequence[FetchChannel]] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.channels = list(channels) if channels is not None else build_default_channels()
        self.timeout_seconds = float(timeout_seconds or settings.PREVIEW_FETCH_TIMEOUT_SECONDS)
        self.transport = transport

    async def fetch(self, url: str) -> PreviewRecord:
        kind = classify(url)

        if kind in ("youtube", "youtube-short"):
            video_id = extract_youtube_video_id(url)
            if video_id:
                return PreviewRecord(
                    type=kind,
                    title="YouTube Video",
                    description="Watch on YouTube",
                    image=youtube_thumbnail_url(video_id),
                    video_id=video_id,
                    embed_url=youtube_embed_url(video_id),
                    url=url,
                )
        if kind == "instagram-reel":
            return PreviewRecord(
                type="instagram-reel",
                title="Instagram Reel",
                description="View on Instagram",
                image=None,
                url=url,
            )
        if kind == "tiktok":
            return PreviewRecord(
                type="tiktok",
                title="TikTok Video",
                description="Watch on TikTok",
                image=None,
                url=url,
            )
        if kind == "article":
            record = await self._fetch_article(url)
            if record is not None:
                return record

        logger.info("url_preview_fallback kind=link url=%s", url)
        return link_fallback(url)

    async def _fetch_article(self, url: str) -> Optional[PreviewRecord]:
        target = normalize_fetch_url(url)
        if target is None or not self.channels:
            return None

        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": settings.PREVIEW_USER_AGENT},
            transport=self.transport,
        ) as client:
            for channel in self.channels:
                try:
                    html = await asyncio.wait_for(channel.fetch(target, client), timeout=self.timeout_seconds)
                except FetchDegraded as exc:
                    logger.warning("url_preview_channel_failed channel=%s url=%s reason=%s", exc.channel, url, exc.reason)
                    continue
                except asyncio.TimeoutError:
                    logger.warning("url_preview_channel_timeout channel=%s url=%s", channel.name, url)
                    continue

                try:
                    metadata = parse_preview_html(html, target)
                except Exception as exc:
                    logger.warning("url_preview_parse_failed channel=%s url=%s: %s", channel.name, url, exc)
                    continue
                if metadata is None:
                    logger.info("url_preview_channel_empty channel=%s url=%s", channel.name, url)
                    continue

                logger.info("url_preview_fetched channel=%s url=%s", channel.name, url)
                return PreviewRecord(type="article", url=url, **metadata)
        return None


async def fetch_url_metadata(url: str, fetcher: Optional[UrlPreviewFetcher] = None) -> PreviewRecord:
    """Best-effort preview for ``url``; network failures degrade to a link preview."""
    return await (fetcher or UrlPreviewFetcher()).fetch(url)


async def get_resource_preview(
    resource: ResourceRecord,
    fetcher: Optional[UrlPreviewFetcher] = None,
) -> Optional[PreviewRecord]:
    """Preview for display, preferring the resource's own title and notes."""
    if not resource.url:
        return None
    metadata = await fetch_url_metadata(resource.url, fetcher)
    return metadata.model_copy(
        update={
            "title": resource.title or metadata.title,
            "description": resource.notes or metadata.description,
        }
    )
