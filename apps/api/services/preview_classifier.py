"""Heuristic URL classification into preview kinds."""

from __future__ import annotations

import re
from typing import Optional, Tuple
from urllib.parse import urlsplit

from services.resource_schema import PreviewKind

YOUTUBE_HOSTS = {"youtube.com", "www.youtube.com", "youtu.be"}
YOUTUBE_THUMBNAIL_TEMPLATE = "https://img.youtube.com/vi/{video_id}/{quality}.jpg"
YOUTUBE_EMBED_TEMPLATE = "https://www.youtube.com/embed/{video_id}"

_ID = r"([A-Za-z0-9_-]{11})(?=$|[?&#/])"
YOUTUBE_ID_PATTERNS = [
    re.compile(r"[?&]v=" + _ID),
    re.compile(r"youtu\.be/" + _ID),
    re.compile(r"/(?:v|embed|shorts)/" + _ID),
    re.compile(r"/u/\w+/" + _ID),
]
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


def _split_url(url: str) -> Optional[Tuple[str, str, str]]:
    """Return (host, path, full) for a URL, tolerating a missing scheme."""
    text = str(url or "").strip()
    if not text or any(ch.isspace() for ch in text):
        return None
    if not _SCHEME_RE.match(text):
        text = f"https://{text}"
    try:
        parts = urlsplit(text)
        host = (parts.hostname or "").lower()
    except ValueError:
        return None
    if not host:
        return None
    return host, parts.path or "", text


def normalize_fetch_url(url: str) -> Optional[str]:
    """Absolute http(s) form of ``url`` suitable for fetching, or None."""
    split = _split_url(url)
    if split is None:
        return None
    _, _, full = split
    if not full.lower().startswith(("http://", "https://")):
        return None
    return full


def extract_youtube_video_id(url: str) -> Optional[str]:
    split = _split_url(url)
    if split is None:
        return None
    host, _, full = split
    if host not in YOUTUBE_HOSTS:
        return None
    for pattern in YOUTUBE_ID_PATTERNS:
        match = pattern.search(full)
        if match:
            return match.group(1)
    return None


def youtube_thumbnail_url(video_id: str, quality: str = "maxresdefault") -> str:
    return YOUTUBE_THUMBNAIL_TEMPLATE.format(video_id=video_id, quality=quality)


def youtube_embed_url(video_id: str) -> str:
    return YOUTUBE_EMBED_TEMPLATE.format(video_id=video_id)


def is_instagram_reel(host: str, path: str) -> bool:
    return (host == "instagram.com" or host.endswith(".instagram.com")) and "/reel/" in path


def classify(url: str) -> PreviewKind:
    """Classify a URL into a preview kind. Never raises.

    ``article`` only marks a fetch candidate; the metadata fetcher demotes it
    to ``link`` when no page metadata can be extracted.
    """
    try:
        split = _split_url(url)
        if split is None:
            return "link"
        host, path, full = split

        if host in YOUTUBE_HOSTS and extract_youtube_video_id(full):
            return "youtube-short" if "/shorts/" in path else "youtube"
        if is_instagram_reel(host, path):
            return "instagram-reel"
        if "tiktok.com" in host:
            return "tiktok"
        if normalize_fetch_url(full) is None:
            return "link"
        return "article"
    except Exception:
        return "link"
