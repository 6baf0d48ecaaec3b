"""Fetch channels used to retrieve page HTML for link previews."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence
from urllib.parse import quote

import httpx

from config import settings
from services.errors import FetchDegraded

HTML_ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


class FetchChannel(ABC):
    """One mechanism for retrieving a remote page's HTML."""

    name: str

    @abstractmethod
    async def fetch(self, url: str, client: httpx.AsyncClient) -> str:
        """Return page HTML or raise FetchDegraded."""
        raise NotImplementedError

    async def _get(self, client: httpx.AsyncClient, request_url: str) -> httpx.Response:
        try:
            response = await client.get(request_url, headers={"Accept": HTML_ACCEPT_HEADER})
        except httpx.HTTPError as exc:
            raise FetchDegraded(self.name, f"request failed: {exc.__class__.__name__}") from exc
        if response.status_code < 200 or response.status_code >= 300:
            raise FetchDegraded(self.name, f"status {response.status_code}")
        return response


class DirectFetchChannel(FetchChannel):
    """Plain server-side GET of the target page."""

    name = "direct"

    async def fetch(self, url: str, client: httpx.AsyncClient) -> str:
        response = await self._get(client, url)
        content_type = response.headers.get("content-type", "").lower()
        if content_type and "html" not in content_type and "xml" not in content_type:
            raise FetchDegraded(self.name, f"unsupported content type {content_type}")
        return response.text


class AllOriginsChannel(FetchChannel):
    """Proxy that wraps the page in a JSON envelope: ``{"contents": "<html>"}``."""

    name = "allorigins"

    def __init__(self, endpoint: str):
        self.endpoint = endpoint

    async def fetch(self, url: str, client: httpx.AsyncClient) -> str:
        response = await self._get(client, f"{self.endpoint}?url={quote(url, safe='')}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchDegraded(self.name, "invalid JSON envelope") from exc
        contents = payload.get("contents") if isinstance(payload, dict) else None
        if not isinstance(contents, str):
            raise FetchDegraded(self.name, "missing contents")
        return contents


class CorsProxyChannel(FetchChannel):
    """Prefix-style proxy returning the raw page body."""

    name = "cors-proxy"

    def __init__(self, prefix: str):
        self.prefix = prefix

    async def fetch(self, url: str, client: httpx.AsyncClient) -> str:
        response = await self._get(client, f"{self.prefix}{url}")
        return response.text


def build_channel(name: str) -> Optional[FetchChannel]:
    key = str(name or "").strip().lower()
    if key == "direct":
        return DirectFetchChannel()
    if key == "allorigins":
        return AllOriginsChannel(settings.PREVIEW_ALLORIGINS_ENDPOINT)
    if key == "cors-proxy":
        return CorsProxyChannel(settings.PREVIEW_CORS_PROXY_PREFIX)
    return None


def build_default_channels(names: Optional[Sequence[str]] = None) -> List[FetchChannel]:
    """Channels in configured order; unknown names are skipped."""
    channels: List[FetchChannel] = []
    for name in names if names is not None else settings.PREVIEW_FETCH_CHANNELS:
        channel = build_channel(name)
        if channel is not None:
            channels.append(channel)
    return channels
