"""Cached document-store readiness verdict.

State machine: unknown -> checking -> ready | unready. The first probe's
verdict is trusted until ``reset()``; callers arriving while a probe is in
flight wait for it instead of starting another.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy.exc import InterfaceError, OperationalError

from config import settings
from services.errors import StorageError

logger = logging.getLogger(__name__)

UNREACHABLE_ERRORS = (asyncio.TimeoutError, ConnectionError, OSError, OperationalError, InterfaceError)


class StoreHealthState(str, Enum):
    UNKNOWN = "unknown"
    CHECKING = "checking"
    READY = "ready"
    UNREADY = "unready"


class StoreHealth:
    def __init__(self, timeout_seconds: Optional[float] = None):
        self.timeout_seconds = float(timeout_seconds or settings.STORE_HEALTH_TIMEOUT_SECONDS)
        self.state = StoreHealthState.UNKNOWN
        self.last_error: Optional[str] = None
        self.checked_at: Optional[datetime] = None
        self._lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self.state == StoreHealthState.READY

    async def check(self, probe: Callable[[], Awaitable[Any]]) -> bool:
        if self.state == StoreHealthState.READY:
            return True
        if self.state == StoreHealthState.UNREADY:
            return False

        async with self._lock:
            if self.state in (StoreHealthState.READY, StoreHealthState.UNREADY):
                return self.is_ready
            self.state = StoreHealthState.CHECKING
            try:
                await asyncio.wait_for(probe(), timeout=self.timeout_seconds)
            except UNREACHABLE_ERRORS as exc:
                self.state = StoreHealthState.UNREADY
                self.last_error = f"{exc.__class__.__name__}: {exc}"
                logger.warning("store_health_unready error=%s", self.last_error)
            except Exception as exc:
                # The store answered (e.g. permission denied), so it exists.
                self.state = StoreHealthState.READY
                self.last_error = f"{exc.__class__.__name__}: {exc}"
                logger.info("store_health_ready_with_error error=%s", self.last_error)
            else:
                self.state = StoreHealthState.READY
                self.last_error = None
            self.checked_at = datetime.now(timezone.utc)
            return self.is_ready

    async def ensure_ready(self, probe: Callable[[], Awaitable[Any]]) -> None:
        if not await self.check(probe):
            raise StorageError("Document store is not reachable. Check the database configuration and retry.")

    def reset(self) -> None:
        self.state = StoreHealthState.UNKNOWN
        self.last_error = None
        self.checked_at = None

    def snapshot(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "last_error": self.last_error,
            "checked_at": self.checked_at.isoformat() if self.checked_at else None,
        }
