"""In-memory result cache keyed by recency period, with lazy expiry.

Design notes:
    - An asyncio.Lock guards every read and write, so concurrent request
      handlers never observe a half-replaced entry.
    - At most one entry exists per period.  put() replaces it wholesale.
    - Expiry is checked at get() time.  There is no eviction task.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

from quakeviz.domain.cluster import DumpElement
from quakeviz.domain.enums import Period
from quakeviz.foundation.clock import utc_now

logger = logging.getLogger(__name__)


class CacheEntry:
    """A cluster list and the instant after which it is stale."""

    __slots__ = ("elements", "expires_at")

    def __init__(self, elements: list[DumpElement], expires_at: datetime) -> None:
        self.elements = elements
        self.expires_at = expires_at

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class ExpiringResultCache:
    """Async-safe store of the latest clustered result per period."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._entries: dict[Period, CacheEntry] = {}

    # ── Public API ───────────────────────────────────────────────────────

    async def get(self, period: Period) -> list[DumpElement] | None:
        """Return the live cluster list for *period*, or None on a miss."""
        async with self._lock:
            entry = self._entries.get(period)
            if entry is None:
                return None
            if entry.is_expired(utc_now()):
                del self._entries[period]
                logger.info("Cache entry for period %s expired", period.value)
                return None
            logger.debug("Cache hit for period %s", period.value)
            return entry.elements

    async def put(
        self,
        period: Period,
        elements: list[DumpElement],
        ttl: timedelta,
    ) -> CacheEntry:
        """Store *elements* for *period*, replacing any existing entry."""
        async with self._lock:
            entry = CacheEntry(elements, utc_now() + ttl)
            self._entries[period] = entry
            logger.info(
                "Performed cache set: period=%s clusters=%d ttl=%s",
                period.value, len(elements), ttl,
            )
            return entry

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    async def summary(self) -> dict[str, dict]:
        """Per-period view of live entries for observability endpoints."""
        async with self._lock:
            now = utc_now()
            return {
                period.value: {
                    "clusters": len(entry.elements),
                    "expires_at": entry.expires_at.isoformat(),
                }
                for period, entry in self._entries.items()
                if not entry.is_expired(now)
            }
