"""Upstream event-feed client.

The pipeline depends only on the FeedClient protocol.  UsgsFeedClient is
the production implementation: it downloads a USGS GeoJSON summary feed
and runs each feature through UsgsFeatureAdapter.

Malformed individual features are skipped with a warning.  A transport
failure, a non-2xx status or a malformed document raises FeedError.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from quakeviz.adapters.base import FeatureAdapter
from quakeviz.adapters.usgs import UsgsFeatureAdapter
from quakeviz.domain.enums import MagnitudeFilter, Period
from quakeviz.domain.errors import FeedError
from quakeviz.domain.event import EventRecord

logger = logging.getLogger(__name__)


class FeedClient(Protocol):
    """Protocol for anything that can list recent events."""

    async def fetch(self, period: Period, magnitude: MagnitudeFilter) -> list[EventRecord]:
        """Return the events of *period* at or above *magnitude*."""
        ...


class UsgsFeedClient:
    """Async client for the USGS earthquake summary feeds.

    Args:
        base_url: Root of the summary feed directory.
        timeout: Per-request timeout in seconds.
        client: Optional pre-built httpx.AsyncClient (used by tests).
        adapter: Translator from raw features to EventRecords.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 20.0,
        client: httpx.AsyncClient | None = None,
        adapter: FeatureAdapter | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._adapter = adapter or UsgsFeatureAdapter()

    def feed_url(self, period: Period, magnitude: MagnitudeFilter) -> str:
        return f"{self._base_url}/{magnitude.value}_{period.value}.geojson"

    async def fetch(self, period: Period, magnitude: MagnitudeFilter) -> list[EventRecord]:
        url = self.feed_url(period, magnitude)
        logger.info("Fetching feed %s", url)
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            document = response.json()
        except httpx.HTTPStatusError as exc:
            raise FeedError(
                f"{url} returned HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise FeedError(f"{url}: {exc}") from exc
        except ValueError as exc:
            raise FeedError(f"{url} returned invalid JSON: {exc}") from exc

        return self._parse(document, url)

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Internals ────────────────────────────────────────────────────────

    def _parse(self, document: Any, url: str) -> list[EventRecord]:
        if not isinstance(document, dict) or not isinstance(document.get("features"), list):
            raise FeedError(f"{url} returned a document without a 'features' list")

        records: list[EventRecord] = []
        skipped = 0
        for raw in document["features"]:
            if not isinstance(raw, dict) or not self._adapter.can_handle(raw):
                skipped += 1
                continue
            try:
                records.append(self._adapter.adapt(raw))
            except ValueError as exc:
                skipped += 1
                logger.warning("Adapter '%s' rejected feature: %s", self._adapter.source_name, exc)

        if skipped:
            logger.warning("Skipped %d malformed feature(s) from %s", skipped, url)
        logger.info("Fetched %d event(s) from %s", len(records), url)
        return records
