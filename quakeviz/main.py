"""quakeviz — clustered recent-earthquake service.

This is the application entry point.  It wires the feed client, the
result cache and the pipeline orchestrator into the HTTP routes.

Run with any ASGI server, e.g. ``uvicorn quakeviz.main:app``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from quakeviz.api.visual import create_visual_router
from quakeviz.config import settings
from quakeviz.core.assembler import ClusterAssembler
from quakeviz.core.pipeline import PipelineOrchestrator
from quakeviz.feed.client import UsgsFeedClient
from quakeviz.foundation.seed import new_seed
from quakeviz.store.result_cache import ExpiringResultCache

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

# ── State ────────────────────────────────────────────────────────────────────

seed = new_seed()
cache = ExpiringResultCache()
feed = UsgsFeedClient(settings.feed_base_url, timeout=settings.feed_timeout_seconds)

orchestrator = PipelineOrchestrator(
    feed=feed,
    cache=cache,
    seed=seed,
    assembler=ClusterAssembler(max_clusters=settings.max_clusters),
    deadline=timedelta(seconds=settings.pipeline_deadline_seconds),
    include_depth=settings.include_depth,
    magnitude=settings.feed_magnitude,
)

logger.info("Pipeline ready (seed=%d, include_depth=%s)", seed, settings.include_depth)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await feed.aclose()


# ── App ──────────────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.app_name,
    description="Recent earthquakes clustered by magnitude",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Routes ───────────────────────────────────────────────────────────────────

app.include_router(create_visual_router(orchestrator, default_period=settings.default_period))


# ── Health ───────────────────────────────────────────────────────────────────

@app.get("/health")
async def health() -> dict:
    return {
        "status": "ok",
        "cache": await cache.summary(),
        "inflight": orchestrator.inflight_periods,
        "pipeline": orchestrator.stats,
    }
