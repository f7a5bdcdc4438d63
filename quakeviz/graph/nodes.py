"""LangGraph nodes for the fetch-cluster-cache run.

Each node:
    - Receives the full PipelineState
    - Returns a partial dict update
    - Records its stage on the run handle before doing any work

Only fetch_events performs I/O.  cluster_events is synchronous; LangGraph
runs it in an executor so the event loop stays free.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from quakeviz.adapters.vector import to_vectors
from quakeviz.core.assembler import ClusterAssembler
from quakeviz.domain.enums import PipelineStage
from quakeviz.domain.period import cache_ttl
from quakeviz.feed.client import FeedClient
from quakeviz.graph.state import PipelineState
from quakeviz.store.result_cache import ExpiringResultCache

logger = logging.getLogger(__name__)

AsyncNode = Callable[[PipelineState], Awaitable[dict]]


# ── 1. fetch_events ─────────────────────────────────────────────────────────

def make_fetch_events(feed: FeedClient) -> AsyncNode:
    async def fetch_events(state: PipelineState) -> dict:
        state["run"].advance(PipelineStage.FETCHING)
        records = await feed.fetch(state["period"], state["magnitude"])
        return {"records": records}

    return fetch_events


# ── 2. cluster_events ───────────────────────────────────────────────────────

def make_cluster_events(
    assembler: ClusterAssembler,
    include_depth: bool = False,
) -> Callable[[PipelineState], dict]:
    def cluster_events(state: PipelineState) -> dict:
        state["run"].advance(PipelineStage.CLUSTERING)
        vectors = to_vectors(state.get("records", []), include_depth=include_depth)
        elements = assembler.assemble(vectors, state["seed"])
        return {"elements": elements}

    return cluster_events


# ── 3. check_cancelled (conditional edge) ───────────────────────────────────

def check_cancelled(state: PipelineState) -> str:
    """Route abandoned runs past the cache write."""
    if state["run"].cancelled:
        logger.info(
            "Run for period %s was abandoned; discarding %d cluster(s)",
            state["period"].value, len(state.get("elements", [])),
        )
        return "abandon"
    return "cache"


# ── 4. populate_cache ───────────────────────────────────────────────────────

def make_populate_cache(cache: ExpiringResultCache) -> AsyncNode:
    async def populate_cache(state: PipelineState) -> dict:
        run = state["run"]
        if run.cancelled:
            return {"cached": False}
        run.advance(PipelineStage.CACHING)
        period = state["period"]
        await cache.put(period, state["elements"], cache_ttl(period))
        return {"cached": True}

    return populate_cache
