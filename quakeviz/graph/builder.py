"""Graph builder — constructs the fetch-cluster-cache topology.

Topology:

    START → fetch_events → cluster_events
               ├── "cache"   → populate_cache → END
               └── "abandon" → END

The graph is compiled once per orchestrator and invoked once per cache miss.
"""

from __future__ import annotations

from langgraph.graph import END, START, StateGraph

from quakeviz.core.assembler import ClusterAssembler
from quakeviz.feed.client import FeedClient
from quakeviz.graph.nodes import (
    check_cancelled,
    make_cluster_events,
    make_fetch_events,
    make_populate_cache,
)
from quakeviz.graph.state import PipelineState
from quakeviz.store.result_cache import ExpiringResultCache


def build_pipeline_graph(
    feed: FeedClient,
    assembler: ClusterAssembler,
    cache: ExpiringResultCache,
    include_depth: bool = False,
):
    """Construct and compile the pipeline graph.

    Returns:
        A compiled LangGraph application.
    """
    graph = StateGraph(PipelineState)

    # ── Register nodes ───────────────────────────────────────────────────
    graph.add_node("fetch_events", make_fetch_events(feed))
    graph.add_node("cluster_events", make_cluster_events(assembler, include_depth))
    graph.add_node("populate_cache", make_populate_cache(cache))

    # ── Edges ────────────────────────────────────────────────────────────
    graph.add_edge(START, "fetch_events")
    graph.add_edge("fetch_events", "cluster_events")
    graph.add_conditional_edges(
        "cluster_events",
        check_cancelled,
        {
            "cache": "populate_cache",
            "abandon": END,
        },
    )
    graph.add_edge("populate_cache", END)

    return graph.compile()
