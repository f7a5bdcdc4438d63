"""PipelineState — the sole state object the pipeline graph reads and writes.

Every node receives the full state and returns a partial update.  Nodes
reach collaborators (feed, assembler, cache) only through the closures
their factories were built with.
"""

from __future__ import annotations

from typing import TypedDict

from quakeviz.domain.cluster import DumpElement
from quakeviz.domain.enums import MagnitudeFilter, Period, PipelineStage
from quakeviz.domain.event import EventRecord


class PipelineRun:
    """Mutable handle on one in-flight run, shared with its orchestrator.

    Doubles as the run's cancellation token: once cancel() has been called
    the run must not write to the cache.
    """

    __slots__ = ("period", "deadline", "stage", "_cancelled")

    def __init__(self, period: Period, deadline: float) -> None:
        self.period = period
        self.deadline = deadline
        self.stage = PipelineStage.IDLE
        self._cancelled = False

    def advance(self, stage: PipelineStage) -> None:
        self.stage = stage

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class PipelineState(TypedDict, total=False):
    """LangGraph state for one fetch-cluster-cache run.

    Fields:
        run: Handle carrying the stage and cancellation flag.
        period: Recency window being fetched (also the cache key).
        magnitude: Feed magnitude filter.
        seed: Shared process seed for clustering and coloring.
        records: Events returned by the feed.
        elements: Labeled clusters produced from *records*.
        cached: Whether populate_cache stored *elements*.
    """

    run: PipelineRun
    period: Period
    magnitude: MagnitudeFilter
    seed: int
    records: list[EventRecord]
    elements: list[DumpElement]
    cached: bool
