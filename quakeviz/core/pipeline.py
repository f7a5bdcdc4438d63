"""Bounded Pipeline Orchestrator — cache lookup plus a deadline-bounded miss path.

Lifecycle of one miss:

    IDLE → FETCHING → CLUSTERING → CACHING → DONE
      └──────────────┴─────────────┴──→ TIMED_OUT | FAILED

Design notes:
    - Cache hits return immediately and never start a run.
    - A miss starts one run (the compiled pipeline graph) as its own task.
      Concurrent misses for the same period join that task instead of
      starting another, and share its deadline.
    - The deadline is absolute, fixed when the run starts.  When it
      elapses the run is cancelled and abandoned; the cache write is
      skipped for cancelled runs, so a late result never reaches the cache.
    - Fetch and clustering errors propagate unchanged.  Nothing is cached
      and nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from quakeviz.core.assembler import ClusterAssembler
from quakeviz.domain.cluster import DumpElement
from quakeviz.domain.enums import MagnitudeFilter, Period, PipelineStage
from quakeviz.domain.errors import PipelineTimeoutError
from quakeviz.feed.client import FeedClient
from quakeviz.graph.builder import build_pipeline_graph
from quakeviz.graph.state import PipelineRun
from quakeviz.store.result_cache import ExpiringResultCache

logger = logging.getLogger(__name__)


class PipelineStats:
    """Orchestrator counters for observability."""

    __slots__ = ("runs", "cache_hits", "cache_misses", "joined", "timeouts", "failures")

    def __init__(self) -> None:
        self.runs: int = 0
        self.cache_hits: int = 0
        self.cache_misses: int = 0
        self.joined: int = 0
        self.timeouts: int = 0
        self.failures: int = 0

    def to_dict(self) -> dict:
        return {
            "runs": self.runs,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "joined": self.joined,
            "timeouts": self.timeouts,
            "failures": self.failures,
        }


class PipelineOrchestrator:
    """Serves clustered events per period from cache or a bounded run.

    Args:
        feed: Upstream event source.
        cache: Shared result cache.
        seed: Process-wide seed for clustering and color allocation.
        assembler: Cluster assembler (defaults to an 8-cluster cap).
        deadline: Maximum wall time for one miss path.
        include_depth: Cluster on (magnitude, depth) instead of magnitude.
        magnitude: Feed magnitude filter.
    """

    def __init__(
        self,
        feed: FeedClient,
        cache: ExpiringResultCache,
        seed: int,
        assembler: ClusterAssembler | None = None,
        deadline: timedelta = timedelta(seconds=30),
        include_depth: bool = False,
        magnitude: MagnitudeFilter = MagnitudeFilter.ALL,
    ) -> None:
        if deadline <= timedelta(0):
            raise ValueError("deadline must be positive")

        self._cache = cache
        self._seed = seed
        self._deadline = deadline
        self._magnitude = magnitude
        self._graph = build_pipeline_graph(
            feed,
            assembler or ClusterAssembler(),
            cache,
            include_depth=include_depth,
        )
        self._inflight: dict[Period, tuple[asyncio.Task, PipelineRun]] = {}
        self._stats = PipelineStats()

    # ── Public API ───────────────────────────────────────────────────────

    async def lookup(self, period: Period) -> list[DumpElement]:
        """Return the clustered events for *period*.

        Raises:
            FeedError: The feed failed.
            ClusteringError: The clustering step failed.
            PipelineTimeoutError: The run did not finish within the deadline.
        """
        cached = await self._cache.get(period)
        if cached is not None:
            self._stats.cache_hits += 1
            return cached

        self._stats.cache_misses += 1
        inflight = self._inflight.get(period)
        if inflight is None:
            task, run = self._start(period)
        else:
            task, run = inflight
            self._stats.joined += 1
            logger.debug("Joining in-flight run for period %s", period.value)

        remaining = run.deadline - asyncio.get_running_loop().time()
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout=max(remaining, 0.0))
        except asyncio.TimeoutError:
            self._abandon(task, run)
            raise PipelineTimeoutError(period, self._deadline.total_seconds()) from None
        except asyncio.CancelledError:
            # The shared run was abandoned by another waiter whose timer
            # fired first.  A cancellation aimed at this caller propagates.
            current = asyncio.current_task()
            if run.cancelled and current is not None and not current.cancelling():
                raise PipelineTimeoutError(period, self._deadline.total_seconds()) from None
            raise

    @property
    def stats(self) -> dict:
        return self._stats.to_dict()

    @property
    def inflight_periods(self) -> list[str]:
        return [period.value for period in self._inflight]

    # ── Internals ────────────────────────────────────────────────────────

    def _start(self, period: Period) -> tuple[asyncio.Task, PipelineRun]:
        loop = asyncio.get_running_loop()
        run = PipelineRun(period, loop.time() + self._deadline.total_seconds())
        task = asyncio.create_task(self._execute(run))
        self._inflight[period] = (task, run)
        task.add_done_callback(lambda _t: self._forget(period, task))
        self._stats.runs += 1
        logger.info("Cache miss for period %s; starting run", period.value)
        return task, run

    async def _execute(self, run: PipelineRun) -> list[DumpElement]:
        try:
            final_state = await self._graph.ainvoke({
                "run": run,
                "period": run.period,
                "magnitude": self._magnitude,
                "seed": self._seed,
            })
        except Exception as exc:
            run.advance(PipelineStage.FAILED)
            self._stats.failures += 1
            logger.warning(
                "Run for period %s failed: %s", run.period.value, exc,
            )
            raise

        if not run.cancelled:
            run.advance(PipelineStage.DONE)
        return final_state.get("elements", [])

    def _abandon(self, task: asyncio.Task, run: PipelineRun) -> None:
        if run.cancelled:
            return
        logger.warning(
            "Run for period %s timed out during %s after %s",
            run.period.value, run.stage.value, self._deadline,
        )
        run.cancel()
        run.advance(PipelineStage.TIMED_OUT)
        self._stats.timeouts += 1
        task.cancel()
        self._forget(run.period, task)

    def _forget(self, period: Period, task: asyncio.Task) -> None:
        current = self._inflight.get(period)
        if current is not None and current[0] is task:
            del self._inflight[period]
