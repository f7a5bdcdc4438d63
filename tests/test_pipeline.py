"""Tests for the Bounded Pipeline Orchestrator and its stage graph.

The feed is replaced by in-memory doubles that count calls, block on an
event, or fail, so the whole fetch-cluster-cache path runs offline.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from quakeviz.core.assembler import ClusterAssembler
from quakeviz.core.palette import MAPBOX_COLORS
from quakeviz.core.pipeline import PipelineOrchestrator
from quakeviz.domain.enums import MagnitudeFilter, Period, PipelineStage
from quakeviz.domain.errors import ClusteringError, FeedError, PipelineTimeoutError
from quakeviz.domain.event import EventRecord
from quakeviz.graph.nodes import check_cancelled, make_populate_cache
from quakeviz.graph.state import PipelineRun
from quakeviz.store.result_cache import ExpiringResultCache

from tests.test_event import _event

_SEED = 20260101


# ── Feed doubles ─────────────────────────────────────────────────────────────


class CountingFeed:
    """Returns a fixed record list and records every call."""

    def __init__(self, records: list[EventRecord]) -> None:
        self.records = records
        self.calls: list[tuple[Period, MagnitudeFilter]] = []

    async def fetch(self, period: Period, magnitude: MagnitudeFilter) -> list[EventRecord]:
        self.calls.append((period, magnitude))
        return list(self.records)


class GatedFeed(CountingFeed):
    """Blocks every fetch until the gate is opened."""

    def __init__(self, records: list[EventRecord]) -> None:
        super().__init__(records)
        self.gate = asyncio.Event()

    async def fetch(self, period: Period, magnitude: MagnitudeFilter) -> list[EventRecord]:
        self.calls.append((period, magnitude))
        await self.gate.wait()
        return list(self.records)


class FailingFeed:
    def __init__(self) -> None:
        self.error = FeedError("upstream unreachable")

    async def fetch(self, period: Period, magnitude: MagnitudeFilter) -> list[EventRecord]:
        raise self.error


class BrokenAssembler(ClusterAssembler):
    def __init__(self, error: Exception) -> None:
        super().__init__()
        self.error = error

    def assemble(self, vectors, seed):
        raise self.error


def _sixteen_events() -> list[EventRecord]:
    step = 5.0 / 15
    return [_event(magnitude=round(1.0 + i * step, 3)) for i in range(16)]


def _orchestrator(feed, cache=None, deadline=timedelta(seconds=5), **kw) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        feed=feed,
        cache=cache or ExpiringResultCache(),
        seed=_SEED,
        deadline=deadline,
        **kw,
    )


# ── Happy path ───────────────────────────────────────────────────────────────


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_sixteen_events_cluster_and_cache(self) -> None:
        feed = CountingFeed(_sixteen_events())
        cache = ExpiringResultCache()
        orchestrator = _orchestrator(feed, cache)

        elements = await orchestrator.lookup(Period.PAST_DAY)

        assert 1 <= len(elements) <= 8
        colors = [elem.color for elem in elements]
        assert len(set(colors)) == len(colors)
        assert set(colors) <= set(MAPBOX_COLORS)
        for elem in elements:
            assert elem.points
            mags = [p.magnitude for p in elem.points]
            assert min(mags) <= elem.centroid.magnitude <= max(mags)
        assert sum(len(elem.points) for elem in elements) == 16
        assert await cache.get(Period.PAST_DAY) == elements

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(self) -> None:
        feed = CountingFeed(_sixteen_events())
        orchestrator = _orchestrator(feed)

        first = await orchestrator.lookup(Period.PAST_DAY)
        second = await orchestrator.lookup(Period.PAST_DAY)

        assert second == first
        assert len(feed.calls) == 1
        assert orchestrator.stats["cache_hits"] == 1
        assert orchestrator.stats["cache_misses"] == 1

    @pytest.mark.asyncio
    async def test_feed_receives_period_and_match_all_filter(self) -> None:
        feed = CountingFeed(_sixteen_events())
        await _orchestrator(feed).lookup(Period.PAST_30_DAYS)
        assert feed.calls == [(Period.PAST_30_DAYS, MagnitudeFilter.ALL)]

    @pytest.mark.asyncio
    async def test_periods_are_cached_independently(self) -> None:
        feed = CountingFeed(_sixteen_events())
        orchestrator = _orchestrator(feed)
        await orchestrator.lookup(Period.PAST_DAY)
        await orchestrator.lookup(Period.PAST_HOUR)
        assert len(feed.calls) == 2

    @pytest.mark.asyncio
    async def test_empty_feed_is_cached_as_empty(self) -> None:
        feed = CountingFeed([])
        orchestrator = _orchestrator(feed)
        assert await orchestrator.lookup(Period.PAST_HOUR) == []
        assert await orchestrator.lookup(Period.PAST_HOUR) == []
        assert len(feed.calls) == 1

    @pytest.mark.asyncio
    async def test_single_event_yields_one_cluster(self) -> None:
        event = _event(magnitude=4.2)
        elements = await _orchestrator(CountingFeed([event])).lookup(Period.PAST_HOUR)
        assert len(elements) == 1
        assert elements[0].centroid == event

    @pytest.mark.asyncio
    async def test_depth_variant(self) -> None:
        events = [_event(magnitude=3.0, depth=d) for d in (5.0, 6.0, 7.0, 300.0, 310.0, 320.0)]
        orchestrator = _orchestrator(CountingFeed(events), include_depth=True)
        elements = await orchestrator.lookup(Period.PAST_DAY)
        assert len(elements) >= 2
        for elem in elements:
            shallow = {p.depth < 100.0 for p in elem.points}
            assert len(shallow) == 1


# ── Failure paths ────────────────────────────────────────────────────────────


class TestFailures:
    @pytest.mark.asyncio
    async def test_feed_error_propagates_unchanged(self) -> None:
        feed = FailingFeed()
        cache = ExpiringResultCache()
        orchestrator = _orchestrator(feed, cache)

        with pytest.raises(FeedError) as exc_info:
            await orchestrator.lookup(Period.PAST_DAY)

        assert exc_info.value is feed.error
        assert await cache.get(Period.PAST_DAY) is None
        assert orchestrator.stats["failures"] == 1
        assert orchestrator.inflight_periods == []

    @pytest.mark.asyncio
    async def test_clustering_error_propagates_unchanged(self) -> None:
        error = ClusteringError("bad k")
        cache = ExpiringResultCache()
        orchestrator = _orchestrator(
            CountingFeed(_sixteen_events()), cache, assembler=BrokenAssembler(error),
        )

        with pytest.raises(ClusteringError) as exc_info:
            await orchestrator.lookup(Period.PAST_7_DAYS)

        assert exc_info.value is error
        assert await cache.get(Period.PAST_7_DAYS) is None

    @pytest.mark.asyncio
    async def test_failure_is_not_cached_and_next_call_retries(self) -> None:
        feed = FailingFeed()
        orchestrator = _orchestrator(feed)
        for _ in range(2):
            with pytest.raises(FeedError):
                await orchestrator.lookup(Period.PAST_DAY)
        assert orchestrator.stats["runs"] == 2

    def test_deadline_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            _orchestrator(CountingFeed([]), deadline=timedelta(0))


# ── Deadline ─────────────────────────────────────────────────────────────────


class TestTimeout:
    @pytest.mark.asyncio
    async def test_hanging_feed_times_out_without_caching(self) -> None:
        feed = GatedFeed(_sixteen_events())
        cache = ExpiringResultCache()
        orchestrator = _orchestrator(feed, cache, deadline=timedelta(milliseconds=50))

        with pytest.raises(PipelineTimeoutError) as exc_info:
            await orchestrator.lookup(Period.PAST_DAY)

        assert exc_info.value.period == Period.PAST_DAY
        assert await cache.get(Period.PAST_DAY) is None
        assert orchestrator.stats["timeouts"] == 1
        assert orchestrator.inflight_periods == []

    @pytest.mark.asyncio
    async def test_late_result_never_reaches_cache(self) -> None:
        feed = GatedFeed(_sixteen_events())
        cache = ExpiringResultCache()
        orchestrator = _orchestrator(feed, cache, deadline=timedelta(milliseconds=50))

        with pytest.raises(PipelineTimeoutError):
            await orchestrator.lookup(Period.PAST_DAY)

        feed.gate.set()
        await asyncio.sleep(0.05)
        assert await cache.get(Period.PAST_DAY) is None

    @pytest.mark.asyncio
    async def test_timeout_is_distinct_from_feed_error(self) -> None:
        orchestrator = _orchestrator(GatedFeed([]), deadline=timedelta(milliseconds=20))
        with pytest.raises(PipelineTimeoutError) as exc_info:
            await orchestrator.lookup(Period.PAST_HOUR)
        assert not isinstance(exc_info.value, FeedError)

    @pytest.mark.asyncio
    async def test_new_request_after_timeout_starts_fresh_run(self) -> None:
        feed = GatedFeed(_sixteen_events())
        orchestrator = _orchestrator(feed, deadline=timedelta(milliseconds=50))
        with pytest.raises(PipelineTimeoutError):
            await orchestrator.lookup(Period.PAST_DAY)

        feed.gate.set()
        elements = await orchestrator.lookup(Period.PAST_DAY)
        assert elements
        assert len(feed.calls) == 2


# ── Single-flight ────────────────────────────────────────────────────────────


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_run(self) -> None:
        feed = GatedFeed(_sixteen_events())
        orchestrator = _orchestrator(feed)

        first = asyncio.create_task(orchestrator.lookup(Period.PAST_DAY))
        second = asyncio.create_task(orchestrator.lookup(Period.PAST_DAY))
        await asyncio.sleep(0.01)
        assert orchestrator.inflight_periods == ["day"]
        feed.gate.set()

        a, b = await asyncio.gather(first, second)
        assert a is b
        assert len(feed.calls) == 1
        assert orchestrator.stats["runs"] == 1
        assert orchestrator.stats["joined"] == 1

    @pytest.mark.asyncio
    async def test_different_periods_run_separately(self) -> None:
        feed = GatedFeed(_sixteen_events())
        orchestrator = _orchestrator(feed)

        tasks = [
            asyncio.create_task(orchestrator.lookup(Period.PAST_DAY)),
            asyncio.create_task(orchestrator.lookup(Period.PAST_HOUR)),
        ]
        await asyncio.sleep(0.01)
        feed.gate.set()
        await asyncio.gather(*tasks)
        assert len(feed.calls) == 2

    @pytest.mark.asyncio
    async def test_abandoned_run_times_out_every_waiter(self) -> None:
        feed = GatedFeed(_sixteen_events())
        cache = ExpiringResultCache()
        orchestrator = _orchestrator(feed, cache)

        waiters = [asyncio.create_task(orchestrator.lookup(Period.PAST_DAY)) for _ in range(2)]
        await asyncio.sleep(0.01)
        task, run = orchestrator._inflight[Period.PAST_DAY]
        orchestrator._abandon(task, run)

        results = await asyncio.gather(*waiters, return_exceptions=True)
        assert all(isinstance(result, PipelineTimeoutError) for result in results)
        assert orchestrator.stats["timeouts"] == 1
        assert orchestrator.inflight_periods == []
        assert await cache.get(Period.PAST_DAY) is None

    @pytest.mark.asyncio
    async def test_cancelled_waiter_leaves_shared_run_running(self) -> None:
        feed = GatedFeed(_sixteen_events())
        orchestrator = _orchestrator(feed)

        leaving = asyncio.create_task(orchestrator.lookup(Period.PAST_DAY))
        staying = asyncio.create_task(orchestrator.lookup(Period.PAST_DAY))
        await asyncio.sleep(0.01)
        leaving.cancel()
        with pytest.raises(asyncio.CancelledError):
            await leaving

        feed.gate.set()
        assert await staying
        assert orchestrator.stats["timeouts"] == 0


# ── Graph nodes ──────────────────────────────────────────────────────────────


class TestCancellationGuard:
    def test_check_cancelled_routes_live_run_to_cache(self) -> None:
        run = PipelineRun(Period.PAST_DAY, deadline=0.0)
        assert check_cancelled({"run": run, "period": Period.PAST_DAY}) == "cache"

    def test_check_cancelled_routes_abandoned_run_to_end(self) -> None:
        run = PipelineRun(Period.PAST_DAY, deadline=0.0)
        run.cancel()
        assert check_cancelled({"run": run, "period": Period.PAST_DAY, "elements": []}) == "abandon"

    @pytest.mark.asyncio
    async def test_populate_cache_skips_cancelled_run(self) -> None:
        cache = ExpiringResultCache()
        run = PipelineRun(Period.PAST_DAY, deadline=0.0)
        run.cancel()
        update = await make_populate_cache(cache)({
            "run": run,
            "period": Period.PAST_DAY,
            "elements": [],
        })
        assert update == {"cached": False}
        assert await cache.get(Period.PAST_DAY) is None

    @pytest.mark.asyncio
    async def test_populate_cache_writes_live_run(self) -> None:
        cache = ExpiringResultCache()
        run = PipelineRun(Period.PAST_HOUR, deadline=0.0)
        elements: list = []
        update = await make_populate_cache(cache)({
            "run": run,
            "period": Period.PAST_HOUR,
            "elements": elements,
        })
        assert update == {"cached": True}
        assert run.stage == PipelineStage.CACHING
        assert await cache.get(Period.PAST_HOUR) is elements
