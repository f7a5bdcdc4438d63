"""Controlled enumerations for the quakeviz domain.

Values match the names the USGS summary feeds use in their URLs
(``{magnitude}_{period}.geojson``).
"""

from __future__ import annotations

from enum import Enum


class Period(str, Enum):
    """Recency window used both as a feed parameter and a cache key."""

    PAST_HOUR = "hour"
    PAST_DAY = "day"
    PAST_7_DAYS = "week"
    PAST_30_DAYS = "month"

    @property
    def label(self) -> str:
        return _PERIOD_LABELS[self]


_PERIOD_LABELS = {
    Period.PAST_HOUR: "hour",
    Period.PAST_DAY: "day",
    Period.PAST_7_DAYS: "7 days",
    Period.PAST_30_DAYS: "30 days",
}


class MagnitudeFilter(str, Enum):
    """Minimum-magnitude selection offered by the upstream feed."""

    ALL = "all"
    M1_0 = "1.0"
    M2_5 = "2.5"
    M4_5 = "4.5"
    SIGNIFICANT = "significant"


class PipelineStage(str, Enum):
    """Lifecycle of one fetch-cluster-cache run."""

    IDLE = "idle"
    FETCHING = "fetching"
    CLUSTERING = "clustering"
    CACHING = "caching"
    DONE = "done"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
