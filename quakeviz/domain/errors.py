"""Error taxonomy for the fetch-cluster-cache pipeline.

Everything the request handler may see derives from PipelineError.
UnsupportedDimensionError sits outside that hierarchy: it marks a programming
defect, not a runtime condition to report to clients.
"""

from __future__ import annotations

from quakeviz.domain.enums import Period


class PipelineError(Exception):
    """Base class for failures surfaced by the pipeline."""


class FeedError(PipelineError):
    """The upstream feed was unreachable or returned malformed data."""

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"feed request failed: {reason}")


class ClusteringError(PipelineError):
    """The clustering primitive rejected its input or failed internally."""


class PipelineTimeoutError(PipelineError):
    """The global deadline elapsed before the run completed."""

    def __init__(self, period: Period, deadline_seconds: float) -> None:
        self.period = period
        self.deadline_seconds = deadline_seconds
        super().__init__(
            f"timed out after {deadline_seconds:g}s fetching the past {period.label}"
        )


class UnsupportedDimensionError(IndexError):
    """A vector was asked for a dimension it does not expose."""

    def __init__(self, index: int, dimension_count: int) -> None:
        self.index = index
        self.dimension_count = dimension_count
        super().__init__(
            f"dimension {index} not supported (vector has {dimension_count})"
        )
