"""EventVector — the clustering-facing view of an EventRecord.

A vector exposes a memoized signature and a fixed, ordered list of numeric
dimensions.  The dimension layout is chosen once per deployment:

    EventVector           (magnitude,)
    MagnitudeDepthVector  (magnitude, depth)

The wrapped record is never mutated; the only state a vector owns is its
memoized signature.
"""

from __future__ import annotations

from typing import Iterable

from quakeviz.domain.errors import UnsupportedDimensionError
from quakeviz.domain.event import EventRecord


class EventVector:
    """Magnitude-only view of an event."""

    __slots__ = ("record", "_signature")

    _DIMENSIONS: tuple[str, ...] = ("magnitude",)

    def __init__(self, record: EventRecord) -> None:
        self.record = record
        self._signature: str | None = None

    def signature(self) -> str:
        """Stable identity derived from location, depth and magnitude."""
        if self._signature is None:
            rec = self.record
            self._signature = (
                f"{rec.latitude:f}-{rec.longitude:f}-{rec.depth:f}-{rec.magnitude:f}"
            )
        return self._signature

    def dimension_count(self) -> int:
        return len(self._DIMENSIONS)

    def dimension(self, index: int) -> float:
        if not 0 <= index < len(self._DIMENSIONS):
            raise UnsupportedDimensionError(index, len(self._DIMENSIONS))
        return float(getattr(self.record, self._DIMENSIONS[index]))

    def features(self) -> tuple[float, ...]:
        return tuple(self.dimension(i) for i in range(self.dimension_count()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.record.event_id!r})"


class MagnitudeDepthVector(EventVector):
    """Magnitude and depth view of an event."""

    __slots__ = ()

    _DIMENSIONS = ("magnitude", "depth")


def to_vectors(records: Iterable[EventRecord], include_depth: bool = False) -> list[EventVector]:
    """Wrap every record of one fetch in the deployment's vector type."""
    vector_cls = MagnitudeDepthVector if include_depth else EventVector
    return [vector_cls(rec) for rec in records]
