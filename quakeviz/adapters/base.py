"""Abstract base for feed adapters.

Feed adapters normalise raw payloads from an upstream seismic feed into
the canonical EventRecord model.

Architectural rules:
    1. Adapters must NOT mutate the incoming payload dict.
    2. adapt() must return a fully valid EventRecord or raise ValueError.
    3. No adapter performs I/O; fetching belongs to the feed client.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from quakeviz.domain.event import EventRecord


class FeatureAdapter(ABC):
    """Base class for converting raw feed entries into EventRecords."""

    @abstractmethod
    def can_handle(self, raw: dict[str, Any]) -> bool:
        """Return True if this adapter knows how to translate *raw*.

        Must be a fast, non-destructive check (e.g. key presence).
        """
        ...

    @abstractmethod
    def adapt(self, raw: dict[str, Any]) -> EventRecord:
        """Translate a raw feed entry into a validated EventRecord.

        The input dict must NOT be mutated.

        Raises:
            ValueError: If the entry cannot be normalised.
        """
        ...

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Human-readable name of the feed this adapter handles."""
        ...
