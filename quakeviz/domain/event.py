"""Canonical EventRecord model — one seismic observation from the feed.

Records are validated once at the feed boundary and are immutable
afterwards.  Nothing downstream mutates them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class EventRecord(BaseModel):
    """A single earthquake as reported by the upstream feed."""

    event_id: str = Field(..., min_length=1, description="Feed-assigned unique identifier")
    magnitude: float = Field(..., description="Reported magnitude")
    depth: float = Field(..., description="Hypocentre depth in kilometres")
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    time: datetime = Field(..., description="Origin time (UTC-aware)")
    place: Optional[str] = Field(default=None, description="Human-readable location")
    url: Optional[str] = Field(default=None, description="Event detail page")

    model_config = {"frozen": True}

    @field_validator("time")
    @classmethod
    def time_must_be_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        return v
