"""Clustered output models.

A DumpElement is created once per clustering run and never modified.  It
is owned by the cache entry or the response that produced it.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from quakeviz.domain.event import EventRecord


class DumpElement(BaseModel):
    """One labeled cluster: its representative event, members and color."""

    color: str = Field(..., description="Display color assigned to the cluster")
    centroid: EventRecord = Field(..., description="Representative event of the cluster")
    points: list[EventRecord] = Field(default_factory=list, description="Member events")

    model_config = {"frozen": True}


class RenderPayload(BaseModel):
    """What the visualization front end receives for one request."""

    period: str = Field(..., description="Human-readable period label")
    elements: list[DumpElement] = Field(default_factory=list)
    legend: dict[str, float] = Field(
        default_factory=dict,
        description="Cluster color -> centroid magnitude",
    )
