"""REST endpoint for the clustered earthquake visualization.

Path: GET /visual?dur=<duration>

Resolves the requested duration to a feed period, asks the orchestrator
for the clustered events, then builds the render payload: clusters sorted
by centroid magnitude and a color -> magnitude legend.  Any pipeline
failure becomes a 400 with the error message as detail.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from quakeviz.core.pipeline import PipelineOrchestrator
from quakeviz.domain.cluster import DumpElement, RenderPayload
from quakeviz.domain.enums import Period
from quakeviz.domain.errors import PipelineError
from quakeviz.domain.period import DEFAULT_PERIOD, resolve_period

logger = logging.getLogger(__name__)


def build_render_payload(period: Period, elements: list[DumpElement]) -> RenderPayload:
    """Sort clusters ascending by centroid magnitude and derive the legend."""
    legend = {elem.color: elem.centroid.magnitude for elem in elements}
    ordered = sorted(elements, key=lambda elem: elem.centroid.magnitude)
    return RenderPayload(
        period=f"Earthquakes in the past {period.label}",
        elements=ordered,
        legend=legend,
    )


def create_visual_router(
    orchestrator: PipelineOrchestrator,
    default_period: Period = DEFAULT_PERIOD,
) -> APIRouter:
    """Factory that wires the visualization endpoint to an orchestrator."""

    router = APIRouter(tags=["visual"])

    @router.get("/visual", response_model=RenderPayload)
    async def visualize(
        dur: Optional[str] = Query(default=None, description="Lookback duration, e.g. 2h or 10d"),
    ) -> RenderPayload:
        period = resolve_period(dur, default=default_period)
        try:
            elements = await orchestrator.lookup(period)
        except PipelineError as exc:
            logger.warning("Visualization for period %s failed: %s", period.value, exc)
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        return build_render_payload(period, elements)

    return router
