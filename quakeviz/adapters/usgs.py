"""UsgsFeatureAdapter — translates USGS GeoJSON summary features.

Expected raw format (one entry of the ``features`` array):
{
    "type": "Feature",
    "id": "ak0241ihuy7n",
    "properties": {
        "mag": 1.8,
        "place": "27 km NW of Anchor Point, Alaska",
        "time": 1728000000000,
        "url": "https://earthquake.usgs.gov/earthquakes/eventpage/ak0241ihuy7n"
    },
    "geometry": {"type": "Point", "coordinates": [-152.1, 59.9, 62.3]}
}

Coordinates are ordered longitude, latitude, depth (km).
"""

from __future__ import annotations

from typing import Any

from quakeviz.adapters.base import FeatureAdapter
from quakeviz.domain.event import EventRecord
from quakeviz.foundation.clock import from_epoch_millis


class UsgsFeatureAdapter(FeatureAdapter):
    """Maps USGS GeoJSON features to canonical EventRecords."""

    @property
    def source_name(self) -> str:
        return "usgs_geojson"

    def can_handle(self, raw: dict[str, Any]) -> bool:
        return (
            raw.get("type") == "Feature"
            and isinstance(raw.get("properties"), dict)
            and isinstance(raw.get("geometry"), dict)
        )

    def adapt(self, raw: dict[str, Any]) -> EventRecord:
        event_id = raw.get("id")
        if not event_id:
            raise ValueError("usgs feature missing 'id'")

        props = raw.get("properties") or {}
        magnitude = props.get("mag")
        if magnitude is None:
            raise ValueError(f"usgs feature {event_id} missing 'mag'")

        origin_millis = props.get("time")
        if origin_millis is None:
            raise ValueError(f"usgs feature {event_id} missing 'time'")

        coords = (raw.get("geometry") or {}).get("coordinates")
        if not isinstance(coords, (list, tuple)) or len(coords) < 3:
            raise ValueError(f"usgs feature {event_id} has incomplete coordinates")

        # Null or non-numeric values surface as TypeError; out-of-range
        # timestamps as OverflowError or OSError.
        try:
            longitude, latitude, depth = (float(value) for value in coords[:3])
            origin = from_epoch_millis(origin_millis)
            magnitude = float(magnitude)
        except (TypeError, OverflowError, OSError) as exc:
            raise ValueError(f"usgs feature {event_id} has malformed values: {exc}") from exc

        return EventRecord.model_validate({
            "event_id": str(event_id),
            "magnitude": magnitude,
            "depth": depth,
            "latitude": latitude,
            "longitude": longitude,
            "time": origin,
            "place": props.get("place"),
            "url": props.get("url"),
        })
