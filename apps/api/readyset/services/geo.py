"""GeoJSON helpers.

Locations are stored as GeoJSON points (``[lng, lat]`` order) while the
API speaks ``[lat, lng]`` pairs and ``{lat, lng}`` objects.
"""

from __future__ import annotations

import json
from typing import Any


def point_geojson(lat: float, lng: float) -> dict[str, Any]:
    return {"type": "Point", "coordinates": [lng, lat]}


def parse_geojson(value: dict | str | None) -> dict[str, Any] | None:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return None
    if not isinstance(value, dict):
        return None
    return value


def geojson_to_lat_lng(value: dict | str | None) -> list[float] | None:
    """Reverse a GeoJSON point's ``[lng, lat]`` into ``[lat, lng]``."""
    geojson = parse_geojson(value)
    if geojson is None:
        return None
    coordinates = geojson.get("coordinates")
    if not isinstance(coordinates, (list, tuple)) or len(coordinates) < 2:
        return None
    return list(reversed(coordinates))


def lat_lng_pair(lat: float | None, lng: float | None) -> list[float] | None:
    if lat is None or lng is None:
        return None
    return [lat, lng]


def join_address(*parts: str | None) -> str:
    return ", ".join(part for part in parts if part)
