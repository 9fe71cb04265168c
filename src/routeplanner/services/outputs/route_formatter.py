"""Serializers for planned routes."""

from __future__ import annotations

from ...models.domain import OptimizedRoute, SurfaceType


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{round(meters)} m"
    return f"{meters / 1000:.1f} km"


def format_duration(seconds: float) -> str:
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    return f"{hours}h {minutes}m"


def route_summary(route: OptimizedRoute) -> dict:
    return {
        "stops": len(route.waypoints),
        "round_trip": route.round_trip,
        "total_distance_km": round(route.total_distance / 1000, 2),
        "total_duration_min": round(route.total_duration / 60, 1),
        "distance_label": format_distance(route.total_distance),
        "duration_label": format_duration(route.total_duration),
        "unpaved_distance_km": round(
            sum(segment.distance for segment in route.segments if segment.surface == SurfaceType.UNPAVED) / 1000, 2
        ),
        "toll_count": route.toll_count,
    }


def route_to_geojson(route: OptimizedRoute) -> dict:
    """FeatureCollection for map overlays: segment lines, stop points and toll points.

    GeoJSON positions are [lon, lat].
    """
    features: list[dict] = []
    for index, segment in enumerate(route.segments):
        if len(segment.coordinates) < 2:
            continue
        features.append(
            {
                "type": "Feature",
                "geometry": {
                    "type": "LineString",
                    "coordinates": [[lng, lat] for lat, lng in segment.coordinates],
                },
                "properties": {
                    "kind": "segment",
                    "index": index,
                    "surface": segment.surface.value,
                    "direction": segment.direction.value,
                    "distance_m": segment.distance,
                    "duration_s": segment.duration,
                },
            }
        )
    for sequence, stop in enumerate(route.waypoints):
        features.append(
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [stop.lng, stop.lat]},
                "properties": {
                    "kind": "stop",
                    "sequence": sequence,
                    "name": stop.name,
                    "client_id": stop.client_id,
                    "is_anchor": sequence == 0,
                },
            }
        )
    for toll in route.toll_details:
        features.append(
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [toll.lng, toll.lat]},
                "properties": {
                    "kind": "toll",
                    "name": toll.name,
                    "operator": toll.operator,
                    "nearby_location": toll.nearby_location,
                },
            }
        )
    return {"type": "FeatureCollection", "features": features}
