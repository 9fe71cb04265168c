"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from shapely.geometry import MultiPoint

from ..models.domain import Coordinate

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    return haversine_km(a[0], a[1], b[0], b[1]) * 1000.0


def expanded_bounds(points: Sequence[Coordinate], margin_deg: float) -> tuple[float, float, float, float]:
    """Return (south, west, north, east) of the points, grown by ``margin_deg`` on each side."""

    if not points:
        raise ValueError("At least one point is required to compute bounds.")
    min_lng, min_lat, max_lng, max_lat = MultiPoint([(lng, lat) for lat, lng in points]).bounds
    return (min_lat - margin_deg, min_lng - margin_deg, max_lat + margin_deg, max_lng + margin_deg)


def nearest_vertex(
    polyline: Sequence[Coordinate],
    point: Coordinate,
    *,
    start: int = 0,
    stride: int = 1,
) -> tuple[int, float]:
    """Index of the polyline vertex closest to ``point`` and its distance in degrees.

    Only vertices at ``start``, ``start + stride``, ... are considered. Distances
    are planar in degrees, which is adequate at the small tolerances used for
    matching. Returns ``(-1, inf)`` when there is nothing to search.
    """

    if start >= len(polyline):
        return -1, math.inf
    vertices = np.asarray(polyline[start::stride], dtype=float)
    if vertices.size == 0:
        return -1, math.inf
    deltas = vertices - np.asarray(point, dtype=float)
    distances = np.hypot(deltas[:, 0], deltas[:, 1])
    best = int(np.argmin(distances))
    return start + best * stride, float(distances[best])


def is_point_near_polyline(point: Coordinate, polyline: Sequence[Coordinate], threshold_deg: float) -> bool:
    """True if some vertex of the polyline lies within ``threshold_deg`` of the point.

    Large polylines (over 2000 vertices) are sampled every 5th vertex.
    """

    stride = 5 if len(polyline) > 2000 else 1
    _, distance = nearest_vertex(polyline, point, stride=stride)
    return distance < threshold_deg
