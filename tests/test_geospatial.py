import math

import pytest

from routeplanner.services.geospatial import (
    expanded_bounds,
    haversine_km,
    is_point_near_polyline,
    nearest_vertex,
)


def test_haversine_one_degree_of_latitude() -> None:
    assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.19, abs=0.01)


def test_expanded_bounds_adds_margin_on_every_side() -> None:
    south, west, north, east = expanded_bounds([(-23.0, -47.0), (-22.0, -46.0)], 0.05)

    assert (south, west, north, east) == pytest.approx((-23.05, -47.05, -21.95, -45.95))


def test_nearest_vertex_searches_forward_only() -> None:
    polyline = [(0.0, 0.0), (0.0, 1.0), (0.0, 2.0), (0.0, 1.0), (0.0, 0.0)]

    assert nearest_vertex(polyline, (0.0, 0.0)) == (0, 0.0)
    assert nearest_vertex(polyline, (0.0, 0.0), start=1) == (4, 0.0)
    index, distance = nearest_vertex(polyline, (0.0, 1.0), start=5)
    assert index == -1 and math.isinf(distance)


def test_point_near_polyline_uses_degree_threshold() -> None:
    polyline = [(0.0, i / 100) for i in range(101)]

    assert is_point_near_polyline((0.0005, 0.5), polyline, 0.001)
    assert not is_point_near_polyline((0.01, 0.5), polyline, 0.001)
