"""Deep links that hand a planned route to external navigation apps.

Navigation apps accept an origin, a destination and a short waypoint list,
never a polyline. To make their router follow the planned streets, "ghost"
waypoints sampled from the route geometry are slipped in between the real
stops when the path matters (unpaved avoidance or round trips).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence
from urllib.parse import urlencode

from ...config import settings
from ...models.domain import Coordinate, Location, OptimizedRoute
from ..geospatial import nearest_vertex

logger = logging.getLogger(__name__)

GOOGLE_MAPS_DIRECTIONS_URL = "https://www.google.com/maps/dir/"
WAZE_URL = "https://waze.com/ul"
PLACEHOLDER_LINK = "#"

GHOST_POINTS_PER_LEG = settings.ghost_points_per_leg
STOP_MATCH_TOLERANCE_DEG = settings.stop_match_tolerance_deg
# legs shorter than this many polyline vertices are not worth sampling
MIN_GHOST_SPAN_VERTICES = 6


@dataclass(slots=True)
class NavigationWaypoints:
    origin: Coordinate
    destination: Coordinate
    waypoints: List[Coordinate] = field(default_factory=list)
    ghost_count: int = 0


def format_coordinate(coord: Coordinate) -> str:
    return f"{coord[0]:.6f},{coord[1]:.6f}"


def should_insert_ghosts(route: OptimizedRoute, avoid_unpaved: bool) -> bool:
    return avoid_unpaved or route.round_trip


def sample_ghost_indices(start: int, end: int, count: int, min_span: int = MIN_GHOST_SPAN_VERTICES) -> list[int]:
    """Up to ``count`` evenly spaced vertex indices strictly between ``start`` and ``end``."""
    span = end - start
    if count <= 0 or span < min_span:
        return []
    indices = {start + round(span * step / (count + 1)) for step in range(1, count + 1)}
    return sorted(index for index in indices if start < index < end)


def _match(path: Sequence[Coordinate], stop: Location, start: int, tolerance_deg: float) -> Optional[int]:
    index, distance = nearest_vertex(path, stop.original_coordinate, start=start)
    if index < 0 or distance > tolerance_deg:
        return None
    return index


def plan_navigation_waypoints(
    route: OptimizedRoute,
    avoid_unpaved: bool,
    *,
    ghosts_per_leg: int = GHOST_POINTS_PER_LEG,
    tolerance_deg: float = STOP_MATCH_TOLERANCE_DEG,
) -> NavigationWaypoints:
    """Origin, destination and waypoint list for a route, ghosts included.

    Stops are matched onto the route polyline in travel order, each search
    starting at the previous match. A stop that cannot be matched is passed
    through without ghosts for the leg that ends at it; the next leg starts
    from the closest vertex ahead of the previous match.
    """
    stops = route.waypoints
    anchor = stops[0]
    if route.round_trip:
        intermediates, final_stop = list(stops[1:]), anchor
    else:
        intermediates, final_stop = list(stops[1:-1]), stops[-1]

    plan = NavigationWaypoints(origin=anchor.original_coordinate, destination=final_stop.original_coordinate)

    if not should_insert_ghosts(route, avoid_unpaved) or ghosts_per_leg <= 0:
        plan.waypoints = [stop.original_coordinate for stop in intermediates]
        return plan

    path = route.path()
    previous = _match(path, anchor, 0, tolerance_deg)
    search_from = previous or 0
    leg_ends = [*intermediates, final_stop]
    for position, stop in enumerate(leg_ends):
        current = _match(path, stop, search_from, tolerance_deg)
        if current is None:
            logger.info(f"Stop '{stop.name}' is not on the route polyline; passing it through without ghost points")
            closest, _ = nearest_vertex(path, stop.original_coordinate, start=search_from)
            previous = closest if closest >= 0 else None
        else:
            if previous is not None:
                for index in sample_ghost_indices(previous, current, ghosts_per_leg):
                    plan.waypoints.append(path[index])
                    plan.ghost_count += 1
            previous = current

        if position < len(leg_ends) - 1:
            plan.waypoints.append(stop.original_coordinate)
        if previous is not None:
            search_from = previous
    return plan


def _google_maps_url(plan: NavigationWaypoints) -> str:
    params = {
        "api": "1",
        "origin": format_coordinate(plan.origin),
        "destination": format_coordinate(plan.destination),
        "travelmode": "driving",
    }
    if plan.waypoints:
        params["waypoints"] = "|".join(format_coordinate(coord) for coord in plan.waypoints)
    return f"{GOOGLE_MAPS_DIRECTIONS_URL}?{urlencode(params, safe=',|')}"


def build_google_maps_url(
    route: OptimizedRoute | None,
    avoid_unpaved: bool,
    *,
    ghosts_per_leg: int | None = None,
    max_waypoints: int | None = None,
    max_url_length: int | None = None,
) -> str:
    """Google Maps directions link for the route, or ``"#"`` when there is no route.

    Ghost points are reduced per leg until the waypoint count and URL length
    fit the app's limits. Real stops are always kept, in order.
    """
    if route is None or len(route.waypoints) < 2:
        return PLACEHOLDER_LINK

    per_leg = GHOST_POINTS_PER_LEG if ghosts_per_leg is None else ghosts_per_leg
    max_waypoints = max_waypoints or settings.google_maps_max_waypoints
    max_url_length = max_url_length or settings.google_maps_max_url_length

    for count in range(per_leg, -1, -1):
        plan = plan_navigation_waypoints(route, avoid_unpaved, ghosts_per_leg=count)
        url = _google_maps_url(plan)
        if len(plan.waypoints) <= max_waypoints and len(url) <= max_url_length:
            break
        if count > 0 and plan.ghost_count:
            logger.debug(f"Navigation link too long with {count} ghost point(s) per leg, retrying with fewer")
        else:
            break
    return url


def build_waze_url(route: OptimizedRoute | None) -> str:
    """Waze link to the last stop; Waze links carry no intermediate waypoints."""
    if route is None or len(route.waypoints) < 2:
        return PLACEHOLDER_LINK
    lat, lng = route.waypoints[-1].original_coordinate
    return f"{WAZE_URL}?{urlencode({'ll': f'{lat},{lng}', 'navigate': 'yes'}, safe=',')}"
