"""Stop ordering: visiting order from the OSRM trip service plus closest-first correction."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Protocol, Sequence

import httpx

from ...config import settings
from ...models.domain import Coordinate, Location, RoutingPreferences
from ..geospatial import haversine_km
from .models import RouteResponse

logger = logging.getLogger(__name__)

CLOSEST_FIRST_RATIO = settings.closest_first_ratio

ROUTE_NOT_COMPUTED_MESSAGE = "route could not be computed — verify the stop addresses"


class RouteNotComputedError(ValueError):
    """No trip could be computed for the stop list."""

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(ROUTE_NOT_COMPUTED_MESSAGE)
        self.detail = detail


class TripService(Protocol):
    async def trip(self, coordinates: Sequence[Coordinate], *, round_trip: bool, exclude: str | None = None) -> RouteResponse: ...

    async def route(self, coordinates: Sequence[Coordinate], *, exclude: str | None = None) -> RouteResponse: ...


@dataclass(slots=True)
class OrderingResult:
    ordered_stops: List[Location]
    order: List[int]
    response: RouteResponse
    corrected: bool = False


def _validate_order(response: RouteResponse, stop_count: int) -> list[int]:
    order = list(response.order)
    if not response.ok:
        raise RouteNotComputedError(f"trip service returned code {response.code!r}")
    if len(order) < stop_count or sorted(order) != list(range(stop_count)):
        raise RouteNotComputedError(f"trip covers {len(set(order))} of {stop_count} stops")
    if order[0] != 0:
        raise RouteNotComputedError("trip does not start at the anchor stop")
    return order


def needs_closest_first(stops: Sequence[Location], ratio: float = CLOSEST_FIRST_RATIO) -> bool:
    """Whether the first destination is more than ``ratio`` times farther than the last one."""
    if len(stops) < 3:
        return False
    anchor, first, last = (stop.original_coordinate for stop in (stops[0], stops[1], stops[-1]))
    first_km = haversine_km(*anchor, *first)
    last_km = haversine_km(*anchor, *last)
    return first_km > last_km * ratio


def loop_coordinates(stops: Sequence[Location], round_trip: bool) -> list[Coordinate]:
    """Coordinates for an explicit-order request, closing the loop on round trips."""
    coordinates = [stop.original_coordinate for stop in stops]
    if round_trip:
        coordinates.append(stops[0].original_coordinate)
    return coordinates


async def order_stops(
    stops: Sequence[Location],
    preferences: RoutingPreferences,
    client: TripService,
    *,
    ratio: float = CLOSEST_FIRST_RATIO,
    exclude: str | None = None,
) -> OrderingResult:
    """Compute the visiting order for ``stops``; the first stop stays fixed.

    Raises:
        RouteNotComputedError: when the trip service fails or answers with a
            trip that does not cover every stop.
    """
    if len(stops) < 2:
        raise ValueError("At least two stops are required to plan a route.")

    coordinates = [stop.original_coordinate for stop in stops]
    try:
        response = await client.trip(coordinates, round_trip=preferences.round_trip, exclude=exclude)
    except (httpx.HTTPError, ConnectionError, ValueError) as e:
        logger.error(f"Trip request for {len(stops)} stops failed: {e}")
        raise RouteNotComputedError(str(e)) from e

    order = _validate_order(response, len(stops))
    ordered = [stops[index] for index in order]

    if not (preferences.round_trip and needs_closest_first(ordered, ratio)):
        return OrderingResult(ordered_stops=ordered, order=order, response=response)

    order = [order[0], *reversed(order[1:])]
    ordered = [stops[index] for index in order]
    logger.info(f"Closest-first correction: reversed {len(order) - 1} destinations, requesting geometry again")
    try:
        corrected = await client.route(loop_coordinates(ordered, round_trip=True))
    except (httpx.HTTPError, ConnectionError, ValueError) as e:
        logger.error(f"Route request for corrected order failed: {e}")
        raise RouteNotComputedError(str(e)) from e
    if not corrected.ok:
        raise RouteNotComputedError(f"route service returned code {corrected.code!r}")

    # the route service keeps request order; report it against the input indices
    corrected.order = list(order)
    return OrderingResult(ordered_stops=ordered, order=order, response=corrected, corrected=True)
