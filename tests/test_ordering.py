import asyncio

import pytest

from routeplanner.models.domain import Location, RoutingPreferences
from routeplanner.services.routing.models import RouteLeg, RouteResponse, RouteStep
from routeplanner.services.routing.ordering import (
    ROUTE_NOT_COMPUTED_MESSAGE,
    RouteNotComputedError,
    loop_coordinates,
    needs_closest_first,
    order_stops,
)
from routeplanner.services.routing.osrm_client import OSRMError


def _stop(name: str, lat: float, lng: float = 0.0) -> Location:
    return Location(lat=lat, lng=lng, name=name)


def _response(order: list[int], code: str = "Ok") -> RouteResponse:
    step = RouteStep(name="Rua A", coordinates=[(0.0, 0.0), (0.1, 0.0)], distance=100.0, duration=10.0)
    return RouteResponse(
        code=code,
        order=order,
        legs=[RouteLeg(steps=[step], distance=100.0, duration=10.0)],
        distance=100.0,
        duration=10.0,
    )


class FakeTripService:
    def __init__(self, trip_response=None, route_response=None, error: Exception | None = None):
        self.trip_response = trip_response
        self.route_response = route_response
        self.error = error
        self.trip_calls: list[dict] = []
        self.route_calls: list[list] = []

    async def trip(self, coordinates, *, round_trip, exclude=None):
        self.trip_calls.append({"coordinates": list(coordinates), "round_trip": round_trip, "exclude": exclude})
        if self.error is not None:
            raise self.error
        return self.trip_response

    async def route(self, coordinates, *, exclude=None):
        self.route_calls.append(list(coordinates))
        return self.route_response


def test_closest_first_reverses_far_first_round_trip() -> None:
    # B is ~50 km from the anchor, C ~5 km; the trip service visits B first
    anchor, far, near = _stop("A", 0.0), _stop("B", 0.45), _stop("C", 0.045)
    service = FakeTripService(trip_response=_response([0, 1, 2]), route_response=_response([0, 1, 2, 3]))

    result = asyncio.run(order_stops([anchor, far, near], RoutingPreferences(round_trip=True), service))

    assert result.corrected
    assert [stop.name for stop in result.ordered_stops] == ["A", "C", "B"]
    assert result.order == [0, 2, 1]
    assert result.response.order == [0, 2, 1]
    assert service.route_calls == [[(0.0, 0.0), (0.045, 0.0), (0.45, 0.0), (0.0, 0.0)]]


def test_no_correction_within_ratio() -> None:
    stops = [_stop("A", 0.0), _stop("B", 0.09), _stop("C", 0.085)]
    service = FakeTripService(trip_response=_response([0, 1, 2]))

    result = asyncio.run(order_stops(stops, RoutingPreferences(round_trip=True), service))

    assert not result.corrected
    assert result.order == [0, 1, 2]
    assert service.route_calls == []


def test_no_correction_for_one_way_trips() -> None:
    stops = [_stop("A", 0.0), _stop("B", 0.45), _stop("C", 0.045)]
    service = FakeTripService(trip_response=_response([0, 1, 2]))

    result = asyncio.run(order_stops(stops, RoutingPreferences(round_trip=False), service, exclude="unpaved"))

    assert not result.corrected
    assert service.trip_calls[0]["round_trip"] is False
    assert service.trip_calls[0]["exclude"] == "unpaved"


def test_trip_requests_use_original_coordinates() -> None:
    moved = _stop("B", 0.2, 0.2)
    moved.move_to(0.3, 0.3)
    service = FakeTripService(trip_response=_response([0, 1]))

    asyncio.run(order_stops([_stop("A", 0.0), moved], RoutingPreferences(), service))

    assert service.trip_calls[0]["coordinates"] == [(0.0, 0.0), (0.2, 0.2)]


def test_incomplete_trip_is_rejected() -> None:
    stops = [_stop("A", 0.0), _stop("B", 0.1), _stop("C", 0.2)]
    service = FakeTripService(trip_response=_response([0, 1]))

    with pytest.raises(RouteNotComputedError) as exc_info:
        asyncio.run(order_stops(stops, RoutingPreferences(), service))

    assert str(exc_info.value) == ROUTE_NOT_COMPUTED_MESSAGE


def test_trip_not_starting_at_anchor_is_rejected() -> None:
    stops = [_stop("A", 0.0), _stop("B", 0.1), _stop("C", 0.2)]
    service = FakeTripService(trip_response=_response([1, 0, 2]))

    with pytest.raises(RouteNotComputedError):
        asyncio.run(order_stops(stops, RoutingPreferences(), service))


def test_trip_service_failure_becomes_route_not_computed() -> None:
    stops = [_stop("A", 0.0), _stop("B", 0.1)]
    service = FakeTripService(error=OSRMError("OSRM trip request failed (NoTrips)"))

    with pytest.raises(RouteNotComputedError) as exc_info:
        asyncio.run(order_stops(stops, RoutingPreferences(), service))

    assert "NoTrips" in exc_info.value.detail


def test_needs_closest_first_requires_three_stops() -> None:
    assert not needs_closest_first([_stop("A", 0.0), _stop("B", 0.45)])
    assert needs_closest_first([_stop("A", 0.0), _stop("B", 0.45), _stop("C", 0.045)])


def test_loop_coordinates_closes_round_trips() -> None:
    stops = [_stop("A", 0.0), _stop("B", 0.1)]

    assert loop_coordinates(stops, round_trip=True) == [(0.0, 0.0), (0.1, 0.0), (0.0, 0.0)]
    assert loop_coordinates(stops, round_trip=False) == [(0.0, 0.0), (0.1, 0.0)]
