import asyncio

import pytest

from routeplanner.models.domain import Address, Direction, Location, RouteSegment, SurfaceType, TollDetail
from routeplanner.services.routing.models import RouteLeg, RouteResponse, RouteStep
from routeplanner.services.tolls import OverpassError, TollNode, detect_tolls, merge_tolls

# A straight road heading east at latitude -23.0, one vertex every ~0.0005 degrees
PATH = [(-23.0, -47.0 + i * 0.0005) for i in range(201)]
TOLL_POSITION = (-23.0, -46.95)


def _stops() -> list[Location]:
    return [
        Location(lat=-23.0, lng=-47.0, name="Depot", address=Address(city="Campinas", state="SP")),
        Location(lat=-23.0, lng=-46.85, name="Rua das Flores, 10"),
    ]


def _segments() -> list[RouteSegment]:
    return [
        RouteSegment(
            coordinates=tuple(PATH),
            surface=SurfaceType.PAVED,
            direction=Direction.OUTBOUND,
            distance=10000.0,
            duration=600.0,
        )
    ]


def _response(with_toll_flag: bool = True) -> RouteResponse:
    steps = [RouteStep(name="SP-348", coordinates=PATH[:100], distance=5000.0, duration=300.0)]
    if with_toll_flag:
        steps.append(
            RouteStep(
                name="SP-348",
                coordinates=PATH[100:],
                distance=5000.0,
                duration=300.0,
                maneuver_type="continue",
                maneuver_location=TOLL_POSITION,
                intersection_classes=["toll"],
            )
        )
    return RouteResponse(code="Ok", order=[0, 1], legs=[RouteLeg(steps, 10000.0, 600.0)], distance=10000.0, duration=600.0)


class FakePoiSource:
    def __init__(self, nodes=None, error: Exception | None = None):
        self.nodes = nodes or []
        self.error = error
        self.bounds = None

    async def toll_booths(self, bounds):
        self.bounds = bounds
        if self.error is not None:
            raise self.error
        return self.nodes


class FakeGeocoder:
    def __init__(self, place: Location | None = None, error: Exception | None = None):
        self.place = place
        self.error = error
        self.active = 0
        self.max_active = 0

    async def reverse(self, lat, lng):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        await asyncio.sleep(0)
        self.active -= 1
        if self.error is not None:
            raise self.error
        return self.place


def test_routing_flag_and_nearby_poi_merge_into_named_toll() -> None:
    # POI ~100 m east of the routing flag
    poi = FakePoiSource([TollNode(lat=-23.0, lng=-46.949, name="Praça de Pedágio Itupeva", operator="AutoBAn")])
    place = Location(lat=-23.0, lng=-46.95, name="x", address=Address(city="Itupeva", state="SP"))

    result = asyncio.run(
        detect_tolls(_stops(), _segments(), _response(), poi_source=poi, geocoder=FakeGeocoder(place))
    )

    assert result.count == 1
    toll = result.tolls[0]
    assert toll.name == "Praça de Pedágio Itupeva"
    assert toll.operator == "AutoBAn"
    assert toll.source == "poi"
    assert toll.nearby_location == "Near Itupeva, SP"


def test_search_area_covers_stops_with_margin() -> None:
    poi = FakePoiSource()

    asyncio.run(detect_tolls(_stops(), _segments(), _response(), poi_source=poi, margin_deg=0.05))

    assert poi.bounds == pytest.approx((-23.05, -47.05, -22.95, -46.80))


def test_off_route_toll_booth_is_ignored() -> None:
    # ~1 km north of the road
    poi = FakePoiSource([TollNode(lat=-22.99, lng=-46.97, name="Praça Paralela")])

    result = asyncio.run(detect_tolls(_stops(), _segments(), _response(with_toll_flag=False), poi_source=poi))

    assert result.count == 0


def test_overpass_failure_keeps_routing_tolls() -> None:
    poi = FakePoiSource(error=OverpassError("Overpass API error: HTTP 504"))

    result = asyncio.run(detect_tolls(_stops(), _segments(), _response(), poi_source=poi, geocoder=None))

    assert result.count == 1
    toll = result.tolls[0]
    assert toll.source == "routing"
    assert toll.name is None
    # ~5.1 km from the depot, labelled with the depot city
    assert toll.nearby_location == "Approx. 5 km from Campinas"


def test_reverse_geocoding_failure_falls_back_to_distance_label() -> None:
    geocoder = FakeGeocoder(error=ConnectionError("Nominatim unreachable"))

    result = asyncio.run(detect_tolls(_stops(), _segments(), _response(), geocoder=geocoder))

    assert result.tolls[0].nearby_location == "Approx. 5 km from Campinas"


def test_reverse_geocoding_without_state_uses_city_only() -> None:
    place = Location(lat=0, lng=0, name="x", address=Address(city="Jundiaí"))

    result = asyncio.run(detect_tolls(_stops(), _segments(), _response(), geocoder=FakeGeocoder(place)))

    assert result.tolls[0].nearby_location == "Near Jundiaí"


def test_reverse_geocoding_is_bounded() -> None:
    response = _response()
    extra_steps = [
        RouteStep(
            name="SP-348",
            coordinates=[],
            distance=0.0,
            duration=0.0,
            maneuver_type="toll_booth",
            maneuver_location=(-23.0, -47.0 + i * 0.01),
        )
        for i in range(1, 5)
    ]
    response.legs[0].steps.extend(extra_steps)
    geocoder = FakeGeocoder()

    result = asyncio.run(detect_tolls(_stops(), _segments(), response, geocoder=geocoder, max_parallel=2))

    assert result.count == 5
    assert geocoder.max_active <= 2


def test_merge_keeps_candidates_farther_apart_than_radius() -> None:
    # 0.001 degrees of longitude at the equator is ~111 m, 0.003 ~334 m
    close = [TollDetail(lat=0.0, lng=0.0), TollDetail(lat=0.0, lng=0.001)]
    apart = [TollDetail(lat=0.0, lng=0.0), TollDetail(lat=0.0, lng=0.003)]

    assert len(merge_tolls(close, 200)) == 1
    assert len(merge_tolls(apart, 200)) == 2


def test_merge_prefers_named_candidate() -> None:
    unnamed = TollDetail(lat=0.0, lng=0.0, source="routing")
    named = TollDetail(lat=0.0, lng=0.001, name="Praça Norte", source="routing")

    merged = merge_tolls([unnamed, named], 200)

    assert merged == [named]


def test_routing_flag_off_the_driven_path_is_ignored() -> None:
    response = _response(with_toll_flag=False)
    # a leg whose geometry the segments do not drive
    response.legs.append(
        RouteLeg(
            [
                RouteStep(
                    name="SP-300",
                    coordinates=[(-22.7, -46.95), (-22.6, -46.95)],
                    distance=11000.0,
                    duration=600.0,
                    maneuver_type="toll_booth",
                    maneuver_location=(-22.7, -46.95),
                )
            ],
            11000.0,
            600.0,
        )
    )

    result = asyncio.run(detect_tolls(_stops(), _segments(), response))

    assert result.count == 0
