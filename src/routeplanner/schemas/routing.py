"""Routing request/response schemas."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ..models.domain import (
    Address,
    Direction,
    Location,
    OptimizedRoute,
    RouteSegment,
    SurfaceType,
    TollDetail,
)


class AddressModel(BaseModel):
    street: Optional[str] = None
    number: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None


class StopModel(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    name: str
    display_name: Optional[str] = None
    address: Optional[AddressModel] = None
    client_id: Optional[str] = Field(default=None, description="Caller reference tag for the stop.")
    original_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    original_lng: Optional[float] = Field(default=None, ge=-180, le=180)

    def to_domain(self) -> Location:
        return Location(
            lat=self.lat,
            lng=self.lng,
            name=self.name,
            display_name=self.display_name,
            address=Address(**self.address.model_dump()) if self.address else None,
            client_id=self.client_id,
            original_lat=self.original_lat,
            original_lng=self.original_lng,
        )

    @classmethod
    def from_domain(cls, location: Location) -> StopModel:
        address = location.address
        return cls(
            lat=location.lat,
            lng=location.lng,
            name=location.name,
            display_name=location.display_name,
            address=AddressModel(
                street=address.street,
                number=address.number,
                city=address.city,
                state=address.state,
                postcode=address.postcode,
            )
            if address
            else None,
            client_id=location.client_id,
            original_lat=location.original_lat,
            original_lng=location.original_lng,
        )


class RouteSegmentModel(BaseModel):
    coordinates: List[tuple[float, float]]
    type: SurfaceType
    direction: Direction
    distance: float
    duration: float


class TollDetailModel(BaseModel):
    lat: float
    lng: float
    name: Optional[str] = None
    operator: Optional[str] = None
    nearby_location: Optional[str] = None
    source: Literal["routing", "poi"] = "routing"


class NavigationLinks(BaseModel):
    google_maps: str
    waze: str


class OptimizedRouteModel(BaseModel):
    total_distance: float = Field(..., description="Meters.")
    total_duration: float = Field(..., description="Seconds.")
    round_trip: bool = False
    segments: List[RouteSegmentModel]
    waypoints: List[StopModel]
    toll_count: int = 0
    toll_details: List[TollDetailModel] = Field(default_factory=list)

    def to_domain(self) -> OptimizedRoute:
        return OptimizedRoute(
            total_distance=self.total_distance,
            total_duration=self.total_duration,
            segments=[
                RouteSegment(
                    coordinates=tuple(tuple(coord) for coord in segment.coordinates),
                    surface=segment.type,
                    direction=segment.direction,
                    distance=segment.distance,
                    duration=segment.duration,
                )
                for segment in self.segments
            ],
            waypoints=[stop.to_domain() for stop in self.waypoints],
            toll_count=self.toll_count,
            toll_details=[TollDetail(**toll.model_dump()) for toll in self.toll_details],
            round_trip=self.round_trip,
        )

    @classmethod
    def from_domain(cls, route: OptimizedRoute) -> OptimizedRouteModel:
        return cls(
            total_distance=route.total_distance,
            total_duration=route.total_duration,
            round_trip=route.round_trip,
            segments=[
                RouteSegmentModel(
                    coordinates=list(segment.coordinates),
                    type=segment.surface,
                    direction=segment.direction,
                    distance=segment.distance,
                    duration=segment.duration,
                )
                for segment in route.segments
            ],
            waypoints=[StopModel.from_domain(stop) for stop in route.waypoints],
            toll_count=route.toll_count,
            toll_details=[
                TollDetailModel(
                    lat=toll.lat,
                    lng=toll.lng,
                    name=toll.name,
                    operator=toll.operator,
                    nearby_location=toll.nearby_location,
                    source=toll.source,
                )
                for toll in route.toll_details
            ],
        )


class RoutingRequest(BaseModel):
    stops: List[StopModel] = Field(..., min_length=2, description="Stops to visit; the first is the fixed anchor.")
    round_trip: bool = Field(default=False, description="Return to the anchor stop at the end.")
    avoid_unpaved: bool = Field(default=False, description="Prefer paved roads and bias navigation links onto them.")
    path_provider: Literal["osrm", "ors"] = Field(
        default="osrm",
        description="Geometry source when avoiding unpaved roads. 'ors' requires an OpenRouteService key.",
    )
    include_geojson: bool = False


class RoutingResponse(BaseModel):
    route: OptimizedRouteModel
    links: NavigationLinks
    summary: dict
    geojson: Optional[dict] = None


class NavigationLinkRequest(BaseModel):
    route: OptimizedRouteModel
    avoid_unpaved: bool = False
