"""Domain models for stops, route segments and tolls."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Literal, Optional

Coordinate = tuple[float, float]


class SurfaceType(str, Enum):
    PAVED = "paved"
    UNPAVED = "unpaved"


class Direction(str, Enum):
    OUTBOUND = "outbound"
    INBOUND = "inbound"


@dataclass(slots=True)
class Address:
    street: Optional[str] = None
    number: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None


@dataclass(slots=True)
class Location:
    """A delivery stop resolved to coordinates.

    ``lat``/``lng`` is the display position and may be adjusted by the caller
    (for instance to separate overlapping pins). ``original_lat``/``original_lng``
    is the geocoded position; it is captured once and cannot be reassigned.
    """

    lat: float
    lng: float
    name: str
    display_name: Optional[str] = None
    address: Optional[Address] = None
    client_id: Optional[str] = None
    original_lat: Optional[float] = None
    original_lng: Optional[float] = None

    def __post_init__(self) -> None:
        if (self.original_lat is None) != (self.original_lng is None):
            raise ValueError("original_lat and original_lng must be given together")
        if self.original_lat is None:
            object.__setattr__(self, "original_lat", self.lat)
            object.__setattr__(self, "original_lng", self.lng)

    def __setattr__(self, name: str, value) -> None:
        if name in ("original_lat", "original_lng") and getattr(self, name, None) is not None:
            raise AttributeError(f"{name} is fixed at geocode time and cannot be overwritten")
        object.__setattr__(self, name, value)

    @property
    def coordinate(self) -> Coordinate:
        return (self.lat, self.lng)

    @property
    def original_coordinate(self) -> Coordinate:
        return (self.original_lat, self.original_lng)

    def move_to(self, lat: float, lng: float) -> None:
        """Adjust the display position; the original coordinate is kept."""
        self.lat = lat
        self.lng = lng

    def locality(self) -> str:
        """City when known, otherwise the first part of the stop name."""
        if self.address and self.address.city:
            return self.address.city
        return self.name.split(",")[0].strip()


@dataclass(frozen=True, slots=True)
class RouteSegment:
    coordinates: tuple[Coordinate, ...]
    surface: SurfaceType
    direction: Direction
    distance: float  # meters
    duration: float  # seconds

    def reversed(self, direction: Direction) -> RouteSegment:
        return RouteSegment(
            coordinates=tuple(reversed(self.coordinates)),
            surface=self.surface,
            direction=direction,
            distance=self.distance,
            duration=self.duration,
        )


@dataclass(slots=True)
class TollDetail:
    lat: float
    lng: float
    name: Optional[str] = None
    operator: Optional[str] = None
    nearby_location: Optional[str] = None
    source: Literal["routing", "poi"] = "routing"


@dataclass(slots=True)
class OptimizedRoute:
    total_distance: float  # meters
    total_duration: float  # seconds
    segments: List[RouteSegment]
    waypoints: List[Location]
    toll_count: int = 0
    toll_details: List[TollDetail] = field(default_factory=list)
    round_trip: bool = False

    @property
    def anchor(self) -> Location:
        return self.waypoints[0]

    def path(self) -> list[Coordinate]:
        """Full traveled polyline in travel order."""
        return [coord for segment in self.segments for coord in segment.coordinates]


@dataclass(frozen=True, slots=True)
class RoutingPreferences:
    """Per-request routing options, passed explicitly through the pipeline."""

    round_trip: bool = False
    avoid_unpaved: bool = False
    path_provider: Literal["osrm", "ors"] = "osrm"
