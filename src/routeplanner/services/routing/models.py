"""Provider-neutral routing response shape.

Every routing collaborator (OSRM trip/route, OpenRouteService directions) is
normalized into these types inside its client, so the ordering, segmentation
and toll stages never look at provider-specific JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ...models.domain import Coordinate


@dataclass(slots=True)
class RouteStep:
    name: str
    coordinates: List[Coordinate]
    distance: float
    duration: float
    maneuver_type: Optional[str] = None
    maneuver_location: Optional[Coordinate] = None
    intersection_classes: List[str] = field(default_factory=list)


@dataclass(slots=True)
class RouteLeg:
    steps: List[RouteStep]
    distance: float
    duration: float


@dataclass(slots=True)
class RouteResponse:
    code: str
    order: List[int]  # input indices in visiting order
    legs: List[RouteLeg]
    distance: float
    duration: float
    geometry: List[Coordinate] = field(default_factory=list)
    provider: str = "osrm"

    @property
    def ok(self) -> bool:
        return self.code == "Ok"
