"""Turn normalized leg/step data into typed, directional route segments."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence

from ...models.domain import Direction, Location, RouteSegment, SurfaceType
from .models import RouteLeg, RouteResponse

logger = logging.getLogger(__name__)

# Structured surface tags are rarely present on public OSRM, so road names are the primary signal.
UNPAVED_NAME_MARKERS = (
    "terra",
    "rural",
    "estrada de chão",
    "não pavimentada",
    "dirt road",
    "unpaved",
)


@dataclass(slots=True)
class SegmentationResult:
    segments: List[RouteSegment]
    total_distance: float
    total_duration: float


def classify_surface(road_name: str | None) -> SurfaceType:
    name = (road_name or "").lower()
    if any(marker in name for marker in UNPAVED_NAME_MARKERS):
        return SurfaceType.UNPAVED
    return SurfaceType.PAVED


def leg_direction(leg_index: int, leg_count: int, round_trip: bool) -> Direction:
    if round_trip and leg_index == leg_count - 1:
        return Direction.INBOUND
    return Direction.OUTBOUND


def _leg_segments(leg: RouteLeg, direction: Direction) -> list[RouteSegment]:
    return [
        RouteSegment(
            coordinates=tuple(step.coordinates),
            surface=classify_surface(step.name),
            direction=direction,
            distance=step.distance,
            duration=step.duration,
        )
        for step in leg.steps
        if step.coordinates
    ]


def mirror_outbound(outbound: Sequence[RouteSegment]) -> list[RouteSegment]:
    """Inbound segments that drive the outbound path back, street for street."""
    return [segment.reversed(Direction.INBOUND) for segment in reversed(outbound)]


def _summarize(segments: List[RouteSegment]) -> SegmentationResult:
    return SegmentationResult(
        segments=segments,
        total_distance=sum(segment.distance for segment in segments),
        total_duration=sum(segment.duration for segment in segments),
    )


def build_segments(response: RouteResponse, stops: Sequence[Location], round_trip: bool) -> SegmentationResult:
    """Build the travel-ordered segment list for a route.

    With exactly two stops on a round trip, the return leg is replaced by the
    outbound path reversed, so the driver comes back on the same road.
    Totals are always the sums over the returned segments.
    """
    legs = response.legs
    mirror = round_trip and len(stops) == 2

    segments: list[RouteSegment] = []
    for index, leg in enumerate(legs):
        if mirror:
            if index > 0:
                break
            direction = Direction.OUTBOUND
        else:
            direction = leg_direction(index, len(legs), round_trip)
        segments.extend(_leg_segments(leg, direction))

    if not segments:
        logger.warning("Routing response has no step geometry; using a single paved segment over the overview geometry")
        return _summarize(
            [
                RouteSegment(
                    coordinates=tuple(response.geometry),
                    surface=SurfaceType.PAVED,
                    direction=Direction.OUTBOUND,
                    distance=response.distance,
                    duration=response.duration,
                )
            ]
        )

    if mirror:
        segments = [*segments, *mirror_outbound(segments)]
    return _summarize(segments)
