"""Route planning orchestration service.

Connects the pipeline stages: ordering (async) -> optional path-fidelity
override (async) -> segmentation (pure) -> toll detection (async) -> route
assembly. Navigation links are built on demand from the assembled route.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import httpx

from ...config import settings
from ...models.domain import Location, OptimizedRoute, RoutingPreferences
from ..geocoding.nominatim import NominatimClient
from ..tolls.detector import ReverseGeocoder, TollPoiSource, detect_tolls
from ..tolls.overpass_client import OverpassClient
from .models import RouteResponse
from .ordering import OrderingResult, TripService, loop_coordinates, order_stops
from .ors_client import ORSClient
from .osrm_client import OSRMClient
from .segmenter import build_segments

logger = logging.getLogger(__name__)


class PlanningInProgressError(RuntimeError):
    """A route computation is already running on this planner."""


class RequestSequencer:
    """Monotonic request numbers; only the latest issued request may be applied."""

    def __init__(self) -> None:
        self._latest = 0

    @property
    def latest(self) -> int:
        return self._latest

    def issue(self) -> int:
        self._latest += 1
        return self._latest

    def invalidate(self) -> None:
        """Mark every outstanding request as stale (the stop list changed)."""
        self._latest += 1

    def is_current(self, sequence: int) -> bool:
        return sequence == self._latest


def _valid_stops(stops: Sequence[Location]) -> list[Location]:
    valid = []
    for stop in stops:
        if stop is None or not (-90 <= stop.lat <= 90) or not (-180 <= stop.lng <= 180):
            logger.warning(f"Dropping stop with invalid coordinates: {stop}")
            continue
        valid.append(stop)
    return valid


class RoutePlanner:
    """Runs the planning pipeline against injected collaborators."""

    def __init__(
        self,
        trip_service: TripService,
        *,
        path_service: Optional[ORSClient] = None,
        poi_source: Optional[TollPoiSource] = None,
        geocoder: Optional[ReverseGeocoder] = None,
        max_stops: int | None = None,
        osrm_exclude: str | None = None,
    ) -> None:
        self.trip_service = trip_service
        self.path_service = path_service
        self.poi_source = poi_source
        self.geocoder = geocoder
        self.max_stops = max_stops or settings.max_stops_per_plan
        self.osrm_exclude = osrm_exclude
        self.sequencer = RequestSequencer()
        self._in_flight = False

    @classmethod
    def from_settings(cls) -> RoutePlanner:
        path_service = None
        if settings.ors_api_key:
            path_service = ORSClient()
        return cls(
            OSRMClient(),
            path_service=path_service,
            poi_source=OverpassClient(),
            geocoder=NominatimClient(),
            osrm_exclude=settings.osrm_unpaved_exclude,
        )

    def invalidate(self) -> None:
        """Call when the stop list changes; a running computation will be discarded."""
        self.sequencer.invalidate()

    async def _path_override(self, ordering: OrderingResult, preferences: RoutingPreferences) -> RouteResponse:
        use_ors = preferences.avoid_unpaved and preferences.path_provider == "ors"
        if not use_ors:
            return ordering.response
        if self.path_service is None:
            logger.warning("ORS path provider requested but no API key is configured; keeping OSRM geometry")
            return ordering.response
        coordinates = loop_coordinates(ordering.ordered_stops, preferences.round_trip)
        try:
            response = await self.path_service.directions(coordinates, avoid_unpaved=True)
        except (httpx.HTTPError, ConnectionError, ValueError) as e:
            logger.warning(f"ORS directions failed, keeping OSRM geometry: {e}")
            return ordering.response
        response.order = list(ordering.order)
        return response

    async def compute(self, stops: Sequence[Location], preferences: RoutingPreferences) -> OptimizedRoute:
        """Run the whole pipeline once.

        Raises:
            ValueError: fewer than two usable stops.
            RouteNotComputedError: the ordering collaborator could not produce a trip.
        """
        valid = _valid_stops(stops)
        if len(valid) > self.max_stops:
            logger.info(f"Limiting plan to the first {self.max_stops} of {len(valid)} stops")
            valid = valid[: self.max_stops]
        if len(valid) < 2:
            raise ValueError("At least two stops with valid coordinates are required.")

        exclude = self.osrm_exclude if preferences.avoid_unpaved else None
        ordering = await order_stops(valid, preferences, self.trip_service, exclude=exclude)
        response = await self._path_override(ordering, preferences)

        segmentation = build_segments(response, ordering.ordered_stops, preferences.round_trip)
        tolls = await detect_tolls(
            ordering.ordered_stops,
            segmentation.segments,
            response,
            poi_source=self.poi_source,
            geocoder=self.geocoder,
        )

        route = OptimizedRoute(
            total_distance=segmentation.total_distance,
            total_duration=segmentation.total_duration,
            segments=segmentation.segments,
            waypoints=list(ordering.ordered_stops),
            toll_count=tolls.count,
            toll_details=tolls.tolls,
            round_trip=preferences.round_trip,
        )
        logger.info(
            f"Planned route: {len(route.waypoints)} stops, {route.total_distance / 1000:.1f} km, "
            f"{len(route.segments)} segments, {route.toll_count} tolls, provider={response.provider}"
        )
        return route

    async def plan(self, stops: Sequence[Location], preferences: RoutingPreferences) -> Optional[OptimizedRoute]:
        """Plan a route; returns None when the stop list changed while computing.

        Raises:
            PlanningInProgressError: another ``plan`` call is still running.
        """
        if self._in_flight:
            raise PlanningInProgressError("A route is already being computed for this stop list.")
        sequence = self.sequencer.issue()
        self._in_flight = True
        try:
            route = await self.compute(stops, preferences)
        finally:
            self._in_flight = False
        if not self.sequencer.is_current(sequence):
            logger.info(f"Discarding stale route for request #{sequence} (latest is #{self.sequencer.latest})")
            return None
        return route


async def plan_route(stops: Sequence[Location], preferences: RoutingPreferences) -> OptimizedRoute:
    """Plan a route with collaborators built from settings."""
    planner = RoutePlanner.from_settings()
    return await planner.compute(stops, preferences)

