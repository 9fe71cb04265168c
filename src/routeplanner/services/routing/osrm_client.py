"""Async HTTP client for the OSRM trip and route services."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from ...config import settings
from ...models.domain import Coordinate
from ..http import request_json
from .models import RouteLeg, RouteResponse, RouteStep

logger = logging.getLogger(__name__)


class OSRMError(ValueError):
    """OSRM answered, but without a usable trip or route."""


class OSRMClient:
    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url).rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self._transport = transport

    async def _get(self, service: str, coordinates: Sequence[Coordinate], params: dict) -> dict:
        # OSRM expects "lon,lat;lon,lat;..."
        coordinate_str = ";".join(f"{lng},{lat}" for lat, lng in coordinates)
        url = f"{self.base_url}/{service}/v1/{self.profile}/{coordinate_str}"
        data = await request_json(
            service="OSRM",
            method="GET",
            url=url,
            params=params,
            timeout=self.timeout,
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
            transport=self._transport,
            accept_statuses=(400,),
        )
        if data.get("code") != "Ok":
            error_msg = data.get("message", "Unknown OSRM error")
            raise OSRMError(f"OSRM {service} request failed ({data.get('code')}): {error_msg}")
        return data

    async def trip(
        self,
        coordinates: Sequence[Coordinate],
        *,
        round_trip: bool,
        exclude: str | None = None,
    ) -> RouteResponse:
        """Ask the trip service for a visiting order starting at the first coordinate.

        Args:
            coordinates: Sequence of (lat, lon) tuples; the first is the fixed anchor.
            round_trip: Whether the trip returns to the anchor.
            exclude: Optional OSRM exclude classes (not combined with round trips).

        Returns:
            The normalized trip, with ``order`` listing input indices in visiting order.
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required for OSRM trip.")

        params = {
            "source": "first",
            "roundtrip": "true" if round_trip else "false",
            "overview": "full",
            "geometries": "geojson",
            "steps": "true",
        }
        if exclude and not round_trip:
            params["exclude"] = exclude

        data = await self._get("trip", coordinates, params)
        trips = data.get("trips") or []
        if not trips:
            raise OSRMError("OSRM trip response contains no trips.")
        return parse_trip(data)

    async def route(self, coordinates: Sequence[Coordinate], *, exclude: str | None = None) -> RouteResponse:
        """Get street geometry for coordinates in the given order, without reordering."""
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required for OSRM route.")

        params = {
            "overview": "full",
            "geometries": "geojson",
            "steps": "true",
        }
        if exclude:
            params["exclude"] = exclude

        data = await self._get("route", coordinates, params)
        routes = data.get("routes") or []
        if not routes:
            raise OSRMError("OSRM route response contains no routes.")
        return parse_route(data, len(coordinates))


def _lat_lng(position: Sequence[float]) -> Coordinate:
    # GeoJSON positions are [lon, lat]
    return (float(position[1]), float(position[0]))


def _geometry_coordinates(geometry: Any) -> list[Coordinate]:
    if isinstance(geometry, dict) and isinstance(geometry.get("coordinates"), list):
        return [_lat_lng(position) for position in geometry["coordinates"]]
    return []


def _parse_step(step: dict) -> RouteStep:
    maneuver = step.get("maneuver") or {}
    location = maneuver.get("location")
    classes: list[str] = []
    for intersection in step.get("intersections") or []:
        for item in intersection.get("classes") or []:
            if item not in classes:
                classes.append(item)
    return RouteStep(
        name=step.get("name") or "",
        coordinates=_geometry_coordinates(step.get("geometry")),
        distance=float(step.get("distance") or 0.0),
        duration=float(step.get("duration") or 0.0),
        maneuver_type=maneuver.get("type"),
        maneuver_location=_lat_lng(location) if location else None,
        intersection_classes=classes,
    )


def _parse_legs(raw_legs: list | None) -> list[RouteLeg]:
    return [
        RouteLeg(
            steps=[_parse_step(step) for step in leg.get("steps") or []],
            distance=float(leg.get("distance") or 0.0),
            duration=float(leg.get("duration") or 0.0),
        )
        for leg in raw_legs or []
    ]


def parse_trip(data: dict) -> RouteResponse:
    """Normalize an OSRM trip payload."""
    trip = data["trips"][0]
    permutation = trip.get("permutation")
    if permutation:
        order = [int(index) for index in permutation]
    else:
        # waypoints are listed in input order; waypoint_index is the position in the trip
        indexed = [
            (waypoint.get("waypoint_index"), input_index)
            for input_index, waypoint in enumerate(data.get("waypoints") or [])
            if waypoint is not None and waypoint.get("waypoint_index") is not None
        ]
        order = [input_index for _, input_index in sorted(indexed)]

    return RouteResponse(
        code=data.get("code", ""),
        order=order,
        legs=_parse_legs(trip.get("legs")),
        distance=float(trip.get("distance") or 0.0),
        duration=float(trip.get("duration") or 0.0),
        geometry=_geometry_coordinates(trip.get("geometry")),
        provider="osrm",
    )


def parse_route(data: dict, coordinate_count: int) -> RouteResponse:
    """Normalize an OSRM route payload; the order is the request order."""
    route = data["routes"][0]
    return RouteResponse(
        code=data.get("code", ""),
        order=list(range(coordinate_count)),
        legs=_parse_legs(route.get("legs")),
        distance=float(route.get("distance") or 0.0),
        duration=float(route.get("duration") or 0.0),
        geometry=_geometry_coordinates(route.get("geometry")),
        provider="osrm",
    )


async def check_health(base_url: str | None = None, transport: httpx.AsyncBaseTransport | None = None) -> bool:
    """Check OSRM service health by making a minimal route request.

    Public OSRM endpoints may not have a /health endpoint, so we test
    connectivity with two coordinates (Berlin area).
    """
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        client = OSRMClient(base_url=base, timeout=5.0, max_retries=0, transport=transport)
        await client.route([(52.517037, 13.388860), (52.496891, 13.385983)])
        return True
    except (httpx.HTTPError, ConnectionError, ValueError):
        return False
