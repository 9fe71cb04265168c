"""OpenRouteService directions client used for higher-fidelity unpaved avoidance.

ORS directions never reorder the coordinates it is given. It is only asked for
the path of an order that OSRM already computed.
"""

from __future__ import annotations

import logging
from typing import Sequence

import httpx

from ...config import settings
from ...models.domain import Coordinate
from ..http import request_json
from .models import RouteLeg, RouteResponse, RouteStep

logger = logging.getLogger(__name__)


class ORSError(ValueError):
    """OpenRouteService returned no usable route."""


class ORSClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.ors_api_key
        if not self.api_key:
            raise ValueError("OpenRouteService API key is not configured.")
        self.base_url = (base_url or settings.ors_base_url).rstrip("/")
        self.profile = profile or settings.ors_profile
        self.timeout = timeout if timeout is not None else settings.ors_timeout_seconds
        self._transport = transport

    async def directions(self, coordinates: Sequence[Coordinate], *, avoid_unpaved: bool = False) -> RouteResponse:
        """Route through ``coordinates`` (lat, lon) in the given order."""
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required for ORS directions.")

        body: dict = {
            "coordinates": [[lng, lat] for lat, lng in coordinates],
            "instructions": True,
            "geometry": True,
            "preference": "recommended",
        }
        if avoid_unpaved:
            body["options"] = {"avoid_features": ["unpaved"]}

        url = f"{self.base_url}/v2/directions/{self.profile}/geojson"
        try:
            data = await request_json(
                service="ORS",
                method="POST",
                url=url,
                json_body=body,
                headers={"Authorization": self.api_key, "Content-Type": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        except httpx.HTTPStatusError as e:
            raise ORSError(f"ORS directions request failed with HTTP {e.response.status_code}") from e

        features = data.get("features") or []
        if not features:
            raise ORSError("ORS returned no route.")
        return parse_directions(features[0], len(coordinates))


def parse_directions(feature: dict, coordinate_count: int) -> RouteResponse:
    """Normalize an ORS GeoJSON feature.

    ORS steps reference the route geometry through ``way_points`` index pairs
    instead of carrying their own coordinates.
    """
    geometry = [(float(lat), float(lng)) for lng, lat, *_ in feature["geometry"]["coordinates"]]
    properties = feature.get("properties") or {}
    summary = properties.get("summary") or {}

    legs: list[RouteLeg] = []
    for segment in properties.get("segments") or []:
        steps: list[RouteStep] = []
        for step in segment.get("steps") or []:
            start, end = step.get("way_points") or (0, -1)
            coords = geometry[start : end + 1] if end >= start else []
            steps.append(
                RouteStep(
                    name="" if step.get("name") in (None, "-") else step["name"],
                    coordinates=coords,
                    distance=float(step.get("distance") or 0.0),
                    duration=float(step.get("duration") or 0.0),
                    maneuver_location=geometry[start] if start < len(geometry) else None,
                )
            )
        legs.append(
            RouteLeg(
                steps=steps,
                distance=float(segment.get("distance") or 0.0),
                duration=float(segment.get("duration") or 0.0),
            )
        )

    return RouteResponse(
        code="Ok",
        order=list(range(coordinate_count)),
        legs=legs,
        distance=float(summary.get("distance") or 0.0),
        duration=float(summary.get("duration") or 0.0),
        geometry=geometry,
        provider="ors",
    )
