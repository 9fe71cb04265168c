"""Toll detection: routing step flags enriched with OpenStreetMap toll booths."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

import httpx

from ...config import settings
from ...models.domain import Coordinate, Location, RouteSegment, TollDetail
from ..geospatial import expanded_bounds, haversine_km, haversine_m, is_point_near_polyline, nearest_vertex
from ..routing.models import RouteResponse
from .overpass_client import TollNode

logger = logging.getLogger(__name__)

TOLL_MERGE_RADIUS_M = settings.toll_merge_radius_m
TOLL_SEARCH_MARGIN_DEG = settings.toll_search_margin_deg
TOLL_ON_ROUTE_TOLERANCE_DEG = settings.toll_on_route_tolerance_deg


class TollPoiSource(Protocol):
    async def toll_booths(self, bounds: tuple[float, float, float, float]) -> list[TollNode]: ...


class ReverseGeocoder(Protocol):
    async def reverse(self, lat: float, lng: float) -> Optional[Location]: ...


@dataclass(slots=True)
class TollDetectionResult:
    tolls: List[TollDetail]

    @property
    def count(self) -> int:
        return len(self.tolls)


def routing_toll_candidates(response: RouteResponse) -> list[TollDetail]:
    """Unnamed toll candidates from toll-booth maneuvers and toll-classed intersections."""
    candidates: list[TollDetail] = []
    for leg in response.legs:
        for step in leg.steps:
            is_toll = step.maneuver_type == "toll_booth" or "toll" in step.intersection_classes
            if is_toll and step.maneuver_location is not None:
                lat, lng = step.maneuver_location
                candidates.append(TollDetail(lat=lat, lng=lng, source="routing"))
    return candidates


def poi_toll_candidates(
    nodes: Sequence[TollNode],
    path: Sequence[Coordinate],
    tolerance_deg: float = TOLL_ON_ROUTE_TOLERANCE_DEG,
) -> list[TollDetail]:
    """Keep only the toll booths that sit on the traveled path."""
    return [
        TollDetail(lat=node.lat, lng=node.lng, name=node.name, operator=node.operator, source="poi")
        for node in nodes
        if is_point_near_polyline((node.lat, node.lng), path, tolerance_deg)
    ]


def _rank(toll: TollDetail) -> tuple[bool, bool]:
    return (toll.name is not None, toll.source == "poi")


def merge_tolls(candidates: Sequence[TollDetail], radius_m: float = TOLL_MERGE_RADIUS_M) -> list[TollDetail]:
    """Collapse candidates closer than ``radius_m`` into one toll, keeping the named one."""
    merged: list[TollDetail] = []
    for candidate in candidates:
        for index, existing in enumerate(merged):
            if haversine_m((candidate.lat, candidate.lng), (existing.lat, existing.lng)) < radius_m:
                if _rank(candidate) > _rank(existing):
                    merged[index] = candidate
                break
        else:
            merged.append(candidate)
    return merged


def fallback_label(toll: TollDetail, stops: Sequence[Location]) -> Optional[str]:
    """Label a toll by its straight-line distance to the nearest stop."""
    if not stops:
        return None
    nearest = min(stops, key=lambda stop: haversine_km(toll.lat, toll.lng, stop.lat, stop.lng))
    distance_km = haversine_km(toll.lat, toll.lng, nearest.lat, nearest.lng)
    return f"Approx. {round(distance_km)} km from {nearest.locality()}"


async def _label(
    toll: TollDetail,
    stops: Sequence[Location],
    geocoder: ReverseGeocoder | None,
    semaphore: asyncio.Semaphore,
) -> None:
    place = None
    if geocoder is not None:
        async with semaphore:
            try:
                place = await geocoder.reverse(toll.lat, toll.lng)
            except (httpx.HTTPError, ConnectionError, ValueError) as e:
                logger.warning(f"Reverse geocoding failed for toll at ({toll.lat:.5f}, {toll.lng:.5f}): {e}")

    city = place.address.city if place is not None and place.address is not None else None
    if city:
        state = place.address.state
        toll.nearby_location = f"Near {city}, {state}" if state else f"Near {city}"
    else:
        toll.nearby_location = fallback_label(toll, stops)


async def label_tolls(
    tolls: Sequence[TollDetail],
    stops: Sequence[Location],
    geocoder: ReverseGeocoder | None,
    max_parallel: int | None = None,
) -> None:
    semaphore = asyncio.Semaphore(max_parallel or settings.geocode_max_parallel)
    await asyncio.gather(*(_label(toll, stops, geocoder, semaphore) for toll in tolls))


async def detect_tolls(
    stops: Sequence[Location],
    segments: Sequence[RouteSegment],
    response: RouteResponse,
    *,
    poi_source: TollPoiSource | None = None,
    geocoder: ReverseGeocoder | None = None,
    merge_radius_m: float = TOLL_MERGE_RADIUS_M,
    margin_deg: float = TOLL_SEARCH_MARGIN_DEG,
    tolerance_deg: float = TOLL_ON_ROUTE_TOLERANCE_DEG,
    max_parallel: int | None = None,
) -> TollDetectionResult:
    """Find, de-duplicate and label the tolls along a route.

    Only tolls on the segment polylines count: legs the segments do not
    drive (the replaced return leg of a mirrored round trip) are ignored.
    Point-of-interest and geocoding failures only lower the quality of the
    result; they never raise.
    """
    path = [coord for segment in segments for coord in segment.coordinates]
    # maneuver locations are polyline vertices, so every vertex is checked
    routing_candidates = [
        toll
        for toll in routing_toll_candidates(response)
        if nearest_vertex(path, (toll.lat, toll.lng))[1] <= tolerance_deg
    ]

    poi_candidates: list[TollDetail] = []
    if poi_source is not None and stops:
        try:
            nodes = await poi_source.toll_booths(expanded_bounds([stop.coordinate for stop in stops], margin_deg))
            poi_candidates = poi_toll_candidates(nodes, path, tolerance_deg)
        except (httpx.HTTPError, ConnectionError, ValueError) as e:
            logger.warning(f"Toll booth lookup failed, using routing toll flags only: {e}")

    tolls = merge_tolls([*poi_candidates, *routing_candidates], merge_radius_m)
    await label_tolls(tolls, stops, geocoder, max_parallel)
    logger.info(
        f"Detected {len(tolls)} toll(s): {len(poi_candidates)} on-route POI, {len(routing_candidates)} routing candidates"
    )
    return TollDetectionResult(tolls=tolls)
