"""Routing endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...models.domain import RoutingPreferences
from ...schemas.routing import (
    NavigationLinkRequest,
    NavigationLinks,
    OptimizedRouteModel,
    RoutingRequest,
    RoutingResponse,
)
from ...services.navigation.links import build_google_maps_url, build_waze_url
from ...services.outputs.route_formatter import route_summary, route_to_geojson
from ...services.routing import service as routing_service
from ...services.routing.ordering import RouteNotComputedError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post("/optimize", response_model=RoutingResponse, status_code=status.HTTP_200_OK)
async def optimize(payload: RoutingRequest) -> RoutingResponse:
    preferences = RoutingPreferences(
        round_trip=payload.round_trip,
        avoid_unpaved=payload.avoid_unpaved,
        path_provider=payload.path_provider,
    )
    stops = []
    try:
        stops = [stop.to_domain() for stop in payload.stops]
        route = await routing_service.plan_route(stops, preferences)
    except RouteNotComputedError as exc:
        logger.warning(f"Route could not be computed for {len(stops)} stops: {exc.detail}")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error planning route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to plan route: {str(exc)}",
        ) from exc

    return RoutingResponse(
        route=OptimizedRouteModel.from_domain(route),
        links=NavigationLinks(
            google_maps=build_google_maps_url(route, payload.avoid_unpaved),
            waze=build_waze_url(route),
        ),
        summary=route_summary(route),
        geojson=route_to_geojson(route) if payload.include_geojson else None,
    )


@router.post("/navigation-link", response_model=NavigationLinks, status_code=status.HTTP_200_OK)
def navigation_link(payload: NavigationLinkRequest) -> NavigationLinks:
    """Rebuild navigation links for a previously planned route."""
    try:
        route = payload.route.to_domain()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return NavigationLinks(
        google_maps=build_google_maps_url(route, payload.avoid_unpaved),
        waze=build_waze_url(route),
    )
