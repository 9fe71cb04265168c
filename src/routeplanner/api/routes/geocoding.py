"""Geocoding endpoints used to resolve addresses into stops."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Query, status

from ...schemas.routing import StopModel
from ...services.geocoding import nominatim
from ...services.geocoding.nominatim import GeocodingError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/geocode", tags=["geocoding"])


@router.get("/search", response_model=List[StopModel], status_code=status.HTTP_200_OK)
async def search(q: str = Query(..., min_length=1, description="Free-text address")) -> List[StopModel]:
    try:
        locations = await nominatim.NominatimClient().search(q)
    except GeocodingError as exc:
        logger.warning(f"Address search failed for '{q}': {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return [StopModel.from_domain(location) for location in locations]


@router.get("/reverse", response_model=StopModel, status_code=status.HTTP_200_OK)
async def reverse(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
) -> StopModel:
    try:
        location = await nominatim.NominatimClient().reverse(lat, lng)
    except GeocodingError as exc:
        logger.warning(f"Reverse geocoding failed for ({lat}, {lng}): {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    if location is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No address found at this position.")
    return StopModel.from_domain(location)
