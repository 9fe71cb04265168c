"""Nominatim (OpenStreetMap) forward and reverse geocoding."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ...config import settings
from ...models.domain import Address, Location
from ..http import request_json

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10


class GeocodingError(ConnectionError):
    """The geocoding service could not be queried."""


def _first(mapping: dict, *keys: str) -> str:
    for key in keys:
        value = mapping.get(key)
        if value:
            return str(value)
    return ""


def parse_address(raw: dict | None) -> Address:
    """Normalize Nominatim ``address`` details into an ``Address``."""
    addr = raw or {}
    city = _first(addr, "city", "town", "village", "municipality") or _first(addr, "suburb", "neighbourhood")
    return Address(
        street=_first(addr, "road", "pedestrian", "street", "highway") or None,
        number=_first(addr, "house_number") or None,
        city=city or None,
        state=_first(addr, "state") or None,
        postcode=_first(addr, "postcode") or None,
    )


def display_name_for(item: dict, address: Address) -> str:
    """Prefer "Street, Number" unless the place carries its own name."""
    street = address.street or ""
    number = address.number or ""
    name = item.get("name") or ""

    if not name or name == number or (street and street not in name):
        if street:
            return f"{street}, {number}" if number else street
        if address.city:
            return address.city
        return name or item.get("display_name", "")
    if number and number not in name:
        return f"{name}, {number}"
    return name


def _to_location(item: dict) -> Location:
    address = parse_address(item.get("address"))
    return Location(
        lat=float(item["lat"]),
        lng=float(item["lon"]),
        name=display_name_for(item, address),
        display_name=item.get("display_name"),
        address=address,
    )


class NominatimClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.nominatim_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.nominatim_timeout_seconds
        self.user_agent = user_agent or settings.user_agent
        self._transport = transport

    async def _get(self, path: str, params: dict):
        try:
            return await request_json(
                service="Nominatim",
                method="GET",
                url=f"{self.base_url}/{path}",
                params={"format": "json", "addressdetails": 1, **params},
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
                transport=self._transport,
            )
        except (httpx.HTTPError, ConnectionError, ValueError) as e:
            raise GeocodingError(f"Nominatim {path} request failed: {e}") from e

    async def search(self, query: str) -> list[Location]:
        """Candidate stops for a free-text address, de-duplicated on ~10 m."""
        if not query or not query.strip():
            return []
        data = await self._get("search", {"q": query, "limit": SEARCH_LIMIT})

        seen: set[str] = set()
        results: list[Location] = []
        for item in data or []:
            try:
                location = _to_location(item)
            except (KeyError, TypeError, ValueError):
                logger.debug(f"Skipping malformed Nominatim result: {item}")
                continue
            key = f"{location.lat:.4f}-{location.lng:.4f}"
            if key in seen:
                continue
            seen.add(key)
            results.append(location)
        return results

    async def reverse(self, lat: float, lng: float) -> Optional[Location]:
        """Place at a coordinate, or None when Nominatim knows nothing there."""
        data = await self._get("reverse", {"lat": lat, "lon": lng})
        if not data or not data.get("address"):
            return None
        return _to_location(data)
