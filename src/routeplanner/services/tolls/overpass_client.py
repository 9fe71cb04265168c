"""
Overpass API client for toll booth lookups.

Queries OpenStreetMap nodes tagged as toll booths inside a bounding box and
normalizes them into ``TollNode`` records.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ...config import settings
from ..http import request_json

logger = logging.getLogger(__name__)


class OverpassError(ConnectionError):
    """Overpass API unreachable or returned an unusable answer."""


@dataclass(slots=True)
class TollNode:
    lat: float
    lng: float
    name: Optional[str] = None
    operator: Optional[str] = None


def build_toll_query(south: float, west: float, north: float, east: float, timeout_s: int = 5) -> str:
    bbox = f"{south},{west},{north},{east}"
    return f"""[out:json][timeout:{timeout_s}];
(
  node["barrier"="toll_booth"]({bbox});
  node["toll:type"]({bbox});
);
out body;"""


class OverpassClient:
    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url or settings.overpass_url
        self.timeout = timeout if timeout is not None else settings.overpass_timeout_seconds
        self.user_agent = user_agent or settings.user_agent
        self._transport = transport

    async def toll_booths(self, bounds: tuple[float, float, float, float]) -> list[TollNode]:
        """Toll booth nodes inside ``(south, west, north, east)``."""
        query = build_toll_query(*bounds, timeout_s=max(1, int(self.timeout)))
        south, west, north, east = bounds
        logger.info(f"Overpass toll query for bbox {south:.4f},{west:.4f},{north:.4f},{east:.4f}")
        try:
            data = await request_json(
                service="Overpass",
                method="POST",
                url=self.url,
                data={"data": query},
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
                transport=self._transport,
            )
        except httpx.HTTPStatusError as e:
            raise OverpassError(f"Overpass API error: HTTP {e.response.status_code}") from e
        except ValueError as e:
            raise OverpassError("Overpass API returned an invalid response") from e

        nodes: list[TollNode] = []
        for element in data.get("elements", []):
            if element.get("type") != "node" or "lat" not in element or "lon" not in element:
                continue
            tags = element.get("tags") or {}
            nodes.append(
                TollNode(
                    lat=float(element["lat"]),
                    lng=float(element["lon"]),
                    name=tags.get("name"),
                    operator=tags.get("operator"),
                )
            )
        logger.info(f"Overpass response: {len(nodes)} toll nodes")
        return nodes
