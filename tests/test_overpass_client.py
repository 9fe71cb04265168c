import asyncio
import logging
from urllib.parse import parse_qs

import httpx
import pytest

from routeplanner.services.tolls import OverpassClient, OverpassError, TollNode


def _client(handler) -> OverpassClient:
    return OverpassClient(url="http://overpass.test/api/interpreter", transport=httpx.MockTransport(handler))


def test_toll_booths_parses_nodes_and_logs_query(caplog) -> None:
    queries: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        queries.append(parse_qs(request.content.decode())["data"][0])
        return httpx.Response(
            200,
            json={
                "elements": [
                    {"type": "node", "lat": -23.1, "lon": -46.9, "tags": {"name": "Praça Itupeva", "operator": "AutoBAn"}},
                    {"type": "node", "lat": -23.2, "lon": -46.8},
                    {"type": "way", "id": 7},
                ]
            },
        )

    with caplog.at_level(logging.INFO, logger="routeplanner.services.tolls.overpass_client"):
        nodes = asyncio.run(_client(handler).toll_booths((-23.5, -47.0, -23.0, -46.5)))

    assert nodes == [
        TollNode(lat=-23.1, lng=-46.9, name="Praça Itupeva", operator="AutoBAn"),
        TollNode(lat=-23.2, lng=-46.8),
    ]
    assert 'node["barrier"="toll_booth"](-23.5,-47.0,-23.0,-46.5);' in queries[0]
    assert "Overpass toll query for bbox -23.5000,-47.0000,-23.0000,-46.5000" in caplog.text
    assert "Overpass response: 2 toll nodes" in caplog.text


def test_toll_booths_http_error_raises_overpass_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(504, text="Gateway Timeout")

    with pytest.raises(OverpassError, match="504"):
        asyncio.run(_client(handler).toll_booths((0.0, 0.0, 1.0, 1.0)))
