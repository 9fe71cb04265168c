import asyncio
import json

import httpx
import pytest

from routeplanner.services.routing.ors_client import ORSClient, ORSError, parse_directions


def _feature() -> dict:
    return {
        "type": "Feature",
        "geometry": {"type": "LineString", "coordinates": [[10.0, 50.0], [10.1, 50.0], [10.2, 50.0], [10.3, 50.0]]},
        "properties": {
            "summary": {"distance": 3000.0, "duration": 240.0},
            "segments": [
                {
                    "distance": 3000.0,
                    "duration": 240.0,
                    "steps": [
                        {"name": "B 27", "distance": 2000.0, "duration": 160.0, "way_points": [0, 2]},
                        {"name": "-", "distance": 1000.0, "duration": 80.0, "way_points": [2, 3]},
                    ],
                }
            ],
        },
    }


def test_parse_directions_slices_geometry_by_way_points() -> None:
    response = parse_directions(_feature(), 2)
    steps = response.legs[0].steps

    assert response.provider == "ors"
    assert response.order == [0, 1]
    assert steps[0].coordinates == [(50.0, 10.0), (50.0, 10.1), (50.0, 10.2)]
    assert steps[1].coordinates == [(50.0, 10.2), (50.0, 10.3)]
    assert steps[1].name == ""


def test_directions_requests_unpaved_avoidance() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "secret"
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"type": "FeatureCollection", "features": [_feature()]})

    client = ORSClient(api_key="secret", base_url="http://ors.test", transport=httpx.MockTransport(handler))
    response = asyncio.run(client.directions([(50.0, 10.0), (50.0, 10.3)], avoid_unpaved=True))

    assert response.distance == 3000.0
    assert bodies[0]["coordinates"] == [[10.0, 50.0], [10.3, 50.0]]
    assert bodies[0]["options"] == {"avoid_features": ["unpaved"]}


def test_directions_http_error_raises_ors_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": "Access to this API has been disallowed"})

    client = ORSClient(api_key="bad", base_url="http://ors.test", transport=httpx.MockTransport(handler))

    with pytest.raises(ORSError, match="403"):
        asyncio.run(client.directions([(50.0, 10.0), (50.0, 10.3)]))


def test_client_requires_api_key(monkeypatch) -> None:
    from routeplanner.config import settings

    monkeypatch.setattr(settings, "ors_api_key", None)

    with pytest.raises(ValueError):
        ORSClient()
