"""Shared async HTTP helper for the external map services."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


async def request_json(
    *,
    service: str,
    method: str,
    url: str,
    timeout: float,
    max_retries: int = 0,
    backoff_seconds: float = 1.0,
    params: dict | None = None,
    data: dict | None = None,
    json_body: Any = None,
    headers: dict | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    accept_statuses: tuple[int, ...] = (),
) -> Any:
    """Issue one request and decode the JSON body.

    Transient network errors are retried ``max_retries`` times with exponential
    backoff. HTTP error statuses are raised as ``httpx.HTTPStatusError`` unless
    listed in ``accept_statuses`` (OSRM answers 400 with a JSON error code).
    Connection problems surface as ``ConnectionError``.
    """
    attempt = 0
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(timeout, connect=10.0),
        headers=headers,
        transport=transport,
    ) as client:
        while True:
            try:
                response = await client.request(method, url, params=params, data=data, json=json_body)
                if response.status_code not in accept_statuses:
                    response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError:
                raise
            except (httpx.TimeoutException, httpx.NetworkError) as e:
                attempt += 1
                if attempt > max_retries:
                    logger.warning(f"{service} request failed after {attempt} attempt(s): {e}")
                    raise ConnectionError(f"{service} service is not reachable: {e}") from e
                wait_time = backoff_seconds * (2 ** (attempt - 1))
                logger.debug(f"{service} network error, retrying in {wait_time:.1f}s (attempt {attempt}/{max_retries}): {e}")
                await asyncio.sleep(wait_time)
