"""Shared httpx helpers for the remote store adapters."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


def service_headers(api_key: str | None) -> dict[str, str]:
    headers: dict[str, str] = {}
    if api_key:
        headers["apikey"] = api_key
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


def error_detail(resp: httpx.Response) -> str:
    """Extract the service's error message from a failed response."""
    try:
        data = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(data, dict):
        for key in ("message", "error_description", "error", "msg"):
            if data.get(key):
                return str(data[key])
    return f"HTTP {resp.status_code}"


def _backoff(attempt: int) -> float:
    return 0.5 * (2 ** attempt)


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    max_retries: int = 1,
    **kwargs: Any,
) -> httpx.Response:
    """Send a store request, retrying server errors and dropped connections.

    A 4xx answer is returned at once: the store rejected the payload and
    sending it again cannot help. After ``max_retries`` extra attempts the
    last 5xx response is returned, or the last transport error re-raised.
    """
    attempts = max(1, max_retries + 1)
    response: httpx.Response | None = None

    for attempt in range(attempts):
        remaining = attempts - attempt - 1
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            if not remaining:
                raise
            logger.warning(
                "Store unreachable at %s (%s); %d retries left", url, exc, remaining
            )
        else:
            if response.status_code < 500 or not remaining:
                return response
            logger.warning(
                "Store answered %d for %s; %d retries left",
                response.status_code, url, remaining,
            )
        await asyncio.sleep(_backoff(attempt))

    assert response is not None
    return response
