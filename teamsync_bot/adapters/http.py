"""Shared request helper turning ``httpx`` errors into :class:`RemoteCallFailure`."""

from __future__ import annotations

from typing import Any

import httpx

from ..core.errors import RemoteCallFailure

DEFAULT_TIMEOUT = httpx.Timeout(10.0)


async def send(
    client: httpx.AsyncClient, service: str, method: str, url: str, **kwargs: Any
) -> httpx.Response:
    """Perform a request and raise :class:`RemoteCallFailure` unless it succeeded."""
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        raise RemoteCallFailure(None, str(exc) or type(exc).__name__, service) from exc

    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise RemoteCallFailure(response.status_code, response.text, service) from exc
    return response
