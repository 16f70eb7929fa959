from __future__ import annotations

import logging
from typing import Any

import aiohttp

logger = logging.getLogger(__name__)

_session: aiohttp.ClientSession | None = None


async def get_session() -> aiohttp.ClientSession:
    global _session
    if _session is None or _session.closed:
        timeout = aiohttp.ClientTimeout(total=30, connect=10)
        _session = aiohttp.ClientSession(
            timeout=timeout,
            headers={"User-Agent": "TripCompanion/1.0 (trip monitor)"},
        )
    return _session


async def close_session() -> None:
    global _session
    if _session and not _session.closed:
        await _session.close()
        _session = None


async def get_json_once(
    url: str,
    params: dict[str, Any] | None = None,
    timeout: float | None = None,
) -> tuple[int, Any]:
    """Single GET returning ``(status, body)``.

    Error statuses are returned with a ``None`` body and are never decoded,
    since gateways often answer them with HTML. Transport failures, timeouts
    and undecodable success bodies propagate to the caller.
    """
    session = await get_session()
    client_timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None
    async with session.get(url, params=params, timeout=client_timeout) as resp:
        if resp.status >= 400:
            logger.warning("GET %s returned %d", url, resp.status)
            return resp.status, None
        body = await resp.json(content_type=None)
        return resp.status, body


async def post_json(
    url: str,
    payload: Any = None,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
) -> int:
    """POST a JSON body and return the response status."""
    session = await get_session()
    async with session.post(url, json=payload, headers=headers, params=params) as resp:
        if resp.status >= 400:
            logger.warning("POST %s returned %d", url, resp.status)
        return resp.status
