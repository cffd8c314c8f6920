"""
Connectivity probe for the pump endpoint.
"""

from __future__ import annotations

import logging
import time

import httpx

from models.status import ConnectivityResult


async def probe_actuator(client: httpx.AsyncClient, base_url: str, timeout_s: float = 3.0) -> ConnectivityResult:
    """
    Bare GET against the device root. 2xx => online, anything else => offline.

    Never raises: transport errors, timeouts and malformed URLs are reported
    as offline with an error description.
    """
    url = base_url.rstrip("/") or base_url
    start = time.perf_counter()
    try:
        response = await client.get(url, timeout=timeout_s)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logging.info(f"Actuator probe failed for {url}: {e!r}")
        return ConnectivityResult(online=False, url=url, error=str(e) or type(e).__name__)

    latency_ms = (time.perf_counter() - start) * 1000.0
    online = response.is_success
    return ConnectivityResult(
        online=online,
        url=url,
        status_code=response.status_code,
        latency_ms=round(latency_ms, 1),
        error=None if online else f"HTTP {response.status_code}",
    )
