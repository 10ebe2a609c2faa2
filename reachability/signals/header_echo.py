"""Header-echo probe.

Asks a header-reflecting service which request headers actually arrived and
looks for the ones forwarding proxies add. The response headers are scanned
too, since some proxies stamp ``Via`` on the way back.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from reachability.config.signal_sources import SignalSources

logger = logging.getLogger(__name__)

PROXY_HEADERS = (
    "Via",
    "X-Forwarded-For",
    "X-Forwarded-Host",
    "X-Forwarded-Proto",
    "X-Real-IP",
    "X-Proxy-Authorization",
    "Proxy-Authorization",
    "X-Forwarded-Server",
    "X-Cluster-Client-IP",
)

_PROXY_HEADER_LOOKUP = {name.lower(): name for name in PROXY_HEADERS}


def match_proxy_headers(*header_sets: dict[str, str] | httpx.Headers) -> dict[str, str]:
    """Return proxy-indicative headers found in any of *header_sets*.

    Matching is case-insensitive; keys in the result use the canonical
    spelling from ``PROXY_HEADERS``. The first occurrence wins.
    """
    found: dict[str, str] = {}
    for headers in header_sets:
        for name, value in headers.items():
            canonical = _PROXY_HEADER_LOOKUP.get(str(name).lower())
            if canonical is not None and canonical not in found:
                found[canonical] = str(value)
    return found


async def probe_proxy_headers(
    sources: SignalSources,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, str]:
    """Return the proxy headers seen on a round trip to the echo service."""
    try:
        async with httpx.AsyncClient(
            transport=transport, timeout=sources.header_echo_timeout_seconds
        ) as client:
            response = await asyncio.wait_for(
                client.get(sources.header_echo_url), timeout=sources.header_echo_timeout_seconds
            )
    except (httpx.HTTPError, asyncio.TimeoutError) as exc:
        logger.debug("Header echo probe failed: %s", exc)
        return {}

    echoed: dict[str, str] = {}
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("headers"), dict):
        echoed = {str(k): str(v) for k, v in payload["headers"].items()}

    return match_proxy_headers(echoed, response.headers)
