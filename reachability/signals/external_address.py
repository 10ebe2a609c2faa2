"""External-address lookup through a public IP-echo service."""

from __future__ import annotations

import asyncio
import logging

import httpx

from reachability.config.signal_sources import SignalSources
from reachability.validators.ip import extract_ipv4

logger = logging.getLogger(__name__)


async def lookup_external_address(
    sources: SignalSources,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str | None:
    """Return the public IPv4 address seen by the echo service, or None."""
    try:
        async with httpx.AsyncClient(
            transport=transport, timeout=sources.ip_echo_timeout_seconds
        ) as client:
            response = await asyncio.wait_for(
                client.get(sources.ip_echo_url), timeout=sources.ip_echo_timeout_seconds
            )
            response.raise_for_status()
            payload = response.json()
    except (httpx.HTTPError, asyncio.TimeoutError, ValueError) as exc:
        logger.debug("External address lookup failed: %s", exc)
        return None

    if isinstance(payload, dict):
        value = payload.get("ip")
        if isinstance(value, str):
            return extract_ipv4(value)
    return None
