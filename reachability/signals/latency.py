"""Latency sampler: one timed HEAD to a well-known origin."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

import httpx

from reachability.config.signal_sources import SignalSources

logger = logging.getLogger(__name__)


async def sample_latency(
    sources: SignalSources,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> float:
    """Return the round-trip time in milliseconds.

    The elapsed time is reported whatever the outcome; a failed or timed-out
    request still says something about the path.
    """
    start = clock()
    try:
        async with httpx.AsyncClient(
            transport=transport, timeout=sources.latency_timeout_seconds
        ) as client:
            await asyncio.wait_for(
                client.head(sources.latency_url), timeout=sources.latency_timeout_seconds
            )
    except (httpx.HTTPError, asyncio.TimeoutError) as exc:
        logger.debug("Latency sample request failed: %s", exc)
    elapsed_ms = (clock() - start) * 1000.0
    return round(elapsed_ms, 1)
