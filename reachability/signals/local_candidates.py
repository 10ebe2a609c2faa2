"""Local-candidate discovery.

Surfaces the addresses an ICE agent would advertise (host and server-reflexive
candidates). An empty list is meaningful: it is what a browser-like client
behind a proxy that blocks UDP usually sees.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from reachability.config.signal_sources import SignalSources
from reachability.signals.ice import ConnectionFactory, gather_candidates
from reachability.validators.ip import is_ipv4_literal

logger = logging.getLogger(__name__)


async def discover_local_addresses(
    sources: SignalSources,
    *,
    window_seconds: float = 3.0,
    enabled: bool = True,
    connection_factory: ConnectionFactory | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> list[str]:
    """Return distinct IPv4 addresses from the gathered candidates, in order."""
    if not enabled:
        return []

    outcome = await gather_candidates(
        sources, window_seconds, factory=connection_factory, clock=clock
    )

    addresses: list[str] = []
    for candidate in outcome.candidates:
        if is_ipv4_literal(candidate.address) and candidate.address not in addresses:
            addresses.append(candidate.address)

    logger.debug("Local discovery found %d address(es)", len(addresses))
    return addresses
