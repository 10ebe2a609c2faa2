"""WebRTC NAT-traversal probe.

Gathers ICE candidates and reports what they say about the path out of the
network: whether STUN produced a server-reflexive candidate, which candidate
types and transports were seen, and whether only relay candidates came back
(UDP blocked except through a TURN relay).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from reachability.config.signal_sources import SignalSources
from reachability.models.results import WebRtcReport
from reachability.signals.ice import ConnectionFactory, gather_candidates

logger = logging.getLogger(__name__)


async def probe_nat_traversal(
    sources: SignalSources,
    *,
    window_seconds: float = 6.0,
    enabled: bool = True,
    connection_factory: ConnectionFactory | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> WebRtcReport:
    """Run one ICE gathering window and summarise the candidates."""
    if not enabled:
        return WebRtcReport(supported=False, details=["ICE agent disabled by configuration"])

    outcome = await gather_candidates(
        sources, window_seconds, factory=connection_factory, clock=clock
    )

    if not outcome.supported:
        return WebRtcReport(
            supported=False,
            details=[f"ICE agent unavailable: {outcome.error}"],
            elapsed_ms=outcome.elapsed_ms,
        )

    types = sorted({c.candidate_type for c in outcome.candidates})
    protocols = sorted({c.protocol for c in outcome.candidates})
    stun_succeeded = "srflx" in types
    relay_only = bool(types) and set(types) == {"relay"}

    details = [f"Gathered {len(outcome.candidates)} candidate(s) in {outcome.elapsed_ms}ms"]
    if outcome.timed_out:
        details.append(f"Gathering window of {window_seconds:g}s elapsed before completion")
    if outcome.error:
        details.append(f"Gathering error: {outcome.error}")
    if not stun_succeeded:
        details.append(
            f"No server-reflexive candidate from {sources.stun_server.host}:{sources.stun_server.port}"
        )
    if relay_only:
        details.append("Only relay candidates observed; direct UDP appears blocked")

    report = WebRtcReport(
        supported=True,
        stun_succeeded=stun_succeeded,
        candidate_types=types,
        candidate_protocols=protocols,
        relay_only=relay_only,
        details=details,
        elapsed_ms=outcome.elapsed_ms,
    )
    logger.debug(
        "NAT traversal probe: stun_succeeded=%s types=%s relay_only=%s",
        report.stun_succeeded,
        report.candidate_types,
        report.relay_only,
    )
    return report
