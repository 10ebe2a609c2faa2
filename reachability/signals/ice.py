"""ICE candidate gathering through aioice.

Both the local-candidate discovery collector and the NAT-traversal probe open
their own short-lived ICE agent, gather candidates against the configured
STUN (and optional TURN) server within a bounded window, and tear the agent
down again.

Candidates are requested per component with the gathering window handed to
the agent as its STUN wait, so a silent STUN server still leaves the host
candidates in the result instead of timing the whole gather out.

Teardown happens on every exit path, including timeouts and cancellation, so
no UDP socket outlives the gathering window.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import aioice
import aioice.ice

from reachability.config.signal_sources import SignalSources
from reachability.models.results import CandidateAddress

logger = logging.getLogger(__name__)

# Takes the configured sources, returns an object with the aioice.Connection
# surface used here: get_component_candidates() and close().
ConnectionFactory = Callable[[SignalSources], Any]

# Extra time allowed past the window for TURN allocation, which aioice does not bound.
AGENT_SLACK_SECONDS = 0.5


def create_connection(sources: SignalSources) -> aioice.Connection:
    """Build a controlling, single-component, IPv4-only ICE agent."""
    turn = sources.turn_server
    return aioice.Connection(
        ice_controlling=True,
        components=1,
        stun_server=sources.stun_server.as_tuple(),
        turn_server=turn.as_tuple() if turn else None,
        turn_username=turn.username if turn else None,
        turn_password=turn.password if turn else None,
        use_ipv6=False,
    )


@dataclass
class GatherOutcome:
    """What one gathering window produced."""

    supported: bool
    candidates: list[CandidateAddress] = field(default_factory=list)
    timed_out: bool = False
    error: str | None = None
    elapsed_ms: int = 0


@asynccontextmanager
async def ice_session(
    sources: SignalSources, factory: ConnectionFactory | None = None
) -> AsyncIterator[Any]:
    """Open an ICE agent and guarantee it is closed afterwards."""
    connection = (factory or create_connection)(sources)
    try:
        yield connection
    finally:
        try:
            await connection.close()
        except Exception:  # noqa: BLE001
            logger.debug("ICE agent close failed", exc_info=True)


def ipv4_host_addresses() -> list[str]:
    return aioice.ice.get_host_addresses(use_ipv4=True, use_ipv6=False)


def _to_candidate_address(candidate: Any) -> CandidateAddress:
    return CandidateAddress(
        address=str(candidate.host),
        candidate_type=str(candidate.type).lower(),
        protocol=str(candidate.transport).lower(),
    )


async def gather_candidates(
    sources: SignalSources,
    window_seconds: float,
    *,
    factory: ConnectionFactory | None = None,
    host_addresses: Callable[[], list[str]] = ipv4_host_addresses,
    clock: Callable[[], float] = time.monotonic,
) -> GatherOutcome:
    """Gather ICE candidates for at most *window_seconds*.

    Never raises (other than cancellation). An environment that cannot open
    an ICE agent at all is reported as ``supported=False``.
    """
    start = clock()

    def _elapsed_ms() -> int:
        return int(round((clock() - start) * 1000))

    try:
        async with ice_session(sources, factory) as connection:
            timed_out = False
            try:
                gathered = await asyncio.wait_for(
                    connection.get_component_candidates(
                        component=1, addresses=host_addresses(), timeout=window_seconds
                    ),
                    timeout=window_seconds + AGENT_SLACK_SECONDS,
                )
            except asyncio.TimeoutError:
                gathered, timed_out = [], True
            candidates = [_to_candidate_address(c) for c in gathered]
    except (PermissionError, NotImplementedError) as exc:
        logger.info("ICE gathering unavailable in this environment: %s", exc)
        return GatherOutcome(supported=False, error=str(exc) or type(exc).__name__, elapsed_ms=_elapsed_ms())
    except Exception as exc:  # noqa: BLE001
        logger.debug("ICE gathering failed: %s", exc)
        return GatherOutcome(supported=True, error=str(exc) or type(exc).__name__, elapsed_ms=_elapsed_ms())

    logger.debug(
        "Gathered %d ICE candidates (timed_out=%s)",
        len(candidates),
        timed_out,
    )
    return GatherOutcome(
        supported=True,
        candidates=candidates,
        timed_out=timed_out,
        elapsed_ms=_elapsed_ms(),
    )
