"""Shared fixtures for the reachability test suite: settings, sources, fake clock and fake ICE agents."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field

import pytest

from reachability.config.settings import ReachabilitySettings
from reachability.config.signal_sources import SignalSources


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True, scope="session")
def _clear_reachability_env():
    """Keep the host environment from leaking into ReachabilitySettings."""
    saved = {k: v for k, v in os.environ.items() if k.startswith("REACHABILITY_")}
    for key in saved:
        del os.environ[key]
    yield
    os.environ.update(saved)


# ---------------------------------------------------------------------------
# Settings / sources
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> ReachabilitySettings:
    """Test settings with fast pauses and small limits."""
    return ReachabilitySettings(
        batch_concurrency=4,
        batch_chunk_pause_ms=0,
        max_batch_targets=50,
        max_concurrent_jobs=2,
        stun_probe_timeout_ms=500,
        local_discovery_window_ms=500,
        graceful_shutdown_seconds=1,
    )


@pytest.fixture
def sources() -> SignalSources:
    return SignalSources(
        ip_echo_url="https://echo.test/ip",
        header_echo_url="https://echo.test/headers",
        latency_url="https://latency.test/favicon.ico",
        tls_origins=["https://origin-a.test", "https://origin-b.test"],
        websocket_url="wss://ws.test/echo",
        stun_server="stun.test:3478",
    )


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# ICE
# ---------------------------------------------------------------------------

@dataclass
class FakeCandidate:
    host: str
    type: str = "host"
    transport: str = "udp"


@dataclass
class FakeIceConnection:
    """Stands in for aioice.Connection.

    Like the real agent, nothing is handed back until gathering returns. With
    ``silent_stun`` the STUN wait runs out its full timeout and only the host
    candidates come back.
    """

    candidates: list[FakeCandidate] = field(default_factory=list)
    hang: bool = False
    silent_stun: bool = False
    error: BaseException | None = None
    requested_timeout: float | None = None
    closed: bool = False

    async def get_component_candidates(
        self, component: int, addresses: list[str], timeout: float = 5
    ) -> list[FakeCandidate]:
        self.requested_timeout = timeout
        if self.error is not None:
            raise self.error
        if self.hang:
            await asyncio.sleep(3600)
        if self.silent_stun:
            await asyncio.sleep(timeout)
            return [c for c in self.candidates if c.type == "host"]
        return list(self.candidates)

    async def close(self) -> None:
        self.closed = True


class FakeIceFactory:
    """Connection factory that records every connection it hands out."""

    def __init__(
        self,
        *candidates: FakeCandidate,
        hang: bool = False,
        silent_stun: bool = False,
        error: BaseException | None = None,
    ) -> None:
        self._candidates = list(candidates)
        self._hang = hang
        self._silent_stun = silent_stun
        self._error = error
        self.connections: list[FakeIceConnection] = []

    def __call__(self, _sources: SignalSources) -> FakeIceConnection:
        connection = FakeIceConnection(
            candidates=list(self._candidates),
            hang=self._hang,
            silent_stun=self._silent_stun,
            error=self._error,
        )
        self.connections.append(connection)
        return connection


@pytest.fixture
def srflx_factory() -> FakeIceFactory:
    return FakeIceFactory(
        FakeCandidate("192.168.1.20", "host"),
        FakeCandidate("203.0.113.7", "srflx"),
    )


# ---------------------------------------------------------------------------
# Fake builders exposed to test modules
# ---------------------------------------------------------------------------

@dataclass
class IceFakes:
    factory: type[FakeIceFactory] = FakeIceFactory
    candidate: type[FakeCandidate] = FakeCandidate


@pytest.fixture
def ice() -> IceFakes:
    """``ice.factory(ice.candidate("1.2.3.4", "srflx"))`` builds a fake ICE factory."""
    return IceFakes()
