"""Interception verdict aggregation.

All collectors run concurrently and their outputs are frozen into a
``SignalSnapshot``. The snapshot is turned into a list of typed signals, and
an ordered tuple of rules is folded over those signals: each matching rule
appends its label and may raise the confidence to its floor. Confidence is
never lowered.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx

from reachability.config.signal_sources import SignalSources
from reachability.models.results import (
    Confidence,
    DetectionDetails,
    InterceptionSignal,
    IpMismatchSignal,
    LatencySignal,
    ProxyDetectionResult,
    ProxyHeaderSignal,
    RelayOnlySignal,
    TlsInspectionReport,
    TlsInspectionSignal,
    TransportCapabilityReport,
    WebRtcReport,
    WebrtcBlockedSignal,
)
from reachability.signals.external_address import lookup_external_address
from reachability.signals.header_echo import probe_proxy_headers
from reachability.signals.ice import ConnectionFactory
from reachability.signals.latency import sample_latency
from reachability.signals.local_candidates import discover_local_addresses
from reachability.signals.tls_inspection import probe_tls_inspection
from reachability.signals.transport import probe_quic_capability
from reachability.signals.webrtc import probe_nat_traversal
from reachability.validators.ip import is_private_ip

logger = logging.getLogger(__name__)

HIGH_LATENCY_MS = 1000


@dataclass(frozen=True)
class SignalSnapshot:
    """Everything the collectors observed during one detection run."""

    external_ip: str | None = None
    local_ips: tuple[str, ...] = ()
    proxy_headers: dict[str, str] = field(default_factory=dict)
    latency_ms: float | None = None
    tls: TlsInspectionReport | None = None
    webrtc: WebRtcReport | None = None
    quic: TransportCapabilityReport | None = None


# ---------------------------------------------------------------------------
# Signal extraction
# ---------------------------------------------------------------------------


def _public_mismatch(external_ip: str, local_ips: Sequence[str]) -> bool:
    # A public interface is expected when the external address is among the candidates.
    return any(not is_private_ip(ip) for ip in local_ips) and external_ip not in local_ips


def extract_signals(snapshot: SignalSnapshot) -> list[InterceptionSignal]:
    """Derive the interception signals present in *snapshot*."""
    signals: list[InterceptionSignal] = []
    if snapshot.proxy_headers:
        signals.append(ProxyHeaderSignal(headers=dict(snapshot.proxy_headers)))
    if snapshot.tls is not None and snapshot.tls.detected:
        signals.append(TlsInspectionSignal(details=list(snapshot.tls.details)))
    if (
        snapshot.external_ip
        and snapshot.local_ips
        and _public_mismatch(snapshot.external_ip, snapshot.local_ips)
    ):
        signals.append(
            IpMismatchSignal(external_ip=snapshot.external_ip, local_ips=list(snapshot.local_ips))
        )
    if snapshot.latency_ms is not None:
        signals.append(LatencySignal(ms=snapshot.latency_ms))
    if not snapshot.local_ips:
        signals.append(WebrtcBlockedSignal())
    if snapshot.webrtc is not None and snapshot.webrtc.relay_only:
        signals.append(RelayOnlySignal())
    return signals


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VerdictRule:
    """A labelled predicate over the signal list with an optional confidence floor."""

    label: str
    floor: Confidence | None
    predicate: Callable[[Sequence[InterceptionSignal]], bool]


def _has(kind: type) -> Callable[[Sequence[InterceptionSignal]], bool]:
    return lambda signals: any(isinstance(s, kind) for s in signals)


def _high_latency(signals: Sequence[InterceptionSignal]) -> bool:
    return any(isinstance(s, LatencySignal) and s.ms > HIGH_LATENCY_MS for s in signals)


RULES: tuple[VerdictRule, ...] = (
    VerdictRule("Proxy headers detected", Confidence.HIGH, _has(ProxyHeaderSignal)),
    VerdictRule("SSL inspection detected", Confidence.HIGH, _has(TlsInspectionSignal)),
    VerdictRule("IP address mismatch", Confidence.MEDIUM, _has(IpMismatchSignal)),
    VerdictRule(f"High network timing detected (>{HIGH_LATENCY_MS}ms)", None, _high_latency),
    VerdictRule("WebRTC blocked (possible proxy)", None, _has(WebrtcBlockedSignal)),
)


def fold(
    signals: Sequence[InterceptionSignal],
    rules: Sequence[VerdictRule] = RULES,
) -> tuple[Confidence, list[str]]:
    """Apply *rules* in order; return the final confidence and method labels."""
    confidence = Confidence.LOW
    methods: list[str] = []
    for rule in rules:
        if rule.predicate(signals):
            methods.append(rule.label)
            if rule.floor is not None:
                confidence = confidence.escalate(rule.floor)
    return confidence, methods


def build_verdict(snapshot: SignalSnapshot) -> ProxyDetectionResult:
    """Fold *snapshot* into a ``ProxyDetectionResult``."""
    signals = extract_signals(snapshot)
    confidence, methods = fold(signals)
    return ProxyDetectionResult(
        detected=bool(methods),
        confidence=confidence,
        methods=methods,
        details=DetectionDetails(
            external_ip=snapshot.external_ip,
            local_ips=list(snapshot.local_ips),
            headers=dict(snapshot.proxy_headers),
            latency_ms=snapshot.latency_ms,
        ),
        signals=signals,
        ssl_inspection=snapshot.tls,
        webrtc=snapshot.webrtc,
        quic=snapshot.quic,
    )


# ---------------------------------------------------------------------------
# Detector
# ---------------------------------------------------------------------------


class InterceptionDetector:
    """Runs every signal collector concurrently and folds the verdict."""

    def __init__(
        self,
        sources: SignalSources | None = None,
        *,
        local_window_seconds: float = 3.0,
        nat_window_seconds: float = 6.0,
        webrtc_enabled: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
        connection_factory: ConnectionFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sources = sources or SignalSources()
        self._local_window_seconds = local_window_seconds
        self._nat_window_seconds = nat_window_seconds
        self._webrtc_enabled = webrtc_enabled
        self._transport = transport
        self._connection_factory = connection_factory
        self._clock = clock

    async def collect(self) -> SignalSnapshot:
        """Run all collectors and freeze what they saw."""
        sources = self._sources
        outcomes = await asyncio.gather(
            lookup_external_address(sources, transport=self._transport),
            discover_local_addresses(
                sources,
                window_seconds=self._local_window_seconds,
                enabled=self._webrtc_enabled,
                connection_factory=self._connection_factory,
                clock=self._clock,
            ),
            probe_proxy_headers(sources, transport=self._transport),
            sample_latency(sources, transport=self._transport, clock=self._clock),
            probe_tls_inspection(sources, transport=self._transport, clock=self._clock),
            probe_nat_traversal(
                sources,
                window_seconds=self._nat_window_seconds,
                enabled=self._webrtc_enabled,
                connection_factory=self._connection_factory,
                clock=self._clock,
            ),
            return_exceptions=True,
        )
        external_ip, local_ips, headers, latency_ms, tls, webrtc = (
            _absent_on_error(name, value)
            for name, value in zip(
                ("external_address", "local_candidates", "header_echo", "latency", "tls", "webrtc"),
                outcomes,
            )
        )
        return SignalSnapshot(
            external_ip=external_ip,
            local_ips=tuple(local_ips or ()),
            proxy_headers=dict(headers or {}),
            latency_ms=latency_ms,
            tls=tls,
            webrtc=webrtc,
            quic=probe_quic_capability(),
        )

    async def detect(self) -> ProxyDetectionResult:
        snapshot = await self.collect()
        result = build_verdict(snapshot)
        logger.info(
            "Interception verdict: detected=%s confidence=%s methods=%s",
            result.detected,
            result.confidence.value,
            result.methods,
        )
        return result


def _absent_on_error(name: str, value: Any) -> Any:
    if isinstance(value, BaseException):
        if isinstance(value, asyncio.CancelledError):
            raise value
        logger.warning("Signal collector %s raised %r; treating signal as absent", name, value)
        return None
    return value


async def detect_interception(
    sources: SignalSources | None = None, **kwargs: Any
) -> ProxyDetectionResult:
    """One-shot convenience wrapper around ``InterceptionDetector.detect``."""
    return await InterceptionDetector(sources, **kwargs).detect()
