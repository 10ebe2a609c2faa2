"""Single-endpoint reachability probe.

Strategy selection follows the classifier:

- UDP-class targets (STUN/TURN/NTP-like) and targets with any non-HTTP scheme
  are judged from an ICE gathering run: a server-reflexive candidate means
  outbound UDP works.
- Everything else gets an HTTPS HEAD, and, if that did not succeed and enough
  of the time budget is left, a single plain-HTTP HEAD fallback.

A transport failure that arrives well before the timeout (before
``ambiguity_threshold`` of the budget has elapsed) cannot be told apart from
"the server answered but the answer was opaque", so it is counted as reachable.
A timeout is always an error.

``probe`` never raises: every failure becomes an ``error`` result.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

from reachability.config.signal_sources import SignalSources
from reachability.models.results import (
    EndpointProbeResult,
    FailureKind,
    ProbeMethod,
    ProbeStatus,
    WebRtcReport,
)
from reachability.probing.classifier import classify
from reachability.signals.ice import ConnectionFactory
from reachability.signals.webrtc import probe_nat_traversal

logger = logging.getLogger(__name__)

# Failures that say something definite about the request itself rather than
# the network path.
_EXPLICIT_FAILURES = (
    httpx.UnsupportedProtocol,
    httpx.InvalidURL,
    httpx.TooManyRedirects,
)


@dataclass
class _Attempt:
    """Outcome of one HEAD attempt."""

    method: ProbeMethod
    elapsed_ms: float
    success: bool
    failure_kind: FailureKind | None = None
    error: str | None = None


def _https_form(target: str) -> str:
    return target if "://" in target else f"https://{target}"


def _http_form(target: str) -> str:
    if target.lower().startswith("https://"):
        return "http://" + target[len("https://") :]
    return target if "://" in target else f"http://{target}"


def _method_for(url: str) -> ProbeMethod:
    return ProbeMethod.HTTP_HEAD if url.lower().startswith("http://") else ProbeMethod.HTTPS_HEAD


def _describe(exc: BaseException) -> str:
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


class ReachabilityProbe:
    """Runs one reachability check per call.

    Parameters
    ----------
    sources:
        Signal sources; the STUN/TURN servers are used for UDP-class targets.
    ambiguity_threshold:
        Fraction of an attempt's budget before which a generic transport
        failure is read as "reachable" (default 0.8).
    fallback_min_remaining_ms:
        The HTTP fallback only runs if more than this much budget remains.
    stun_timeout_ms:
        Gathering window for UDP-class targets.
    webrtc_enabled:
        When False, UDP-class targets report "WebRTC unsupported".
    transport:
        Optional httpx transport (tests inject ``httpx.MockTransport``).
    connection_factory:
        Optional ICE agent factory (tests inject fakes).
    clock:
        Monotonic clock in seconds.
    """

    def __init__(
        self,
        *,
        sources: SignalSources | None = None,
        ambiguity_threshold: float = 0.8,
        fallback_min_remaining_ms: int = 1000,
        stun_timeout_ms: int = 6000,
        webrtc_enabled: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
        connection_factory: ConnectionFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sources = sources or SignalSources()
        self._ambiguity_threshold = ambiguity_threshold
        self._fallback_min_remaining_ms = fallback_min_remaining_ms
        self._stun_timeout_ms = stun_timeout_ms
        self._webrtc_enabled = webrtc_enabled
        self._transport = transport
        self._connection_factory = connection_factory
        self._clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def probe(
        self,
        target: str,
        timeout_ms: int,
        *,
        stun_evidence: WebRtcReport | None = None,
    ) -> EndpointProbeResult:
        """Probe *target* within *timeout_ms*.

        *stun_evidence* is a NAT-traversal report gathered earlier (for
        instance by the interception detector); when given, UDP-class targets
        reuse it instead of opening a new ICE agent.
        """
        try:
            classification = classify(target)
            if classification.is_udp_class or not classification.is_http_capable:
                return await self._probe_udp(target, stun_evidence)
            return await self._probe_http(target, timeout_ms)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Probe for %s failed unexpectedly: %s",
                target,
                exc,
                extra={"target": target, "error_reason": _describe(exc)},
            )
            return EndpointProbeResult(
                target=target,
                status=ProbeStatus.ERROR,
                error=_describe(exc),
                failure_kind=FailureKind.UNKNOWN,
                completed_at=datetime.now(timezone.utc),
            )

    # ------------------------------------------------------------------
    # HTTP strategy
    # ------------------------------------------------------------------

    async def _probe_http(self, target: str, timeout_ms: int) -> EndpointProbeResult:
        first_url = _https_form(target)
        https = await self._attempt(first_url, timeout_ms, _method_for(first_url))
        if https.success:
            return self._result(target, https, https.elapsed_ms)

        fallback_url = _http_form(target)
        if fallback_url == first_url:
            # Explicit http:// target: the first attempt already was the fallback
            return self._result(target, https, https.elapsed_ms)

        remaining_ms = timeout_ms - https.elapsed_ms
        if remaining_ms <= self._fallback_min_remaining_ms:
            logger.debug(
                "No HTTP fallback for %s: %.0fms remaining",
                target,
                remaining_ms,
            )
            return self._result(target, https, https.elapsed_ms)

        http = await self._attempt(fallback_url, remaining_ms, ProbeMethod.HTTP_HEAD)
        return self._result(target, http, https.elapsed_ms + http.elapsed_ms)

    async def _attempt(self, url: str, budget_ms: float, method: ProbeMethod) -> _Attempt:
        """Issue one HEAD request to *url* bounded by *budget_ms*."""
        budget_s = budget_ms / 1000.0
        start = self._clock()

        def _elapsed_ms() -> float:
            return (self._clock() - start) * 1000.0

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                follow_redirects=True,
                timeout=httpx.Timeout(budget_s),
            ) as client:
                response = await asyncio.wait_for(client.head(url), timeout=budget_s)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return _Attempt(
                method=method,
                elapsed_ms=_elapsed_ms(),
                success=False,
                failure_kind=FailureKind.TIMEOUT,
                error=f"Timed out after {budget_ms:.0f}ms",
            )
        except _EXPLICIT_FAILURES as exc:
            return _Attempt(
                method=method,
                elapsed_ms=_elapsed_ms(),
                success=False,
                failure_kind=FailureKind.TRANSPORT_FAILED,
                error=_describe(exc),
            )
        except httpx.TransportError as exc:
            elapsed = _elapsed_ms()
            if elapsed < self._ambiguity_threshold * budget_ms:
                logger.debug(
                    "%s %s failed after %.0fms, counted as reachable: %s",
                    method.value,
                    url,
                    elapsed,
                    exc,
                )
                return _Attempt(
                    method=method,
                    elapsed_ms=elapsed,
                    success=True,
                    failure_kind=FailureKind.TRANSPORT_AMBIGUOUS,
                )
            return _Attempt(
                method=method,
                elapsed_ms=elapsed,
                success=False,
                failure_kind=FailureKind.TRANSPORT_FAILED,
                error=_describe(exc),
            )
        except httpx.HTTPError as exc:
            return _Attempt(
                method=method,
                elapsed_ms=_elapsed_ms(),
                success=False,
                failure_kind=FailureKind.TRANSPORT_FAILED,
                error=_describe(exc),
            )

        logger.debug("%s %s answered %d", method.value, url, response.status_code)
        return _Attempt(method=method, elapsed_ms=_elapsed_ms(), success=True)

    @staticmethod
    def _result(target: str, attempt: _Attempt, total_ms: float) -> EndpointProbeResult:
        return EndpointProbeResult(
            target=target,
            status=ProbeStatus.SUCCESS if attempt.success else ProbeStatus.ERROR,
            method=attempt.method,
            response_time_ms=int(round(total_ms)),
            error=None if attempt.success else attempt.error,
            failure_kind=attempt.failure_kind,
            completed_at=datetime.now(timezone.utc),
        )

    # ------------------------------------------------------------------
    # UDP strategy
    # ------------------------------------------------------------------

    async def _probe_udp(
        self, target: str, stun_evidence: WebRtcReport | None
    ) -> EndpointProbeResult:
        report = stun_evidence
        if report is None:
            window_s = self._stun_timeout_ms / 1000.0
            try:
                # ICE close() gets one extra second beyond the gathering window
                report = await asyncio.wait_for(
                    probe_nat_traversal(
                        self._sources,
                        window_seconds=window_s,
                        enabled=self._webrtc_enabled,
                        connection_factory=self._connection_factory,
                        clock=self._clock,
                    ),
                    timeout=window_s + 1.0,
                )
            except asyncio.TimeoutError:
                return EndpointProbeResult(
                    target=target,
                    status=ProbeStatus.ERROR,
                    method=ProbeMethod.WEBRTC_STUN,
                    response_time_ms=self._stun_timeout_ms,
                    error="STUN failed",
                    failure_kind=FailureKind.TIMEOUT,
                    completed_at=datetime.now(timezone.utc),
                )

        if report.stun_succeeded:
            status, error, kind = ProbeStatus.SUCCESS, None, None
        elif not report.supported:
            status, error, kind = ProbeStatus.ERROR, "WebRTC unsupported", FailureKind.CAPABILITY_UNSUPPORTED
        elif report.relay_only:
            status, error, kind = ProbeStatus.ERROR, "relay-only, UDP restricted", FailureKind.TRANSPORT_FAILED
        else:
            status, error, kind = ProbeStatus.ERROR, "STUN failed", FailureKind.TRANSPORT_FAILED

        return EndpointProbeResult(
            target=target,
            status=status,
            method=ProbeMethod.WEBRTC_STUN,
            response_time_ms=report.elapsed_ms,
            error=error,
            failure_kind=kind,
            completed_at=datetime.now(timezone.utc),
        )
