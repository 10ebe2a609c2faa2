"""TLS-inspection heuristic probe.

Sends parallel HEAD requests to a few well-known HTTPS origins and scans what
comes back for the fingerprints an intercepting middlebox leaves: vendor or
"proxy"/"firewall" style tokens in response header values, or in the issuer of
the certificate the client was actually shown. A secure WebSocket handshake is
attempted as well, since TLS-terminating proxies often refuse upgrades.

This is a heuristic. Nothing here validates certificate chains.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from reachability.config.signal_sources import SignalSources
from reachability.models.results import TlsInspectionReport

logger = logging.getLogger(__name__)

INTERCEPTION_TOKENS = (
    "proxy",
    "firewall",
    "security",
    "corporate",
    "inspection",
    "zscaler",
    "bluecoat",
    "fortinet",
    "fortigate",
    "palo alto",
    "paloalto",
    "sophos",
    "forcepoint",
    "websense",
    "netskope",
    "mcafee",
    "checkpoint",
    "barracuda",
    "squid",
)

# Headers whose values legitimately contain words like "security"
_IGNORED_HEADERS = frozenset(
    {
        "content-security-policy",
        "content-security-policy-report-only",
        "report-to",
        "nel",
        "set-cookie",
        "link",
    }
)

_WEBSOCKET_HEADERS = {
    "Connection": "Upgrade",
    "Upgrade": "websocket",
    "Sec-WebSocket-Version": "13",
    "Sec-WebSocket-Key": "dGhlIHNhbXBsZSBub25jZQ==",
}


def find_interception_token(text: str) -> str | None:
    """Return the first interception token contained in *text*."""
    lowered = text.lower()
    for token in INTERCEPTION_TOKENS:
        if token in lowered:
            return token
    return None


def _peer_certificate_issuer(response: httpx.Response) -> str | None:
    """Best-effort issuer string of the certificate presented to us."""
    stream = response.extensions.get("network_stream")
    if stream is None:
        return None
    try:
        ssl_object = stream.get_extra_info("ssl_object")
        cert: dict[str, Any] | None = ssl_object.getpeercert() if ssl_object else None
    except Exception:  # noqa: BLE001
        logger.debug("Peer certificate not available", exc_info=True)
        return None
    if not cert or "issuer" not in cert:
        return None
    parts = [f"{key}={value}" for rdn in cert["issuer"] for key, value in rdn]
    return ", ".join(parts) or None


def _scan_response(origin: str, response: httpx.Response) -> list[str]:
    findings: list[str] = []
    for name, value in response.headers.items():
        if name.lower() in _IGNORED_HEADERS:
            continue
        token = find_interception_token(value)
        if token:
            findings.append(f"{origin}: header {name} mentions '{token}'")
    issuer = _peer_certificate_issuer(response)
    if issuer:
        token = find_interception_token(issuer)
        if token:
            findings.append(f"{origin}: certificate issuer '{issuer}' mentions '{token}'")
    return findings


async def _check_origin(
    client: httpx.AsyncClient,
    origin: str,
    sources: SignalSources,
    clock: Callable[[], float],
) -> tuple[list[str], list[str]]:
    """Return (findings, details) for one origin."""
    start = clock()
    try:
        response = await asyncio.wait_for(client.head(origin), timeout=sources.tls_timeout_seconds)
    except asyncio.TimeoutError:
        return [], [f"{origin}: timed out after {sources.tls_timeout_seconds:g}s"]
    except httpx.HTTPError as exc:
        return [], [f"{origin}: request failed ({type(exc).__name__})"]
    elapsed_ms = (clock() - start) * 1000.0

    details: list[str] = []
    if elapsed_ms > sources.slow_handshake_ms:
        details.append(f"{origin}: slow handshake ({elapsed_ms:.0f}ms)")
    return _scan_response(origin, response), details


def _websocket_probe_url(ws_url: str) -> str:
    if ws_url.startswith("wss://"):
        return "https://" + ws_url[len("wss://") :]
    if ws_url.startswith("ws://"):
        return "http://" + ws_url[len("ws://") :]
    return ws_url


async def check_secure_websocket(
    sources: SignalSources,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[bool, str | None]:
    """Attempt a WebSocket upgrade handshake.

    Returns ``(blocked, detail)``. Only an explicit connection failure counts
    as blocked; any HTTP answer, upgrade or not, means the path is open.
    """
    url = _websocket_probe_url(sources.websocket_url)
    try:
        async with httpx.AsyncClient(
            transport=transport, timeout=sources.websocket_timeout_seconds
        ) as client:
            response = await asyncio.wait_for(
                client.get(url, headers=_WEBSOCKET_HEADERS), timeout=sources.websocket_timeout_seconds
            )
    except httpx.ConnectError as exc:
        logger.debug("Secure WebSocket handshake refused: %s", exc)
        return True, "Secure WebSocket blocked"
    except (httpx.HTTPError, asyncio.TimeoutError) as exc:
        return False, f"Secure WebSocket check inconclusive ({type(exc).__name__})"
    logger.debug("Secure WebSocket handshake answered %d", response.status_code)
    return False, None


async def probe_tls_inspection(
    sources: SignalSources,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> TlsInspectionReport:
    """Run the origin HEADs and the WebSocket check concurrently."""
    async with httpx.AsyncClient(
        transport=transport,
        timeout=sources.tls_timeout_seconds,
        follow_redirects=False,
    ) as client:
        origin_results, (ws_blocked, ws_detail) = await asyncio.gather(
            asyncio.gather(
                *(_check_origin(client, origin, sources, clock) for origin in sources.tls_origins)
            ),
            check_secure_websocket(sources, transport=transport),
        )

    findings: list[str] = []
    details: list[str] = []
    for origin_findings, origin_details in origin_results:
        findings.extend(origin_findings)
        details.extend(origin_details)
    if ws_detail:
        details.append(ws_detail)

    detected = bool(findings) or ws_blocked
    if detected:
        logger.info("TLS inspection indicators found: %s", findings or [ws_detail])
    return TlsInspectionReport(detected=detected, details=findings + details)
