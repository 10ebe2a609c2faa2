"""Endpoint classification.

Decides, from the raw target string alone, whether an endpoint is an IP
literal, which scheme it carries, and whether it must be probed with
UDP-style (STUN/ICE) semantics instead of an HTTP HEAD. Classification is a
total function: malformed input degrades to "HTTP-class, not an IP literal,
no hostname" and is routed to the default HTTPS/HTTP probe.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from reachability.models.results import Classification
from reachability.validators.ip import is_ipv4_literal

UDP_SCHEMES = frozenset({"stun", "stuns", "turn", "turns", "ntp", "udp"})

# Services that only answer over UDP (time synchronisation)
UDP_ONLY_SUFFIXES = (
    "time.windows.com",
    "time.nist.gov",
    "time.apple.com",
    "time.google.com",
    "time.cloudflare.com",
    "pool.ntp.org",
    "ntp.org",
)

# A "scheme:" prefix, unless what follows the colon is just a port number.
_SCHEME = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*):(?!\d+(?:[/?#]|$))")
_UDP_TOKEN = re.compile(r"(?<![a-z0-9])(?:ntp|udp)(?![a-z0-9])", re.IGNORECASE)
_NTP_PORT = re.compile(r":123(?!\d)")


def _extract_scheme(target: str) -> str | None:
    match = _SCHEME.match(target)
    return match.group(1).lower() if match else None


def _parse_hostname(target: str, scheme: str | None) -> str | None:
    if "://" in target:
        candidate = target
    elif scheme is not None:
        # "stun:host:port" style, no authority marker
        candidate = "https://" + target[len(scheme) + 1 :]
    else:
        candidate = "https://" + target
    try:
        hostname = urlsplit(candidate).hostname
    except ValueError:
        return None
    return hostname or None


def _has_udp_only_suffix(hostname: str) -> bool:
    host = hostname.lower().rstrip(".")
    return any(host == suffix or host.endswith("." + suffix) for suffix in UDP_ONLY_SUFFIXES)


def classify(target: str) -> Classification:
    """Classify a raw endpoint target string."""
    raw = target.strip()
    scheme = _extract_scheme(raw)
    hostname = _parse_hostname(raw, scheme)

    is_ip_literal = is_ipv4_literal(raw) or (hostname is not None and is_ipv4_literal(hostname))

    is_udp_class = (
        scheme in UDP_SCHEMES
        or bool(_UDP_TOKEN.search(raw))
        or bool(_NTP_PORT.search(raw))
        or (hostname is not None and _has_udp_only_suffix(hostname))
    )

    return Classification(
        is_ip_literal=is_ip_literal,
        scheme=scheme,
        is_udp_class=is_udp_class,
        hostname=hostname,
    )
