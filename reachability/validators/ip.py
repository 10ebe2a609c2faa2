"""IPv4 address helpers shared by the classifier and the verdict aggregator."""

from __future__ import annotations

import ipaddress
import re

# Private ranges considered "not public" when comparing local and external addresses
_PRIVATE_NETWORKS = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
]

_DOTTED_QUAD = re.compile(r"^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}$")
_EMBEDDED_IPV4 = re.compile(r"(?<![\d.])(\d{1,3}(?:\.\d{1,3}){3})(?![\d.])")


def is_ipv4_literal(value: str) -> bool:
    """Return True if *value* looks like a dotted-quad IPv4 address."""
    return bool(_DOTTED_QUAD.match(value))


def is_private_ip(ip_str: str) -> bool:
    """Check if an IPv4 address is in a private or loopback range.

    Anything that is not a valid IPv4 address is reported as not private.
    """
    try:
        addr = ipaddress.IPv4Address(ip_str)
    except ValueError:
        return False
    return any(addr in network for network in _PRIVATE_NETWORKS)


def extract_ipv4(text: str) -> str | None:
    """Return the first valid IPv4 address embedded in *text*, if any."""
    for match in _EMBEDDED_IPV4.finditer(text):
        candidate = match.group(1)
        try:
            ipaddress.IPv4Address(candidate)
        except ValueError:
            continue
        return candidate
    return None
