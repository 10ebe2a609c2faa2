"""Interception signal collectors.

Each collector owns its network client for the duration of one call, is
bounded by its own timeout, and never raises: a missing signal is returned as
``None`` or an empty value.
"""

from reachability.signals.external_address import lookup_external_address
from reachability.signals.header_echo import PROXY_HEADERS, match_proxy_headers, probe_proxy_headers
from reachability.signals.ice import GatherOutcome, create_connection, gather_candidates
from reachability.signals.latency import sample_latency
from reachability.signals.local_candidates import discover_local_addresses
from reachability.signals.tls_inspection import (
    INTERCEPTION_TOKENS,
    check_secure_websocket,
    find_interception_token,
    probe_tls_inspection,
)
from reachability.signals.transport import probe_quic_capability
from reachability.signals.webrtc import probe_nat_traversal

__all__ = [
    "INTERCEPTION_TOKENS",
    "PROXY_HEADERS",
    "GatherOutcome",
    "check_secure_websocket",
    "create_connection",
    "discover_local_addresses",
    "find_interception_token",
    "gather_candidates",
    "lookup_external_address",
    "match_proxy_headers",
    "probe_nat_traversal",
    "probe_proxy_headers",
    "probe_quic_capability",
    "probe_tls_inspection",
    "sample_latency",
]
