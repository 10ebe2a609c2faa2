"""Transport-capability probe.

Only reports whether a QUIC-capable client stack is importable here; no live
HTTP/3 connection is attempted.
"""

from __future__ import annotations

import importlib.util
from collections.abc import Callable
from typing import Any

from reachability.models.results import TransportCapabilityReport

QUIC_MODULE = "aioquic"


def probe_quic_capability(
    *, find_spec: Callable[[str], Any] = importlib.util.find_spec
) -> TransportCapabilityReport:
    try:
        spec = find_spec(QUIC_MODULE)
    except (ImportError, ValueError):
        spec = None
    if spec is None:
        return TransportCapabilityReport(
            supported=False,
            details=[f"No QUIC client stack available ({QUIC_MODULE} not installed)"],
        )
    return TransportCapabilityReport(
        supported=True,
        details=[f"QUIC client stack available ({QUIC_MODULE})"],
    )
