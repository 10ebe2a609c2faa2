"""Property tests for classification and probe strategy selection.

UDP-class targets are always probed through STUN; every other target is
probed over HTTP(S) and never through STUN.
"""

from __future__ import annotations

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from reachability.models.results import ProbeMethod, WebRtcReport
from reachability.probing.classifier import UDP_ONLY_SUFFIXES, classify
from reachability.probing.probe import ReachabilityProbe


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

octets = st.integers(min_value=0, max_value=255)
ipv4_addresses = st.tuples(octets, octets, octets, octets).map(lambda t: ".".join(map(str, t)))

_labels = st.from_regex(r"[a-z][a-z0-9]{1,10}", fullmatch=True).filter(
    lambda s: "ntp" not in s and "udp" not in s
)

# Hostnames with no UDP hint anywhere
http_hostnames = (
    st.lists(_labels, min_size=2, max_size=4)
    .map(".".join)
    .filter(lambda h: not any(h == s or h.endswith("." + s) for s in UDP_ONLY_SUFFIXES))
)

udp_targets = st.one_of(
    st.builds(
        lambda scheme, host: f"{scheme}:{host}:3478",
        st.sampled_from(["stun", "stuns", "turn", "turns"]),
        http_hostnames,
    ),
    http_hostnames.map(lambda h: f"ntp.{h}"),
    http_hostnames.map(lambda h: f"{h}:123"),
    http_hostnames.map(lambda h: f"udp://{h}"),
    st.sampled_from(UDP_ONLY_SUFFIXES).map(lambda s: f"0.{s}"),
)

_EVIDENCE = WebRtcReport(supported=True, stun_succeeded=True)


def _probe() -> ReachabilityProbe:
    return ReachabilityProbe(transport=httpx.MockTransport(lambda r: httpx.Response(200)))


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


@settings(max_examples=100)
@given(target=udp_targets)
def test_udp_targets_are_udp_class(target: str) -> None:
    assert classify(target).is_udp_class is True


@settings(max_examples=100)
@given(host=http_hostnames, scheme=st.sampled_from(["", "http://", "https://"]))
def test_plain_hosts_are_http_class(host: str, scheme: str) -> None:
    c = classify(scheme + host)
    assert c.is_udp_class is False
    assert c.is_http_capable is True
    assert c.hostname == host


@settings(max_examples=100)
@given(ip=ipv4_addresses)
def test_dotted_quads_are_ip_literals(ip: str) -> None:
    assert classify(ip).is_ip_literal is True


@settings(max_examples=100)
@given(target=st.text(max_size=60))
def test_classification_is_total(target: str) -> None:
    classify(target)


# ---------------------------------------------------------------------------
# Strategy selection
# ---------------------------------------------------------------------------


@settings(max_examples=50, deadline=None)
@given(target=udp_targets)
@pytest.mark.asyncio
async def test_udp_class_always_probes_with_stun(target: str) -> None:
    result = await _probe().probe(target, 10000, stun_evidence=_EVIDENCE)
    assert result.method == ProbeMethod.WEBRTC_STUN


@settings(max_examples=50, deadline=None)
@given(target=st.one_of(http_hostnames, ipv4_addresses))
@pytest.mark.asyncio
async def test_http_class_never_probes_with_stun(target: str) -> None:
    result = await _probe().probe(target, 10000, stun_evidence=_EVIDENCE)
    assert result.method != ProbeMethod.WEBRTC_STUN
