"""Property tests for verdict folding."""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from reachability.models.results import Confidence, TlsInspectionReport
from reachability.verdict.aggregator import SignalSnapshot, build_verdict

octets = st.integers(min_value=0, max_value=255)
ipv4_addresses = st.tuples(octets, octets, octets, octets).map(lambda t: ".".join(map(str, t)))

snapshots = st.builds(
    SignalSnapshot,
    external_ip=st.one_of(st.none(), ipv4_addresses),
    local_ips=st.lists(ipv4_addresses, max_size=4).map(tuple),
    proxy_headers=st.dictionaries(
        st.sampled_from(["Via", "X-Forwarded-For", "X-Real-IP"]), st.text(min_size=1, max_size=10), max_size=2
    ),
    latency_ms=st.one_of(st.none(), st.floats(min_value=0, max_value=5000)),
    tls=st.one_of(st.none(), st.builds(TlsInspectionReport, detected=st.booleans())),
)


@settings(max_examples=100)
@given(snapshot=snapshots)
def test_verdict_is_deterministic(snapshot: SignalSnapshot) -> None:
    first = build_verdict(snapshot)
    second = build_verdict(snapshot)

    assert first.detected == second.detected
    assert first.confidence == second.confidence
    assert first.methods == second.methods


@settings(max_examples=100)
@given(snapshot=snapshots)
def test_detected_iff_any_method(snapshot: SignalSnapshot) -> None:
    verdict = build_verdict(snapshot)
    assert verdict.detected == bool(verdict.methods)


@settings(max_examples=100)
@given(snapshot=snapshots, header=st.sampled_from(["Via", "Proxy-Authorization", "X-Cluster-Client-IP"]))
def test_header_match_forces_high(snapshot: SignalSnapshot, header: str) -> None:
    with_header = SignalSnapshot(
        external_ip=snapshot.external_ip,
        local_ips=snapshot.local_ips,
        proxy_headers={**snapshot.proxy_headers, header: "1.1 gw"},
        latency_ms=snapshot.latency_ms,
        tls=snapshot.tls,
    )

    assert build_verdict(with_header).confidence == Confidence.HIGH


@settings(max_examples=100)
@given(latency=st.floats(min_value=0, max_value=5000))
def test_latency_never_changes_confidence(latency: float) -> None:
    base = SignalSnapshot(external_ip="8.8.8.8", local_ips=("10.0.0.1",))
    timed = SignalSnapshot(external_ip="8.8.8.8", local_ips=("10.0.0.1",), latency_ms=latency)

    assert build_verdict(timed).confidence == build_verdict(base).confidence == Confidence.LOW


def test_empty_fixture_with_header_goes_low_to_high() -> None:
    quiet = SignalSnapshot(external_ip="8.8.8.8", local_ips=("192.168.1.2",), latency_ms=20.0)
    noisy = SignalSnapshot(
        external_ip="8.8.8.8", local_ips=("192.168.1.2",), latency_ms=20.0, proxy_headers={"Via": "1.1 gw"}
    )

    assert build_verdict(quiet).confidence == Confidence.LOW
    assert build_verdict(noisy).confidence == Confidence.HIGH
