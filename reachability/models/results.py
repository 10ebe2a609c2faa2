"""Result models produced by the probing engine and the signal collectors.

Everything here is created fresh per run and handed back to the caller; no
model is persisted or shared across runs.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ProbeMethod(str, Enum):
    """Strategy that produced a probe result."""

    HTTPS_HEAD = "http-head-https"
    HTTP_HEAD = "http-head-http"
    WEBRTC_STUN = "webrtc-stun"


class ProbeStatus(str, Enum):
    """Lifecycle of a single endpoint probe. ``success``/``error`` are terminal."""

    PENDING = "pending"
    TESTING = "testing"
    SUCCESS = "success"
    ERROR = "error"


class FailureKind(str, Enum):
    """Why a probe attempt did not produce a clean response."""

    TIMEOUT = "timeout"
    TRANSPORT_AMBIGUOUS = "transport-ambiguous"
    TRANSPORT_FAILED = "transport-failed"
    CAPABILITY_UNSUPPORTED = "capability-unsupported"
    UNKNOWN = "unknown"


class Confidence(str, Enum):
    """Interception verdict confidence tier, ordered low < medium < high."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]

    def escalate(self, floor: Confidence) -> Confidence:
        """Return the higher of this tier and *floor*; never downgrades."""
        return floor if floor.rank > self.rank else self


_CONFIDENCE_RANK = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Classification / probing
# ---------------------------------------------------------------------------


class Classification(BaseModel):
    """How an endpoint target string should be probed."""

    model_config = ConfigDict(frozen=True)

    is_ip_literal: bool = False
    scheme: str | None = None
    is_udp_class: bool = False
    hostname: str | None = None

    @property
    def is_http_capable(self) -> bool:
        return self.scheme in (None, "http", "https")


class EndpointProbeResult(BaseModel):
    """Outcome of one reachability check for one target."""

    target: str
    status: ProbeStatus = ProbeStatus.PENDING
    method: ProbeMethod | None = None
    response_time_ms: int | None = None
    error: str | None = None
    failure_kind: FailureKind | None = None
    completed_at: datetime | None = None

    @classmethod
    def pending(cls, target: str) -> EndpointProbeResult:
        return cls(target=target)


class BatchProgress(BaseModel):
    """Progress notification emitted while a batch runs."""

    model_config = ConfigDict(frozen=True)

    completed: int = Field(ge=0)
    total: int = Field(ge=0)
    current_target: str = ""


# ---------------------------------------------------------------------------
# Signal collector reports
# ---------------------------------------------------------------------------


class CandidateAddress(BaseModel):
    """An address surfaced by ICE gathering."""

    model_config = ConfigDict(frozen=True)

    address: str
    candidate_type: str  # host, srflx, prflx, relay
    protocol: str  # udp, tcp


class TlsInspectionReport(BaseModel):
    detected: bool = False
    details: list[str] = Field(default_factory=list)


class WebRtcReport(BaseModel):
    """NAT-traversal capability observed through ICE gathering."""

    supported: bool = False
    stun_succeeded: bool = False
    candidate_types: list[str] = Field(default_factory=list)
    candidate_protocols: list[str] = Field(default_factory=list)
    relay_only: bool = False
    details: list[str] = Field(default_factory=list)
    elapsed_ms: int = 0


class TransportCapabilityReport(BaseModel):
    supported: bool = False
    details: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Interception signals
# ---------------------------------------------------------------------------


class ProxyHeaderSignal(BaseModel):
    kind: Literal["proxy-headers"] = "proxy-headers"
    headers: dict[str, str]


class IpMismatchSignal(BaseModel):
    kind: Literal["ip-mismatch"] = "ip-mismatch"
    external_ip: str
    local_ips: list[str]


class LatencySignal(BaseModel):
    kind: Literal["latency"] = "latency"
    ms: float


class WebrtcBlockedSignal(BaseModel):
    kind: Literal["webrtc-blocked"] = "webrtc-blocked"


class TlsInspectionSignal(BaseModel):
    kind: Literal["tls-inspection"] = "tls-inspection"
    details: list[str]


class RelayOnlySignal(BaseModel):
    kind: Literal["relay-only"] = "relay-only"


InterceptionSignal = Annotated[
    Union[
        ProxyHeaderSignal,
        IpMismatchSignal,
        LatencySignal,
        WebrtcBlockedSignal,
        TlsInspectionSignal,
        RelayOnlySignal,
    ],
    Field(discriminator="kind"),
]


class DetectionDetails(BaseModel):
    """Raw measurements behind a verdict."""

    external_ip: str | None = None
    local_ips: list[str] = Field(default_factory=list)
    headers: dict[str, str] = Field(default_factory=dict)
    latency_ms: float | None = None


class ProxyDetectionResult(BaseModel):
    """Confidence-scored interception verdict."""

    detected: bool
    confidence: Confidence = Confidence.LOW
    methods: list[str] = Field(default_factory=list)
    details: DetectionDetails = Field(default_factory=DetectionDetails)
    signals: list[InterceptionSignal] = Field(default_factory=list)
    ssl_inspection: TlsInspectionReport | None = None
    webrtc: WebRtcReport | None = None
    quic: TransportCapabilityReport | None = None
    generated_at: datetime = Field(default_factory=_utcnow)
