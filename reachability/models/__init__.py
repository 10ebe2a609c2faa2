"""Public models for the reachability service."""

from reachability.models.requests import (
    BatchJobState,
    BatchRequest,
    ClassifyRequest,
    JobStatus,
    LookupType,
    ProbeRequest,
)
from reachability.models.responses import ApiResponse
from reachability.models.results import (
    BatchProgress,
    CandidateAddress,
    Classification,
    Confidence,
    DetectionDetails,
    EndpointProbeResult,
    FailureKind,
    InterceptionSignal,
    IpMismatchSignal,
    LatencySignal,
    ProbeMethod,
    ProbeStatus,
    ProxyDetectionResult,
    ProxyHeaderSignal,
    RelayOnlySignal,
    TlsInspectionReport,
    TlsInspectionSignal,
    TransportCapabilityReport,
    WebRtcReport,
    WebrtcBlockedSignal,
)

__all__ = [
    "ApiResponse",
    "BatchJobState",
    "BatchProgress",
    "BatchRequest",
    "CandidateAddress",
    "Classification",
    "ClassifyRequest",
    "Confidence",
    "DetectionDetails",
    "EndpointProbeResult",
    "FailureKind",
    "InterceptionSignal",
    "IpMismatchSignal",
    "JobStatus",
    "LatencySignal",
    "LookupType",
    "ProbeMethod",
    "ProbeRequest",
    "ProbeStatus",
    "ProxyDetectionResult",
    "ProxyHeaderSignal",
    "RelayOnlySignal",
    "TlsInspectionReport",
    "TlsInspectionSignal",
    "TransportCapabilityReport",
    "WebRtcReport",
    "WebrtcBlockedSignal",
]
