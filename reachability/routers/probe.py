"""Single-target endpoints.

- POST /api/v1/classify: classify a target string
- POST /api/v1/probe: probe one target synchronously
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter

from reachability.models.requests import ClassifyRequest, ProbeRequest
from reachability.models.responses import ApiResponse
from reachability.models.results import ProbeStatus
from reachability.probing.classifier import classify

logger = logging.getLogger(__name__)


def create_probe_router(
    *,
    probe: Any = None,
    job_service: Any = None,
    default_timeout_ms: int = 10000,
) -> APIRouter:
    """Factory that creates the probe router with injected dependencies.

    Parameters
    ----------
    probe:
        ReachabilityProbe used for synchronous probes.
    job_service:
        Optional BatchJobService; its last verdict supplies STUN evidence.
    default_timeout_ms:
        Timeout used when the request does not specify one.
    """
    probe_router = APIRouter(prefix="/api/v1", tags=["probe"])

    @probe_router.post("/classify")
    async def classify_target(body: ClassifyRequest) -> dict:
        classification = classify(body.target)
        return ApiResponse(
            success=True,
            data={
                "target": body.target,
                **classification.model_dump(),
                "is_http_capable": classification.is_http_capable,
            },
        ).model_dump(mode="json")

    @probe_router.post("/probe")
    async def probe_target(body: ProbeRequest) -> dict:
        """Probe one target. ``success`` mirrors the probe outcome."""
        timeout_ms = body.timeout_ms or default_timeout_ms
        evidence = job_service.stun_evidence if job_service else None
        result = await probe.probe(body.target.strip(), timeout_ms, stun_evidence=evidence)
        logger.info(
            "Probed %s: %s",
            result.target,
            result.status.value,
            extra={
                "target": result.target,
                "method": result.method.value if result.method else None,
                "status": result.status.value,
                "duration_ms": result.response_time_ms,
            },
        )
        return ApiResponse(
            success=result.status == ProbeStatus.SUCCESS,
            data=result.model_dump(mode="json"),
            error=result.error,
        ).model_dump(mode="json")

    return probe_router
