"""Health, readiness, and metrics endpoints.

Open to unauthenticated callers.

- GET /health: service status
- GET /readiness: 200 only when the job service can accept another job
- GET /metrics: job counts and the last interception verdict summary
"""

from __future__ import annotations

from fastapi import APIRouter, Response

from reachability import __version__
from reachability.models.responses import ApiResponse
from reachability.services.job_service import BatchJobService


def create_health_router(*, job_service: BatchJobService | None = None) -> APIRouter:
    health_router = APIRouter(tags=["health"])

    @health_router.get("/health")
    async def health() -> dict:
        """Liveness check."""
        return ApiResponse(
            success=True,
            data={"status": "healthy", "version": __version__},
        ).model_dump()

    @health_router.get("/readiness")
    async def readiness(response: Response) -> dict:
        """Readiness probe: 200 iff a job service is wired and below capacity."""
        metrics = job_service.get_metrics() if job_service else None
        is_ready = metrics is not None and metrics["jobs_active"] < metrics["max_concurrent_jobs"]

        if not is_ready:
            response.status_code = 503

        return ApiResponse(
            success=is_ready,
            data={
                "ready": is_ready,
                "jobs_active": metrics["jobs_active"] if metrics else 0,
            },
            error=None if is_ready else "Service not ready",
        ).model_dump()

    @health_router.get("/metrics")
    async def metrics() -> dict:
        """Operational metrics endpoint."""
        data: dict = {"jobs": job_service.get_metrics() if job_service else {}}
        verdict = job_service.last_verdict if job_service else None
        data["last_verdict"] = (
            {
                "detected": verdict.detected,
                "confidence": verdict.confidence.value,
                "generated_at": verdict.generated_at.isoformat(),
            }
            if verdict
            else None
        )
        return ApiResponse(success=True, data=data).model_dump()

    return health_router
