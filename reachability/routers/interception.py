"""Interception verdict endpoint.

- GET /api/v1/interception: run every signal collector and return the verdict
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from reachability.models.responses import ApiResponse


def create_interception_router(*, detector: Any = None, job_service: Any = None) -> APIRouter:
    """Factory that creates the interception router with injected dependencies.

    The verdict is handed to the job service so later batches can reuse its
    NAT-traversal report for UDP-class targets.
    """
    interception_router = APIRouter(prefix="/api/v1", tags=["interception"])

    @interception_router.get("/interception")
    async def detect() -> dict:
        verdict = await detector.detect()
        if job_service is not None:
            job_service.record_verdict(verdict)
        return ApiResponse(success=True, data=verdict.model_dump(mode="json")).model_dump(
            mode="json"
        )

    return interception_router
