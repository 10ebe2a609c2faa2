"""Batch job endpoints.

- POST /api/v1/batch: start a batch (explicit targets or a directory lookup)
- GET  /api/v1/batch/{job_id}: job status, progress and counts
- GET  /api/v1/batch/{job_id}/results: results, with search and status filters
- GET  /api/v1/batch/{job_id}/export.csv: results as CSV
- POST /api/v1/batch/{job_id}/cancel: cancel a running job
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from reachability.models.requests import BatchJobState, BatchRequest
from reachability.models.responses import ApiResponse
from reachability.models.results import ProbeStatus
from reachability.services.report import to_csv

logger = logging.getLogger(__name__)


def _job_summary(job: BatchJobState, stats: dict[str, int]) -> dict:
    progress = job.progress
    return {
        "job_id": job.id,
        "status": job.status.value,
        "concurrency": job.concurrency,
        "timeout_ms": job.timeout_ms,
        "progress": progress.model_dump() if progress else None,
        "stats": stats,
        "error": job.error,
        "created_at": job.created_at.isoformat(),
        "updated_at": job.updated_at.isoformat(),
    }


def create_jobs_router(*, job_service: Any = None, directory_client: Any = None) -> APIRouter:
    """Factory that creates the jobs router with injected dependencies."""

    jobs_router = APIRouter(prefix="/api/v1/batch", tags=["batch"])

    @jobs_router.post("", status_code=202)
    async def create_batch(body: BatchRequest) -> dict:
        """Start a batch job. Returns 202 with job_id."""
        if body.targets is not None:
            targets = body.targets
        else:
            targets = await directory_client.fetch(body.lookup_type)

        job = await job_service.create_job(
            targets,
            concurrency=body.concurrency,
            timeout_ms=body.timeout_ms,
        )

        return ApiResponse(
            success=True,
            data={
                "job_id": job.id,
                "total": len(job.targets),
                "status": job.status.value,
            },
        ).model_dump()

    @jobs_router.get("/{job_id}")
    async def get_job(job_id: str) -> dict:
        job = job_service.get_job(job_id)
        return ApiResponse(
            success=True,
            data=_job_summary(job, job_service.get_stats(job_id)),
        ).model_dump()

    @jobs_router.get("/{job_id}/results")
    async def get_job_results(
        job_id: str,
        search: str | None = None,
        status: ProbeStatus | None = None,
    ) -> dict:
        """Results in input order, optionally filtered."""
        results = job_service.get_results(job_id, search=search, status=status)
        return ApiResponse(
            success=True,
            data={
                "results": [r.model_dump(mode="json") for r in results],
                "count": len(results),
            },
        ).model_dump(mode="json")

    @jobs_router.get("/{job_id}/export.csv", response_class=PlainTextResponse)
    async def export_job_results(job_id: str) -> PlainTextResponse:
        job = job_service.get_job(job_id)
        return PlainTextResponse(
            to_csv(job.results),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="reachability-{job_id}.csv"'},
        )

    @jobs_router.post("/{job_id}/cancel")
    async def cancel_job(job_id: str) -> dict:
        job = await job_service.cancel_job(job_id)
        return ApiResponse(
            success=True,
            data=_job_summary(job, job_service.get_stats(job_id)),
        ).model_dump()

    return jobs_router
