"""Batch job lifecycle management.

The BatchJobService runs each batch as a background asyncio task, recording
progress and every finished result on the job as they happen, so clients can
poll partial results while the batch is still running.

All state is held in-memory; jobs are lost on restart.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from uuid import uuid4

from reachability.config.settings import ReachabilitySettings
from reachability.middleware.error_handler import (
    JobCapacityError,
    JobNotFoundError,
    ValidationError,
)
from reachability.models.requests import BatchJobState, JobStatus
from reachability.models.results import (
    BatchProgress,
    EndpointProbeResult,
    ProbeStatus,
    ProxyDetectionResult,
    WebRtcReport,
)
from reachability.probing.batch import run_batch
from reachability.probing.probe import ReachabilityProbe
from reachability.services.report import compute_stats, filter_results

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BatchJobService:
    """Manages batch reachability job lifecycle.

    Parameters
    ----------
    probe:
        The probe used for every target of every job.
    settings:
        Service configuration (defaults and limits).
    """

    def __init__(
        self,
        *,
        probe: ReachabilityProbe,
        settings: ReachabilitySettings,
    ) -> None:
        self._probe = probe
        self._settings = settings

        # In-memory stores
        self._jobs: dict[str, BatchJobState] = {}
        self._runners: dict[str, asyncio.Task[None]] = {}
        self._last_verdict: ProxyDetectionResult | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def last_verdict(self) -> ProxyDetectionResult | None:
        return self._last_verdict

    def record_verdict(self, verdict: ProxyDetectionResult) -> None:
        """Keep *verdict* so later jobs can reuse its NAT-traversal report."""
        self._last_verdict = verdict

    @property
    def stun_evidence(self) -> WebRtcReport | None:
        return self._last_verdict.webrtc if self._last_verdict else None

    def active_job_count(self) -> int:
        return sum(1 for job in self._jobs.values() if not job.is_terminal)

    def get_metrics(self) -> dict:
        """Job counts for the metrics endpoint."""
        by_status = {status.value: 0 for status in JobStatus}
        for job in self._jobs.values():
            by_status[job.status.value] += 1
        return {
            "jobs_total": len(self._jobs),
            "jobs_active": self.active_job_count(),
            "jobs_by_status": by_status,
            "max_concurrent_jobs": self._settings.max_concurrent_jobs,
        }

    async def create_job(
        self,
        targets: list[str],
        concurrency: int | None = None,
        timeout_ms: int | None = None,
    ) -> BatchJobState:
        """Create a batch job and start it in the background.

        Returns
        -------
        BatchJobState with status QUEUED and one pending result per target.

        Raises
        ------
        ValidationError
            If the target list is empty or exceeds ``max_batch_targets``.
        JobCapacityError
            If ``max_concurrent_jobs`` jobs are already active.
        """
        cleaned = [t.strip() for t in targets if t and t.strip()]
        if not cleaned:
            raise ValidationError("At least one target is required")
        if len(cleaned) > self._settings.max_batch_targets:
            raise ValidationError(
                f"Too many targets: {len(cleaned)} > {self._settings.max_batch_targets}",
                limit=self._settings.max_batch_targets,
            )
        if self.active_job_count() >= self._settings.max_concurrent_jobs:
            raise JobCapacityError(limit=self._settings.max_concurrent_jobs)

        job = BatchJobState(
            id=str(uuid4()),
            targets=cleaned,
            concurrency=concurrency or self._settings.batch_concurrency,
            timeout_ms=timeout_ms or self._settings.probe_timeout_ms,
        )
        self._jobs[job.id] = job
        self._runners[job.id] = asyncio.create_task(self._run(job), name=f"batch-{job.id}")

        logger.info(
            "Created job %s with %d targets (concurrency=%d)",
            job.id,
            len(cleaned),
            job.concurrency,
            extra={"job_id": job.id, "total": len(cleaned)},
        )
        return job

    def get_job(self, job_id: str) -> BatchJobState:
        """Return job state.

        Raises
        ------
        JobNotFoundError
            If the job ID is not found.
        """
        if job_id not in self._jobs:
            raise JobNotFoundError(f"Job not found: {job_id}")
        return self._jobs[job_id]

    def get_results(
        self,
        job_id: str,
        search: str | None = None,
        status: ProbeStatus | None = None,
    ) -> list[EndpointProbeResult]:
        return filter_results(self.get_job(job_id).results, search=search, status=status)

    def get_stats(self, job_id: str) -> dict[str, int]:
        return compute_stats(self.get_job(job_id).results)

    async def cancel_job(self, job_id: str) -> BatchJobState:
        """Cancel a job. Targets that had not finished stay ``pending``.

        Raises
        ------
        JobNotFoundError
            If the job ID is not found.
        """
        job = self.get_job(job_id)
        if job.is_terminal:
            return job

        runner = self._runners.get(job_id)
        if runner is not None and not runner.done():
            runner.cancel()
            await asyncio.gather(runner, return_exceptions=True)

        if not job.is_terminal:
            self._finish(job, JobStatus.CANCELLED)
        return job

    async def drain(self, timeout: float) -> None:
        """Wait up to *timeout* seconds for running jobs, then cancel the rest."""
        pending = [task for task in self._runners.values() if not task.done()]
        if not pending:
            return
        logger.info("Draining %d running job(s)", len(pending))
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning("Cancelled %d job(s) still running at shutdown", len(still_running))

    # ------------------------------------------------------------------
    # Runner
    # ------------------------------------------------------------------

    async def _run(self, job: BatchJobState) -> None:
        job.status = JobStatus.RUNNING
        job.updated_at = _utcnow()

        def _on_progress(progress: BatchProgress) -> None:
            # Concurrent probes report out of order; keep the highest count
            if job.progress is None or progress.completed >= job.progress.completed:
                job.progress = progress
            job.updated_at = _utcnow()

        def _on_result(index: int, result: EndpointProbeResult) -> None:
            job.results[index] = result

        try:
            await run_batch(
                job.targets,
                probe=self._probe,
                concurrency=job.concurrency,
                timeout_ms=job.timeout_ms,
                on_progress=_on_progress,
                on_result=_on_result,
                stun_evidence=self.stun_evidence,
                pause_seconds=self._settings.batch_chunk_pause_ms / 1000.0,
            )
        except asyncio.CancelledError:
            self._finish(job, JobStatus.CANCELLED)
            raise
        except Exception as exc:
            logger.exception("Job %s failed", job.id, extra={"job_id": job.id})
            job.error = str(exc) or type(exc).__name__
            self._finish(job, JobStatus.FAILED)
        else:
            self._finish(job, JobStatus.COMPLETED)

    def _finish(self, job: BatchJobState, status: JobStatus) -> None:
        job.status = status
        job.updated_at = _utcnow()
        stats = compute_stats(job.results)
        logger.info(
            "Job %s reached terminal state: %s (successful=%d, failed=%d, pending=%d)",
            job.id,
            status.value,
            stats["successful"],
            stats["failed"],
            stats["pending"],
            extra={"job_id": job.id, "completed": stats["tested"], "total": stats["total"]},
        )
