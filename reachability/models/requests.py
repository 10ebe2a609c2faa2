"""Pydantic request models and in-memory state models for batch jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from reachability.models.results import BatchProgress, EndpointProbeResult


class LookupType(str, Enum):
    """Endpoint directory lookup modes."""

    FQDN = "FQDN"
    IP = "IP"


class ClassifyRequest(BaseModel):
    target: str = Field(..., min_length=1)


class ProbeRequest(BaseModel):
    """Request model for a single synchronous probe."""

    target: str = Field(..., min_length=1)
    timeout_ms: int | None = Field(default=None, ge=1000, le=120000)


class BatchRequest(BaseModel):
    """Request model for a batch run.

    Either ``targets`` is given explicitly, or ``lookup_type`` asks the service
    to load the targets from the endpoint directory.
    """

    targets: list[str] | None = None
    lookup_type: LookupType | None = None
    concurrency: int | None = Field(default=None, ge=1, le=100)
    timeout_ms: int | None = Field(default=None, ge=1000, le=120000)

    @model_validator(mode="after")
    def _targets_or_lookup(self) -> BatchRequest:
        if self.targets is None and self.lookup_type is None:
            raise ValueError("Either 'targets' or 'lookup_type' must be provided")
        return self


class JobStatus(str, Enum):
    """Status of a batch job."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


TERMINAL_JOB_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.CANCELLED, JobStatus.FAILED})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class BatchJobState:
    """In-memory state for a batch job."""

    id: str  # UUID
    targets: list[str]
    concurrency: int
    timeout_ms: int
    status: JobStatus = JobStatus.QUEUED
    results: list[EndpointProbeResult] = field(default_factory=list)
    progress: BatchProgress | None = None
    error: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if not self.results:
            self.results = [EndpointProbeResult.pending(t) for t in self.targets]
        if self.progress is None:
            self.progress = BatchProgress(completed=0, total=len(self.targets))

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_JOB_STATUSES

