"""Result presentation helpers: filtering, summary counts, and CSV export."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable

from reachability.models.results import EndpointProbeResult, ProbeStatus

CSV_COLUMNS = ("target", "status", "method", "response_time_ms", "error", "completed_at")


def filter_results(
    results: Iterable[EndpointProbeResult],
    search: str | None = None,
    status: ProbeStatus | None = None,
) -> list[EndpointProbeResult]:
    """Keep results whose target contains *search* (case-insensitive) and
    whose status equals *status*. ``None`` disables a filter."""
    needle = search.strip().lower() if search else ""
    return [
        r
        for r in results
        if (not needle or needle in r.target.lower()) and (status is None or r.status == status)
    ]


def compute_stats(results: Iterable[EndpointProbeResult]) -> dict[str, int]:
    """Counts of results by outcome."""
    total = successful = failed = 0
    for r in results:
        total += 1
        if r.status == ProbeStatus.SUCCESS:
            successful += 1
        elif r.status == ProbeStatus.ERROR:
            failed += 1
    return {
        "total": total,
        "tested": successful + failed,
        "successful": successful,
        "failed": failed,
        "pending": total - successful - failed,
    }


def to_csv(results: Iterable[EndpointProbeResult]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for r in results:
        writer.writerow(
            [
                r.target,
                r.status.value,
                r.method.value if r.method else "",
                "" if r.response_time_ms is None else r.response_time_ms,
                r.error or "",
                r.completed_at.isoformat() if r.completed_at else "",
            ]
        )
    return buffer.getvalue()
