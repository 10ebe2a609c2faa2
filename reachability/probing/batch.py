"""Batch orchestration: probe many targets with bounded concurrency.

Targets are split into consecutive chunks of ``concurrency``; the probes of a
chunk run concurrently and the chunk is awaited in full before the next one
starts. Each result lands at its target's index, so the output order always
matches the input order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence

from reachability.models.results import BatchProgress, EndpointProbeResult, WebRtcReport
from reachability.probing.probe import ReachabilityProbe

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BatchProgress], None]
ResultCallback = Callable[[int, EndpointProbeResult], None]


def _notify(callback: Callable[..., None] | None, *args: object) -> None:
    if callback is None:
        return
    try:
        callback(*args)
    except Exception:  # noqa: BLE001
        logger.exception("Batch callback raised; continuing")


async def run_batch(
    targets: Sequence[str],
    *,
    probe: ReachabilityProbe,
    concurrency: int,
    timeout_ms: int,
    on_progress: ProgressCallback | None = None,
    on_result: ResultCallback | None = None,
    stun_evidence: WebRtcReport | None = None,
    pause_seconds: float = 0.05,
) -> list[EndpointProbeResult]:
    """Probe every target and return the results in input order.

    Parameters
    ----------
    targets:
        Endpoint target strings.
    probe:
        The probe used for every target.
    concurrency:
        Chunk width; must be at least 1.
    timeout_ms:
        Per-target timeout.
    on_progress:
        Called before and after each probe, and once more at the end with
        ``completed == total``.
    on_result:
        Called with ``(index, result)`` as soon as each target finishes.
    stun_evidence:
        NAT-traversal report handed to every probe for UDP-class targets.
    pause_seconds:
        Pause between chunks.
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    total = len(targets)
    results: list[EndpointProbeResult | None] = [None] * total

    async def _run_one(index: int, target: str) -> None:
        _notify(on_progress, BatchProgress(completed=index, total=total, current_target=target))
        result = await probe.probe(target, timeout_ms, stun_evidence=stun_evidence)
        results[index] = result
        _notify(on_result, index, result)
        _notify(on_progress, BatchProgress(completed=index + 1, total=total, current_target=target))

    for chunk_start in range(0, total, concurrency):
        chunk = targets[chunk_start : chunk_start + concurrency]
        await asyncio.gather(
            *(_run_one(chunk_start + offset, target) for offset, target in enumerate(chunk))
        )
        if chunk_start + concurrency < total and pause_seconds > 0:
            await asyncio.sleep(pause_seconds)

    _notify(on_progress, BatchProgress(completed=total, total=total, current_target=""))
    logger.info("Batch finished", extra={"completed": total, "total": total})
    return [r if r is not None else EndpointProbeResult.pending(t) for r, t in zip(results, targets)]
