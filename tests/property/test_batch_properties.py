"""Property tests for batch orchestration: length and order preservation."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from reachability.models.results import BatchProgress, EndpointProbeResult, ProbeStatus
from reachability.probing.batch import run_batch

targets = st.lists(st.from_regex(r"[a-z]{1,8}\.test", fullmatch=True), max_size=25)
widths = st.integers(min_value=1, max_value=40)


class EchoProbe:
    async def probe(self, target: str, timeout_ms: int, *, stun_evidence=None) -> EndpointProbeResult:
        return EndpointProbeResult(target=target, status=ProbeStatus.SUCCESS)


@settings(max_examples=100, deadline=None)
@given(items=targets, width=widths)
@pytest.mark.asyncio
async def test_output_matches_input_order(items: list[str], width: int) -> None:
    results = await run_batch(items, probe=EchoProbe(), concurrency=width, timeout_ms=1000, pause_seconds=0)

    assert len(results) == len(items)
    assert [r.target for r in results] == items


@settings(max_examples=100, deadline=None)
@given(items=targets, width=widths)
@pytest.mark.asyncio
async def test_progress_ends_with_single_complete_notification(items: list[str], width: int) -> None:
    events: list[BatchProgress] = []

    await run_batch(
        items,
        probe=EchoProbe(),
        concurrency=width,
        timeout_ms=1000,
        on_progress=events.append,
        pause_seconds=0,
    )

    n = len(items)
    assert len(events) == 2 * n + 1
    assert events[-1] == BatchProgress(completed=n, total=n, current_target="")
    assert all(e.total == n for e in events)
    assert all(0 <= e.completed <= n for e in events)
