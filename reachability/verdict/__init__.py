"""Interception verdict: concurrent signal collection and rule folding."""

from reachability.verdict.aggregator import (
    RULES,
    InterceptionDetector,
    SignalSnapshot,
    VerdictRule,
    build_verdict,
    detect_interception,
    extract_signals,
    fold,
)

__all__ = [
    "RULES",
    "InterceptionDetector",
    "SignalSnapshot",
    "VerdictRule",
    "build_verdict",
    "detect_interception",
    "extract_signals",
    "fold",
]
