"""Endpoint classification, single-target probing, and batch orchestration."""

from reachability.probing.batch import run_batch
from reachability.probing.classifier import UDP_ONLY_SUFFIXES, UDP_SCHEMES, classify
from reachability.probing.probe import ReachabilityProbe

__all__ = ["ReachabilityProbe", "UDP_ONLY_SUFFIXES", "UDP_SCHEMES", "classify", "run_batch"]
