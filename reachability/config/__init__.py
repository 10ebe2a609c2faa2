"""Configuration module: settings and signal sources."""

from reachability.config.settings import ReachabilitySettings
from reachability.config.signal_sources import IceServer, SignalSources, load_signal_sources

__all__ = [
    "IceServer",
    "ReachabilitySettings",
    "SignalSources",
    "load_signal_sources",
]
