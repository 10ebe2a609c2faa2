"""Endpoint reachability probing and traffic-interception diagnostics."""

__all__ = ["__version__"]

__version__ = "0.1.0"
