"""Middleware package: error hierarchy, auth, and request ID."""

from reachability.middleware.auth import ServiceKeyAuthMiddleware
from reachability.middleware.error_handler import (
    AuthenticationError,
    DirectoryUnavailableError,
    JobCapacityError,
    JobNotFoundError,
    ReachabilityError,
    ValidationError,
    register_error_handlers,
)
from reachability.middleware.request_id import RequestIdMiddleware

__all__ = [
    "AuthenticationError",
    "DirectoryUnavailableError",
    "JobCapacityError",
    "JobNotFoundError",
    "ReachabilityError",
    "RequestIdMiddleware",
    "ServiceKeyAuthMiddleware",
    "ValidationError",
    "register_error_handlers",
]
