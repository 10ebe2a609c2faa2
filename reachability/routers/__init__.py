"""API routers, each built by a factory that receives its dependencies."""

from reachability.routers.endpoints import create_endpoints_router
from reachability.routers.health import create_health_router
from reachability.routers.interception import create_interception_router
from reachability.routers.jobs import create_jobs_router
from reachability.routers.probe import create_probe_router

__all__ = [
    "create_endpoints_router",
    "create_health_router",
    "create_interception_router",
    "create_jobs_router",
    "create_probe_router",
]
