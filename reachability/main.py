"""FastAPI application factory and entry point.

``create_app`` loads the signal sources, builds the probe, detector,
directory client and job service, and mounts the routers. The lifespan
configures logging on startup. On shutdown it drains running batch jobs, cancelling any
still running after the grace period.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI

from reachability import __version__
from reachability.config.settings import ReachabilitySettings
from reachability.config.signal_sources import load_signal_sources
from reachability.integration.endpoint_directory import EndpointDirectoryClient
from reachability.logging_config import configure_logging
from reachability.middleware.auth import ServiceKeyAuthMiddleware
from reachability.middleware.error_handler import register_error_handlers
from reachability.middleware.request_id import RequestIdMiddleware
from reachability.probing.probe import ReachabilityProbe
from reachability.routers.endpoints import create_endpoints_router
from reachability.routers.health import create_health_router
from reachability.routers.interception import create_interception_router
from reachability.routers.jobs import create_jobs_router
from reachability.routers.probe import create_probe_router
from reachability.services.job_service import BatchJobService
from reachability.signals.ice import ConnectionFactory
from reachability.verdict.aggregator import InterceptionDetector

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown logic."""
    settings: ReachabilitySettings = app.state.settings
    configure_logging(settings.log_level)
    logger.info("Starting reachability service on port %d", settings.port)

    yield

    logger.info("Shutting down reachability service")
    await app.state.job_service.drain(timeout=settings.graceful_shutdown_seconds)
    logger.info("Reachability service shut down")


def create_app(
    settings: ReachabilitySettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    connection_factory: ConnectionFactory | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``transport`` and ``connection_factory`` replace the real network stack
    for HTTP and ICE respectively; the server never passes them.
    """
    settings = settings or ReachabilitySettings()
    sources = load_signal_sources(settings.signal_sources_path)

    probe = ReachabilityProbe(
        sources=sources,
        ambiguity_threshold=settings.ambiguity_threshold,
        fallback_min_remaining_ms=settings.fallback_min_remaining_ms,
        stun_timeout_ms=settings.stun_probe_timeout_ms,
        webrtc_enabled=settings.webrtc_enabled,
        transport=transport,
        connection_factory=connection_factory,
    )
    detector = InterceptionDetector(
        sources,
        local_window_seconds=settings.local_discovery_window_ms / 1000.0,
        nat_window_seconds=settings.stun_probe_timeout_ms / 1000.0,
        webrtc_enabled=settings.webrtc_enabled,
        transport=transport,
        connection_factory=connection_factory,
    )
    directory_client = EndpointDirectoryClient(
        directory_url=settings.directory_url,
        service_area=settings.directory_service_area,
        max_retries=settings.directory_max_retries,
        timeout_seconds=settings.directory_timeout_seconds,
        cache_ttl_seconds=settings.directory_cache_ttl_seconds,
        transport=transport,
    )
    job_service = BatchJobService(probe=probe, settings=settings)

    app = FastAPI(
        title="Endpoint Reachability Service",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.job_service = job_service

    register_error_handlers(app)

    # Starlette applies middleware in reverse order of add_middleware calls,
    # so request IDs are assigned before auth runs.
    if settings.service_key:
        app.add_middleware(ServiceKeyAuthMiddleware, service_key=settings.service_key)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(create_health_router(job_service=job_service))
    app.include_router(
        create_probe_router(
            probe=probe,
            job_service=job_service,
            default_timeout_ms=settings.probe_timeout_ms,
        )
    )
    app.include_router(create_endpoints_router(directory_client=directory_client))
    app.include_router(
        create_jobs_router(job_service=job_service, directory_client=directory_client)
    )
    app.include_router(create_interception_router(detector=detector, job_service=job_service))

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve ``app`` with uvicorn."""
    settings: ReachabilitySettings = app.state.settings
    uvicorn.run(
        "reachability.main:app",
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
