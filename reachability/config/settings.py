"""Pydantic Settings for the reachability service.

All environment variables use the REACHABILITY_ prefix.
Example: REACHABILITY_PORT=8002, REACHABILITY_PROBE_TIMEOUT_MS=15000
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class ReachabilitySettings(BaseSettings):
    """Reachability service configuration validated from environment variables."""

    # Service
    port: int = 8002
    log_level: str = "INFO"
    service_key: str | None = None  # X-Service-Key; None leaves the API open

    # Reachability probe
    probe_timeout_ms: int = Field(default=10000, ge=1000, le=120000)
    ambiguity_threshold: float = Field(default=0.8, gt=0.0, le=1.0)
    fallback_min_remaining_ms: int = Field(default=1000, ge=0)
    stun_probe_timeout_ms: int = Field(default=6000, ge=500)

    # Batch orchestration
    batch_concurrency: int = Field(default=10, ge=1, le=100)
    batch_chunk_pause_ms: int = Field(default=50, ge=0, le=1000)
    max_batch_targets: int = Field(default=1000, ge=1)
    max_concurrent_jobs: int = Field(default=4, ge=1)

    # Signal collectors
    local_discovery_window_ms: int = Field(default=3000, ge=500)
    webrtc_enabled: bool = True
    signal_sources_path: str = "reachability/config/signal_sources.yaml"

    # Endpoint directory
    directory_url: str = "https://endpoints.office.com/endpoints/WorldWide"
    directory_service_area: str = "MEM"
    directory_max_retries: int = Field(default=3, ge=1)
    directory_timeout_seconds: float = Field(default=15.0, gt=0)
    directory_cache_ttl_seconds: int = Field(default=3600, ge=0)

    # Shutdown
    graceful_shutdown_seconds: int = Field(default=10, ge=0)

    model_config = {"env_prefix": "REACHABILITY_"}
