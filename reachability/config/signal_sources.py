"""Signal source models and YAML loader.

Provides typed Pydantic models for the public services the signal collectors
talk to (IP echo, header echo, STUN/TURN, TLS origins) and a loader that parses
the YAML config into those models.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class IceServer(BaseModel):
    """A STUN or TURN server address."""

    host: str = Field(min_length=1)
    port: int = Field(default=3478, ge=1, le=65535)
    username: str | None = None
    password: str | None = None

    @classmethod
    def parse(cls, value: str) -> IceServer:
        """Parse ``host:port`` (optionally prefixed with ``stun:``/``turn:``)."""
        raw = value.split(":", 1)[1] if value.split(":", 1)[0] in {"stun", "turn"} else value
        host, _, port = raw.rpartition(":")
        if not host:
            return cls(host=raw)
        return cls(host=host, port=int(port))

    def as_tuple(self) -> tuple[str, int]:
        return (self.host, self.port)


class SignalSources(BaseModel):
    """Endpoints and timeouts used by the interception signal collectors."""

    ip_echo_url: str = "https://api.ipify.org?format=json"
    header_echo_url: str = "https://httpbin.org/headers"
    latency_url: str = "https://www.google.com/favicon.ico"
    tls_origins: list[str] = Field(
        default_factory=lambda: [
            "https://www.google.com",
            "https://www.cloudflare.com",
            "https://www.microsoft.com",
        ],
        min_length=1,
        max_length=3,
    )
    websocket_url: str = "wss://echo.websocket.org"
    stun_server: IceServer = Field(
        default_factory=lambda: IceServer(host="stun.l.google.com", port=19302)
    )
    turn_server: IceServer | None = None

    ip_echo_timeout_seconds: float = Field(default=5.0, gt=0)
    header_echo_timeout_seconds: float = Field(default=5.0, gt=0)
    latency_timeout_seconds: float = Field(default=5.0, gt=0)
    tls_timeout_seconds: float = Field(default=5.0, gt=0)
    websocket_timeout_seconds: float = Field(default=5.0, gt=0)
    slow_handshake_ms: int = Field(default=2000, ge=0)

    @field_validator("stun_server", "turn_server", mode="before")
    @classmethod
    def _parse_server_string(cls, value: object) -> object:
        if isinstance(value, str):
            return IceServer.parse(value)
        return value


_DEFAULT_SOURCES = SignalSources()


def load_signal_sources(yaml_path: str) -> SignalSources:
    """Parse a signal sources YAML file into a typed SignalSources object.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        The parsed sources. If the file is missing or invalid, the built-in
        defaults are returned instead.
    """
    path = Path(yaml_path)
    if not path.exists() and not path.is_absolute():
        # Relative paths also resolve against the installed package root
        packaged = Path(__file__).resolve().parents[2] / path
        if packaged.exists():
            path = packaged

    if not path.exists():
        logger.warning("Signal sources file not found at %s, using built-in defaults", yaml_path)
        return _DEFAULT_SOURCES

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        logger.error("Failed to parse signal sources YAML at %s: %s", yaml_path, exc)
        return _DEFAULT_SOURCES

    if not isinstance(raw, dict) or "sources" not in raw:
        logger.warning("Signal sources YAML missing 'sources' key, using built-in defaults")
        return _DEFAULT_SOURCES

    try:
        return SignalSources.model_validate(raw["sources"] or {})
    except ValidationError as exc:
        logger.error("Invalid signal sources in %s: %s, using built-in defaults", yaml_path, exc)
        return _DEFAULT_SOURCES
