"""Optional shared-secret authentication.

``create_app`` installs this middleware only when ``service_key`` is set; an
unconfigured service is open. Liveness, readiness and metrics stay public so
orchestrators can poll them without the key.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from reachability.middleware.error_handler import AuthenticationError, error_response

logger = logging.getLogger(__name__)

SERVICE_KEY_HEADER = "X-Service-Key"
OPEN_PATHS = frozenset({"/health", "/readiness", "/metrics"})


class ServiceKeyAuthMiddleware(BaseHTTPMiddleware):
    """Rejects requests whose X-Service-Key does not match the configured key."""

    def __init__(self, app: ASGIApp, service_key: str) -> None:
        super().__init__(app)
        self._expected = service_key.encode()

    def _authorized(self, presented: str | None) -> bool:
        if not presented:
            return False
        return hmac.compare_digest(presented.encode(), self._expected)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in OPEN_PATHS:
            return await call_next(request)

        presented = request.headers.get(SERVICE_KEY_HEADER)
        if self._authorized(presented):
            return await call_next(request)

        logger.warning(
            "Service key %s for %s %s",
            "missing" if not presented else "rejected",
            request.method,
            request.url.path,
        )
        return error_response(AuthenticationError.status_code, AuthenticationError.message)
