"""Per-request correlation IDs.

A caller-supplied ``X-Request-ID`` is kept; otherwise a UUID4 is minted. The
ID is exposed as ``request.state.request_id``, published through
``current_request_id`` for the duration of the request (the log filter reads
it from there) and echoed back in the response headers.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

current_request_id: ContextVar[str | None] = ContextVar("current_request_id", default=None)


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        token = current_request_id.set(request_id)
        try:
            response = await call_next(request)
        finally:
            current_request_id.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
