"""API error types and the FastAPI handlers that render them.

Every error leaves the service in the standard envelope
``{success: false, data: null, error, meta}``. Probe and collector failures
are not errors at this level: the engine turns them into typed results.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from reachability.models.responses import ApiResponse

logger = logging.getLogger(__name__)


class ReachabilityError(Exception):
    """Base class; subclasses pick the HTTP status and default message.

    Keyword arguments are kept as ``details`` and rendered as the envelope's
    ``meta`` object.
    """

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, **details: object) -> None:
        self.message = message or type(self).message
        self.details = details
        super().__init__(self.message)


class ValidationError(ReachabilityError):
    status_code = 422
    message = "Validation error"


class AuthenticationError(ReachabilityError):
    status_code = 401
    message = "Invalid or missing service key"


class JobNotFoundError(ReachabilityError):
    status_code = 404
    message = "Job not found"


class JobCapacityError(ReachabilityError):
    """Raised when ``max_concurrent_jobs`` batches are already active."""

    status_code = 503
    message = "Too many batch jobs running"


class DirectoryUnavailableError(ReachabilityError):
    """The endpoint directory returned nothing usable, even after retries."""

    status_code = 502
    message = "Endpoint directory unavailable"


def error_response(status_code: int, error: str, meta: dict | None = None) -> JSONResponse:
    body = ApiResponse.failure(error, meta)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _field_path(loc: tuple) -> str:
    # Drop the "body"/"query" source marker; clients only care about the field.
    parts = [str(p) for p in loc]
    if parts and parts[0] in {"body", "query", "path", "header"}:
        parts = parts[1:]
    return ".".join(parts) or "request"


async def _on_reachability_error(_request: Request, exc: ReachabilityError) -> JSONResponse:
    return error_response(exc.status_code, exc.message, exc.details)


async def _on_request_validation(_request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [
        {"field": _field_path(tuple(err["loc"])), "message": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]
    return error_response(422, ValidationError.message, {"fields": fields})


async def _on_unhandled(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
        extra={"error_reason": f"{type(exc).__name__}: {exc}"},
    )
    return error_response(500, ReachabilityError.message)


def register_error_handlers(app: FastAPI) -> None:
    """Install the envelope handlers on *app*."""
    handlers = {
        ReachabilityError: _on_reachability_error,
        RequestValidationError: _on_request_validation,
        Exception: _on_unhandled,
    }
    for exc_type, handler in handlers.items():
        app.add_exception_handler(exc_type, handler)  # type: ignore[arg-type]
