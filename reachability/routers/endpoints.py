"""Endpoint directory lookup.

- GET /api/v1/endpoints?lookup_type=FQDN|IP: published targets for the
  configured service area
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from reachability.models.requests import LookupType
from reachability.models.responses import ApiResponse


def create_endpoints_router(*, directory_client: Any = None) -> APIRouter:
    """Factory that creates the endpoints router with injected dependencies."""

    endpoints_router = APIRouter(prefix="/api/v1", tags=["endpoints"])

    @endpoints_router.get("/endpoints")
    async def list_endpoints(lookup_type: LookupType = LookupType.FQDN) -> dict:
        targets = await directory_client.fetch(lookup_type)
        return ApiResponse(
            success=True,
            data={"lookup_type": lookup_type.value, "targets": targets, "count": len(targets)},
        ).model_dump()

    return endpoints_router
