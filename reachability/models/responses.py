"""Response envelope shared by every API route.

Successful routes return ``{success: true, data, error: null, meta}``;
errors return ``{success: false, data: null, error, meta}``.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool
    data: T | None = None
    error: str | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(cls, error: str, meta: dict[str, Any] | None = None) -> ApiResponse:
        return cls(success=False, error=error, meta=meta or None)
