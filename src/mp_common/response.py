"""Unified API response wrappers.

Success:
{
    "data": { ... },
    "timestamp": "...",
    "request_id": "..."
}

Error:
{
    "error": "Offer is already accepted",
    "code": 3004,                 // AppError code, 0 for framework errors
    "details": { ... } | null,
    "request_id": "..."
}
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


def _new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=_new_request_id)


class ErrorResponse(BaseModel):
    error: str
    code: int = 0
    details: Any = None
    request_id: str = Field(default_factory=_new_request_id)


def success_response(data: Any = None, request_id: str | None = None) -> ApiResponse:
    resp = ApiResponse(data=data)
    if request_id:
        resp.request_id = request_id
    return resp


def error_response(
    code: int, message: str, details: Any = None, request_id: str | None = None
) -> ErrorResponse:
    resp = ErrorResponse(error=message, code=code, details=details)
    if request_id:
        resp.request_id = request_id
    return resp


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def of(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        return cls(page=page, limit=limit, total=total, total_pages=(total + limit - 1) // limit)
