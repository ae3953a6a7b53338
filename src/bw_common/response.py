"""Unified API response wrapper.

All API endpoints return this format:
{
    "code": 0,           // 0=success, non-0=error code
    "message": "success",
    "data": { ... },     // null on error, except retriable errors (below)
    "timestamp": "...",
    "request_id": "..."
}

A retriable error carries {"idempotency_key": "..."} as data: replaying the
request with that key resumes the same money operation, including one the
caller sent without a key of its own.
"""

import uuid
from typing import Any

from pydantic import BaseModel, Field

from src.bw_common.datetime_utils import utc_now


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def success_response(data: Any = None) -> ApiResponse:
    return ApiResponse(code=0, message="success", data=data)


def error_response(
    code: int,
    message: str,
    *,
    request_id: str | None = None,
    idempotency_key: str | None = None,
) -> ApiResponse:
    resp = ApiResponse(
        code=code,
        message=message,
        data={"idempotency_key": idempotency_key} if idempotency_key else None,
    )
    if request_id:
        resp.request_id = request_id
    return resp
