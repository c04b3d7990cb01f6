"""Error envelope shared by all API endpoints.

Successful responses return their resource schema directly; every rejection
uses this format:
{
    "code": 4005,                 // non-0 error code
    "message": "...",             // human readable
    "kind": "CONFLICT",           // machine-distinguishable ErrorKind
    "data": null,
    "timestamp": "...",
    "request_id": "..."
}
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    kind: str | None = None
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def error_response(
    code: int, message: str, kind: str, request_id: str | None = None
) -> ApiResponse:
    resp = ApiResponse(code=code, message=message, kind=kind, data=None)
    if request_id:
        resp.request_id = request_id
    return resp
