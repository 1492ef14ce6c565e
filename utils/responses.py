"""
Response Envelope

Every endpoint answers with the same JSON shape:

    {"success": true, "message": "...", "data": ..., "timestamp": "..."}
    {"success": false, "message": "...", "timestamp": "...", "errors": [...]}

Bodies are serialized with orjson.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import orjson
from fastapi.responses import JSONResponse

from utils.config import settings
from utils.errors import AppError
from utils.query import PageInfo


class EnvelopeResponse(JSONResponse):
    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        return orjson.dumps(content, default=str)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def success(data: Any = None, message: str = "Success", status_code: int = 200) -> EnvelopeResponse:
    return EnvelopeResponse(
        status_code=status_code,
        content={"success": True, "message": message, "data": data, "timestamp": _now()},
    )


def created(data: Any = None, message: str = "Resource created successfully") -> EnvelopeResponse:
    return success(data, message, status_code=201)


def paginated(key: str, rows: list[dict[str, Any]], page: PageInfo, message: str = "Data retrieved successfully") -> EnvelopeResponse:
    return success({key: rows, "pagination": page.as_dict()}, message)


def error(
    message: str,
    status_code: int = 500,
    errors: Optional[list[Any]] = None,
    exc: Optional[BaseException] = None,
    data: Any = None,
) -> EnvelopeResponse:
    body: dict[str, Any] = {"success": False, "message": message, "timestamp": _now()}
    if data is not None:
        body["data"] = data
    if errors:
        body["errors"] = errors
    if exc is not None and not settings.is_production:
        cause = exc.__cause__ or exc
        body["error"] = str(cause)
    return EnvelopeResponse(status_code=status_code, content=body)


def from_app_error(exc: AppError) -> EnvelopeResponse:
    detail = exc if exc.status_code >= 500 else None
    return error(exc.message, exc.status_code, errors=exc.errors, exc=detail)
