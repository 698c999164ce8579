"""
Response envelope shared by every endpoint.

Success::

    {"status": "success", "message": "...", "result": {...},
     "timestamp": "...", "meta": {...}}

Failure::

    {"status": "error", "message": "...", "result": null,
     "timestamp": "...", "errors": [...], "code": "UNAUTHORIZED"}
"""

import math
from datetime import datetime, timezone
from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class SuccessResponse(BaseModel, Generic[T]):
    status: Literal["success"] = "success"
    message: str = "Request successful"
    result: Optional[T] = None
    timestamp: str = Field(default_factory=utc_now_iso)
    meta: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    message: str = "An error occurred"
    result: None = None
    timestamp: str = Field(default_factory=utc_now_iso)
    errors: Optional[Any] = None
    code: Optional[str] = None


def success_response(
    result: Any = None,
    message: str = "Request successful",
    meta: Optional[dict[str, Any]] = None,
) -> SuccessResponse:
    return SuccessResponse(result=result, message=message, meta=meta or None)


def paginated_response(
    items: list,
    page: int,
    limit: int,
    total: int,
    message: str = "Request successful",
) -> SuccessResponse:
    pagination = Pagination.build(page=page, limit=limit, total=total)
    return success_response(items, message, meta={"pagination": pagination.model_dump()})


def error_body(
    message: str,
    code: Optional[str] = None,
    errors: Any = None,
) -> dict:
    """Serialisable error envelope; unset optional keys are omitted."""
    return ErrorResponse(message=message, code=code, errors=errors).model_dump(
        exclude_none=True
    ) | {"result": None}
