"""Common schemas and the response envelope used across the API."""

from typing import Any, Iterable, Optional, Type

from pydantic import BaseModel, Field

from core.utils import calculate_offset, pagination_meta


class PaginationParams(BaseModel):
    """Pagination parameters for list endpoints."""

    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    per_page: int = Field(
        default=20, ge=1, le=100, description="Items per page (max 100)"
    )

    @property
    def offset(self) -> int:
        return calculate_offset(self.page, self.per_page)


class MessageResponse(BaseModel):
    """Envelope without payload."""

    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Failure envelope; the only error shape clients ever see."""

    success: bool = False
    message: str = Field(description="Human-readable error message")


def dump(schema: Type[BaseModel], obj: Any) -> dict:
    """Validate an ORM object through ``schema`` and return JSON-ready data."""
    return schema.model_validate(obj).model_dump(mode="json")


def dump_many(schema: Type[BaseModel], objs: Iterable[Any]) -> list[dict]:
    return [dump(schema, obj) for obj in objs]


def success(data: Any = None, message: Optional[str] = None, pagination: Optional[dict] = None) -> dict:
    """Build the success envelope ``{success: true, data}``."""
    body: dict = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    if pagination is not None:
        body["pagination"] = pagination
    return body


def paginated(items: list, total: int, params: PaginationParams) -> dict:
    return success(items, pagination=pagination_meta(total, params.page, params.per_page))
