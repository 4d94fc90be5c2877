"""
Cursor pagination schemas.
"""

from __future__ import annotations

from typing import Generic, List, Optional, TypeVar

from pydantic import Field

from marketplace.schemas.common.base import BaseSchema

T = TypeVar("T")

__all__ = [
    "CursorPaginationMeta",
    "CursorPaginatedResponse",
]


class CursorPaginationMeta(BaseSchema):
    """Cursor pagination metadata."""

    next_cursor: Optional[str] = Field(
        default=None,
        description="Cursor to pass for the next page, absent on the last page",
    )
    has_more: bool = Field(..., description="Whether more items exist")
    page_size: int = Field(..., ge=1, description="Requested page size")


class CursorPaginatedResponse(BaseSchema, Generic[T]):
    """Cursor-paginated list of items."""

    items: List[T] = Field(default_factory=list)
    pagination: CursorPaginationMeta
