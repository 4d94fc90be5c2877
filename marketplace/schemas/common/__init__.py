"""
Common schemas shared across the API.
"""

from marketplace.schemas.common.base import (
    BaseCreateSchema,
    BaseResponseSchema,
    BaseSchema,
    BaseUpdateSchema,
)
from marketplace.schemas.common.pagination import CursorPaginatedResponse, CursorPaginationMeta

__all__ = [
    "BaseCreateSchema",
    "BaseResponseSchema",
    "BaseSchema",
    "BaseUpdateSchema",
    "CursorPaginatedResponse",
    "CursorPaginationMeta",
]
