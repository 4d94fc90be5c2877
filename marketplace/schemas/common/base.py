"""
Base schemas.

Every schema validates from ORM rows (``from_attributes``), so services can
return model instances and routers convert them with ``model_validate``.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "BaseSchema",
    "BaseCreateSchema",
    "BaseUpdateSchema",
    "BaseResponseSchema",
]


class BaseSchema(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class BaseCreateSchema(BaseSchema):
    """Request body that creates a record."""


class BaseUpdateSchema(BaseSchema):
    """Request body that changes an existing record; fields default to None."""


class BaseResponseSchema(BaseSchema):
    """A persisted record: string UUID plus audit timestamps."""

    id: str = Field(..., description="Record identifier")
    created_at: datetime
    updated_at: datetime
