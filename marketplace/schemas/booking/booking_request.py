"""
Booking request schemas.

Datetimes are normalized to naive UTC on the way in; the database stores
naive UTC throughout.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import Field, field_validator

from marketplace.models.base.enums import BookingStatus
from marketplace.schemas.common.base import BaseCreateSchema, BaseUpdateSchema

__all__ = [
    "to_naive_utc",
    "BookingCreate",
    "BookingDecline",
    "BookingStatusUpdate",
]


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class BookingCreate(BaseCreateSchema):
    """
    Request to book a service.

    ``end_date`` only matters for hourly services, where it sets the billed
    duration. ``bundle_id`` applies the bundle's discount when the service is
    a bundle member.
    """

    service_id: str = Field(..., description="Service to book")
    booking_date: datetime = Field(..., description="Start of the booking")
    end_date: Optional[datetime] = Field(
        default=None,
        description="End of the booking",
    )
    notes: Optional[str] = Field(default=None, max_length=2000)
    address: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Defaults to the service location",
    )
    bundle_id: Optional[str] = Field(default=None, description="Bundle to price the booking with")
    add_on_ids: List[str] = Field(default_factory=list, description="Add-ons to include")

    @field_validator("booking_date", "end_date")
    @classmethod
    def normalize_datetime(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)

    @field_validator("add_on_ids")
    @classmethod
    def unique_add_ons(cls, v: List[str]) -> List[str]:
        """Drop repeated add-on ids, keeping order."""
        return list(dict.fromkeys(v))

    @field_validator("notes", "address")
    @classmethod
    def clean_text(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v.strip()) == 0:
            return None
        return v


class BookingDecline(BaseUpdateSchema):
    """Provider declining a pending booking."""

    reason: Optional[str] = Field(default=None, max_length=1000)


class BookingStatusUpdate(BaseUpdateSchema):
    """Move an accepted or pending booking to completed or cancelled."""

    status: BookingStatus = Field(..., description="Target status")
    reason: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("status")
    @classmethod
    def validate_target(cls, v: BookingStatus) -> BookingStatus:
        if v not in (BookingStatus.COMPLETED, BookingStatus.CANCELLED):
            raise ValueError("Status can only be updated to completed or cancelled")
        return v
