"""
Group booking schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from marketplace.models.base.enums import GroupBookingStatus
from marketplace.schemas.booking.booking_request import to_naive_utc
from marketplace.schemas.booking.booking_response import BookingResponse
from marketplace.schemas.common.base import BaseCreateSchema, BaseResponseSchema, BaseSchema

__all__ = [
    "GroupBookingCreate",
    "GroupBookingJoin",
    "GroupBookingCancel",
    "GroupBookingResponse",
    "GroupBookingDetails",
    "AvailableGroupBooking",
    "GroupMembershipResponse",
]


class GroupBookingCreate(BaseCreateSchema):
    """Organizer request to open a group booking."""

    service_id: str
    name: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    max_participants: int = Field(..., ge=2, le=100)
    min_participants: Optional[int] = Field(
        default=None,
        ge=1,
        description="Defaults to the service's minimum group size",
    )
    booking_date: datetime
    end_date: datetime

    @field_validator("booking_date", "end_date")
    @classmethod
    def normalize_datetime(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @model_validator(mode="after")
    def validate_bounds(self) -> "GroupBookingCreate":
        if self.end_date <= self.booking_date:
            raise ValueError("end_date must be after booking_date")
        if self.min_participants is not None and self.min_participants > self.max_participants:
            raise ValueError("min_participants cannot exceed max_participants")
        return self


class GroupBookingJoin(BaseSchema):
    notes: Optional[str] = Field(default=None, max_length=2000)


class GroupBookingCancel(BaseSchema):
    reason: Optional[str] = Field(default=None, max_length=1000)


class GroupBookingResponse(BaseResponseSchema):
    service_id: str
    organizer_id: str
    name: str
    description: Optional[str] = None
    max_participants: int
    min_participants: int
    price_per_person: int
    booking_date: datetime
    end_date: Optional[datetime] = None
    status: GroupBookingStatus


class GroupBookingDetails(BaseSchema):
    """
    Group container with its members.

    ``members`` is withheld (None) for viewers who are neither participants
    nor the service provider.
    """

    group_booking: GroupBookingResponse
    participant_count: int
    spots_available: int
    minimum_reached: bool
    members: Optional[List[BookingResponse]] = None


class AvailableGroupBooking(BaseSchema):
    group_booking: GroupBookingResponse
    participant_count: int
    spots_available: int
    minimum_reached: bool


class GroupMembershipResponse(BaseSchema):
    """Group with the member booking created by a create or join call."""

    group_booking: GroupBookingResponse
    booking: BookingResponse
    participant_count: int
