"""
Booking waitlist schemas for standing requests on unavailable dates.
"""

from __future__ import annotations

from datetime import date as Date, datetime
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from marketplace.models.base.enums import WaitlistStatus
from marketplace.schemas.booking.booking_request import to_naive_utc
from marketplace.schemas.booking.booking_response import BookingResponse
from marketplace.schemas.booking.recurring_booking import TIME_OF_DAY_PATTERN
from marketplace.schemas.common.base import BaseCreateSchema, BaseResponseSchema, BaseSchema

__all__ = [
    "WaitlistJoin",
    "WaitlistNotify",
    "WaitlistConvert",
    "WaitlistConversionResponse",
    "WaitlistPriorityUpdate",
    "WaitlistResponse",
    "WaitlistServiceSummary",
    "WaitlistStats",
]


class WaitlistJoin(BaseCreateSchema):
    """
    Request to join a service's waitlist.

    Dates are stored as calendar days; any time component is dropped.
    """

    service_id: str
    preferred_date: Date
    preferred_time: Optional[str] = Field(default=None, description="HH:MM")
    alternative_dates: List[Date] = Field(default_factory=list)
    duration: Optional[int] = Field(default=None, ge=15, description="Minutes")
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("preferred_date", mode="before")
    @classmethod
    def strip_time(cls, v):
        if isinstance(v, datetime):
            return v.date()
        return v

    @field_validator("alternative_dates", mode="before")
    @classmethod
    def strip_alternative_times(cls, v):
        if v is None:
            return []
        return [day.date() if isinstance(day, datetime) else day for day in v]

    @field_validator("preferred_time")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not TIME_OF_DAY_PATTERN.match(v):
            raise ValueError("preferred_time must be in HH:MM format")
        return v


class WaitlistNotify(BaseSchema):
    """Provider offering an opened slot to a waitlisted client."""

    available_date: Date
    available_time: str = Field(..., description="HH:MM")
    expires_in_hours: int = Field(default=24, ge=1, le=168)

    @field_validator("available_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not TIME_OF_DAY_PATTERN.match(v):
            raise ValueError("available_time must be in HH:MM format")
        return v


class WaitlistConvert(BaseSchema):
    """Concrete start time chosen when converting an offer into a booking."""

    booking_date: datetime
    end_date: Optional[datetime] = None

    @field_validator("booking_date", "end_date")
    @classmethod
    def normalize_datetime(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class WaitlistPriorityUpdate(BaseSchema):
    priority: int = Field(..., ge=0, le=10)


class WaitlistResponse(BaseResponseSchema):
    service_id: str
    client_id: str
    preferred_date: Date
    preferred_time: Optional[str] = None
    alternative_dates: List[Date] = Field(default_factory=list)
    duration: Optional[int] = None
    notes: Optional[str] = None
    priority: int
    status: WaitlistStatus
    notified_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    converted_booking_id: Optional[str] = None

    @field_validator("alternative_dates", mode="before")
    @classmethod
    def flatten_alternatives(cls, v):
        return [getattr(day, "date", day) for day in v or []]


class WaitlistServiceSummary(BaseSchema):
    service_id: str
    service_name: str
    active_waitlists: int


class WaitlistStats(BaseSchema):
    by_status: Dict[WaitlistStatus, int]
    by_service: List[WaitlistServiceSummary] = Field(default_factory=list)


class WaitlistConversionResponse(BaseSchema):
    waitlist: WaitlistResponse
    booking: BookingResponse
