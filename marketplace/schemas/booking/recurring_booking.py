"""
Recurring booking schemas.
"""

from __future__ import annotations

import re
from datetime import date as Date, datetime
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from marketplace.models.base.enums import RecurrenceFrequency, RecurringBookingStatus
from marketplace.schemas.booking.booking_response import BookingResponse
from marketplace.schemas.common.base import BaseCreateSchema, BaseResponseSchema, BaseSchema

__all__ = [
    "TIME_OF_DAY_PATTERN",
    "RecurringBookingCreate",
    "RecurringBookingResume",
    "RecurringBookingResponse",
    "RecurringBookingDetails",
    "RecurringBookingCreated",
    "RecurringGenerationSummary",
]

TIME_OF_DAY_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class RecurringBookingCreate(BaseCreateSchema):
    """
    Request to create a recurring booking series.

    ``days_of_week`` uses 0 = Sunday through 6 = Saturday and applies to
    weekly and biweekly series; ``day_of_month`` applies to monthly series.
    """

    service_id: str = Field(..., description="Service to book")
    frequency: RecurrenceFrequency
    interval: int = Field(default=1, ge=1, description="Every N frequency units")
    start_date: Date
    end_date: Optional[Date] = Field(default=None, description="Last day a booking may fall on")
    occurrences: Optional[int] = Field(default=None, ge=1, description="Maximum number of bookings")
    days_of_week: Optional[List[int]] = Field(default=None)
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    time_slot: str = Field(..., description="Time of day, HH:MM")
    duration: int = Field(..., ge=15, description="Duration in minutes")
    notes: Optional[str] = Field(default=None, max_length=2000)
    address: Optional[str] = Field(default=None, max_length=500)

    @field_validator("time_slot")
    @classmethod
    def validate_time_slot(cls, v: str) -> str:
        if not TIME_OF_DAY_PATTERN.match(v):
            raise ValueError("time_slot must be in HH:MM format")
        return v

    @field_validator("days_of_week")
    @classmethod
    def validate_days_of_week(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        if v is None:
            return v
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("days_of_week values must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v)) or None

    @model_validator(mode="after")
    def validate_window(self) -> "RecurringBookingCreate":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class RecurringBookingResume(BaseSchema):
    """Resume a paused series from a given day."""

    from_date: Optional[Date] = Field(
        default=None,
        description="First day to regenerate from, defaults to today",
    )


class RecurringBookingResponse(BaseResponseSchema):
    service_id: str
    client_id: str
    provider_id: str
    frequency: RecurrenceFrequency
    interval: int
    start_date: Date
    end_date: Optional[Date] = None
    occurrences: Optional[int] = None
    days_of_week: Optional[List[int]] = None
    day_of_month: Optional[int] = None
    time_slot: str
    duration: int
    total_price: int
    notes: Optional[str] = None
    address: Optional[str] = None
    status: RecurringBookingStatus


class RecurringBookingDetails(BaseSchema):
    """Series with its materialized bookings and the next dates it would produce."""

    recurring_booking: RecurringBookingResponse
    booking_ids: List[str] = Field(default_factory=list)
    bookings_created: int = 0
    upcoming_dates: List[datetime] = Field(default_factory=list)


class RecurringBookingCreated(BaseSchema):
    """A series together with the bookings materialized by the same call."""

    recurring_booking: RecurringBookingResponse
    bookings: List[BookingResponse] = Field(default_factory=list)
    total_occurrences: int = Field(default=0, description="Future dates the rule yields")
    skipped: int = Field(default=0, description="Dates in this batch that could not be booked")


class RecurringGenerationSummary(BaseSchema):
    """Outcome of one generate-upcoming run."""

    series_processed: int = 0
    bookings_created: int = 0
    occurrences_skipped: int = 0
    series_completed: int = 0
