"""
Booking response schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from marketplace.models.base.enums import BookingStatus, PaymentStatus
from marketplace.schemas.common.base import BaseResponseSchema, BaseSchema
from marketplace.schemas.common.pagination import CursorPaginatedResponse

__all__ = [
    "PaymentResponse",
    "BookingAddOnResponse",
    "BookingResponse",
    "BookingListResponse",
    "PriceQuote",
]


class PaymentResponse(BaseResponseSchema):
    """Payment record of a booking."""

    booking_id: str
    amount: int
    status: PaymentStatus
    service_fee: int
    net_amount: int
    escrow_release_date: Optional[datetime] = None
    refund_amount: Optional[int] = None
    refunded_at: Optional[datetime] = None


class BookingAddOnResponse(BaseSchema):
    add_on_id: str
    price: int


class BookingResponse(BaseResponseSchema):
    """Booking with its payment record and charged add-ons."""

    service_id: str
    client_id: str
    provider_id: str
    booking_date: datetime
    end_date: Optional[datetime] = None
    total_price: int = Field(..., description="Total in minor currency units")
    status: BookingStatus
    notes: Optional[str] = None
    address: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    is_recurring: bool = False
    recurring_booking_id: Optional[str] = None
    group_booking_id: Optional[str] = None
    version: int
    payment: Optional[PaymentResponse] = None
    add_ons: List[BookingAddOnResponse] = Field(default_factory=list)


class BookingListResponse(CursorPaginatedResponse[BookingResponse]):
    """Page of bookings, newest first."""
    pass


class PriceQuote(BaseSchema):
    """Breakdown of a computed booking price."""

    base_price: int = Field(..., description="Price after duration pricing")
    discount: int = Field(default=0, description="Bundle discount subtracted from the base")
    add_ons_total: int = Field(default=0)
    total_price: int
    billed_hours: Optional[int] = Field(
        default=None,
        description="Hours billed for hourly services",
    )
