"""Booking endpoints: create, quote, transitions and listings."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from marketplace.api.deps import get_current_user_id, get_services, unwrap
from marketplace.models.base.enums import BookingStatus
from marketplace.schemas.booking import (
    BookingCreate,
    BookingDecline,
    BookingListResponse,
    BookingResponse,
    BookingStatusUpdate,
    PriceQuote,
)
from marketplace.schemas.common import CursorPaginationMeta
from marketplace.services.base.service_factory import ServiceFactory

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/quote", response_model=PriceQuote)
def quote_booking(
    data: BookingCreate,
    services: ServiceFactory = Depends(get_services),
):
    """Price a booking request without creating it."""
    return unwrap(services.pricing().quote(data))


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    booking = unwrap(services.bookings().create_booking(user_id, data))
    return BookingResponse.model_validate(booking)


@router.get("", response_model=BookingListResponse)
def list_bookings(
    role: str = Query("client", pattern="^(client|provider)$"),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    limit: Optional[int] = Query(None, ge=1),
    cursor: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    """The caller's bookings as client or provider, newest first."""
    booking_service = services.bookings()
    page = unwrap(booking_service.list_bookings(user_id, role, status_filter, limit, cursor))
    return BookingListResponse(
        items=[BookingResponse.model_validate(booking) for booking in page.items],
        pagination=CursorPaginationMeta(
            next_cursor=page.next_cursor,
            has_more=page.has_more,
            page_size=limit or booking_service.settings.DEFAULT_PAGE_SIZE,
        ),
    )


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    return BookingResponse.model_validate(unwrap(services.bookings().get_booking(user_id, booking_id)))


@router.post("/{booking_id}/accept", response_model=BookingResponse)
def accept_booking(
    booking_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    return BookingResponse.model_validate(unwrap(services.bookings().accept_booking(user_id, booking_id)))


@router.post("/{booking_id}/decline", response_model=BookingResponse)
def decline_booking(
    booking_id: str,
    data: BookingDecline,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    result = services.bookings().decline_booking(user_id, booking_id, data.reason)
    return BookingResponse.model_validate(unwrap(result))


@router.patch("/{booking_id}/status", response_model=BookingResponse)
def update_booking_status(
    booking_id: str,
    data: BookingStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    """Complete (provider) or cancel (either party) a booking."""
    result = services.bookings().update_booking_status(user_id, booking_id, data)
    return BookingResponse.model_validate(unwrap(result))
