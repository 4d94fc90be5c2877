"""Recurring booking endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Query, status

from marketplace.api.deps import get_current_user_id, get_services, unwrap
from marketplace.schemas.booking import (
    RecurringBookingCreate,
    RecurringBookingCreated,
    RecurringBookingDetails,
    RecurringBookingResponse,
    RecurringBookingResume,
)
from marketplace.services.base.service_factory import ServiceFactory

router = APIRouter(prefix="/recurring-bookings", tags=["Recurring bookings"])


@router.post("", response_model=RecurringBookingCreated, status_code=status.HTTP_201_CREATED)
def create_recurring_booking(
    data: RecurringBookingCreate,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    """Create a series and book its first occurrences."""
    series = unwrap(services.recurring().create_recurring_booking(user_id, data))
    return RecurringBookingCreated.model_validate(series)


@router.get("", response_model=List[RecurringBookingResponse])
def list_recurring_bookings(
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    return unwrap(services.recurring().list_user_recurring_bookings(user_id))


@router.get("/{recurring_booking_id}", response_model=RecurringBookingDetails)
def get_recurring_booking(
    recurring_booking_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    details = unwrap(services.recurring().get_recurring_booking_details(user_id, recurring_booking_id))
    return RecurringBookingDetails(
        recurring_booking=RecurringBookingResponse.model_validate(details.recurring_booking),
        booking_ids=[booking.id for booking in details.bookings],
        bookings_created=len(details.bookings),
        upcoming_dates=details.upcoming_dates,
    )


@router.post("/{recurring_booking_id}/pause", response_model=RecurringBookingResponse)
def pause_recurring_booking(
    recurring_booking_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    return unwrap(services.recurring().pause_recurring_booking(user_id, recurring_booking_id))


@router.post("/{recurring_booking_id}/resume", response_model=RecurringBookingResponse)
def resume_recurring_booking(
    recurring_booking_id: str,
    data: RecurringBookingResume,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    result = services.recurring().resume_recurring_booking(user_id, recurring_booking_id, data.from_date)
    return unwrap(result)


@router.post("/{recurring_booking_id}/cancel", response_model=RecurringBookingResponse)
def cancel_recurring_booking(
    recurring_booking_id: str,
    future_only: bool = Query(True, description="Keep bookings that already started"),
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    result = services.recurring().cancel_recurring_booking(user_id, recurring_booking_id, future_only)
    return unwrap(result)
