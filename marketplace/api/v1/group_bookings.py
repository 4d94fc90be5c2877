"""Group booking endpoints."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from marketplace.api.deps import get_current_user_id, get_services, unwrap
from marketplace.schemas.booking import (
    AvailableGroupBooking,
    GroupBookingCancel,
    GroupBookingCreate,
    GroupBookingDetails,
    GroupBookingJoin,
    GroupBookingResponse,
    GroupMembershipResponse,
    to_naive_utc,
)
from marketplace.services.base.service_factory import ServiceFactory

router = APIRouter(prefix="/group-bookings", tags=["Group bookings"])


@router.post("", response_model=GroupMembershipResponse, status_code=status.HTTP_201_CREATED)
def create_group_booking(
    data: GroupBookingCreate,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    """Open a group; the organizer is booked as its first member."""
    membership = unwrap(services.groups().create_group_booking(user_id, data))
    return GroupMembershipResponse.model_validate(membership)


@router.get("/available", response_model=List[AvailableGroupBooking])
def list_available_group_bookings(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    services: ServiceFactory = Depends(get_services),
):
    views = unwrap(services.groups().list_available_group_bookings(to_naive_utc(start), to_naive_utc(end)))
    return [AvailableGroupBooking.model_validate(view) for view in views]


@router.get("/{group_booking_id}", response_model=GroupBookingDetails)
def get_group_booking(
    group_booking_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    view = unwrap(services.groups().get_group_booking_details(user_id, group_booking_id))
    return GroupBookingDetails.model_validate(view)


@router.post("/{group_booking_id}/join", response_model=GroupMembershipResponse)
def join_group_booking(
    group_booking_id: str,
    data: GroupBookingJoin,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    membership = unwrap(services.groups().join_group_booking(user_id, group_booking_id, data.notes))
    return GroupMembershipResponse.model_validate(membership)


@router.post("/{group_booking_id}/leave", response_model=GroupBookingResponse)
def leave_group_booking(
    group_booking_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    return unwrap(services.groups().leave_group_booking(user_id, group_booking_id))


@router.post("/{group_booking_id}/cancel", response_model=GroupBookingResponse)
def cancel_group_booking(
    group_booking_id: str,
    data: GroupBookingCancel,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    """Cancel the group and every member booking (organizer or provider)."""
    return unwrap(services.groups().cancel_group_booking(user_id, group_booking_id, data.reason))
