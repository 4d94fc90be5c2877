"""Waitlist endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from marketplace.api.deps import get_current_user_id, get_services, unwrap
from marketplace.schemas.booking import (
    WaitlistConversionResponse,
    WaitlistConvert,
    WaitlistJoin,
    WaitlistNotify,
    WaitlistPriorityUpdate,
    WaitlistResponse,
    WaitlistStats,
)
from marketplace.services.base.service_factory import ServiceFactory

router = APIRouter(prefix="/waitlist", tags=["Waitlist"])


@router.post("", response_model=WaitlistResponse, status_code=status.HTTP_201_CREATED)
def join_waitlist(
    data: WaitlistJoin,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    return unwrap(services.waitlist().join_waitlist(user_id, data))


@router.get("/me", response_model=List[WaitlistResponse])
def list_my_waitlists(
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    return unwrap(services.waitlist().get_user_waitlists(user_id))


@router.get("/stats", response_model=WaitlistStats)
def get_waitlist_stats(
    provider_id: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    """Counts by status, with per-service totals when scoped to a provider."""
    return unwrap(services.waitlist().get_waitlist_stats(user_id, provider_id))


@router.get("/services/{service_id}", response_model=List[WaitlistResponse])
def get_service_waitlist(
    service_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    return unwrap(services.waitlist().get_service_waitlist(user_id, service_id))


@router.delete("/services/{service_id}", response_model=WaitlistResponse)
def leave_waitlist(
    service_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    return unwrap(services.waitlist().leave_waitlist(user_id, service_id))


@router.post("/{waitlist_id}/notify", response_model=WaitlistResponse)
def notify_waitlist_availability(
    waitlist_id: str,
    data: WaitlistNotify,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    """Provider offers a freed slot to a waiting client."""
    return unwrap(services.waitlist().notify_waitlist_availability(user_id, waitlist_id, data))


@router.post("/{waitlist_id}/convert", response_model=WaitlistConversionResponse)
def convert_waitlist_entry(
    waitlist_id: str,
    data: WaitlistConvert,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    conversion = unwrap(services.waitlist().convert_to_booking(user_id, waitlist_id, data))
    return WaitlistConversionResponse.model_validate(conversion)


@router.patch("/{waitlist_id}/priority", response_model=WaitlistResponse)
def update_waitlist_priority(
    waitlist_id: str,
    data: WaitlistPriorityUpdate,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    return unwrap(services.waitlist().update_waitlist_priority(user_id, waitlist_id, data.priority))
