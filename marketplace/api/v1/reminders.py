"""Reminder preference and statistics endpoints."""

from fastapi import APIRouter, Depends

from marketplace.api.deps import get_current_user_id, get_services, unwrap
from marketplace.schemas.booking import ReminderPreferences, ReminderPreferencesUpdate, ReminderStats
from marketplace.services.base.service_factory import ServiceFactory

router = APIRouter(prefix="/reminders", tags=["Reminders"])


@router.get("/preferences", response_model=ReminderPreferences)
def get_reminder_preferences(
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    return unwrap(services.reminders().get_reminder_preferences(user_id))


@router.put("/preferences", response_model=ReminderPreferences)
def update_reminder_preferences(
    data: ReminderPreferencesUpdate,
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    return unwrap(services.reminders().update_reminder_preferences(user_id, data))


@router.get("/stats", response_model=ReminderStats)
def get_reminder_stats(
    user_id: str = Depends(get_current_user_id),
    services: ServiceFactory = Depends(get_services),
):
    """Reminder counts by status for the caller's bookings."""
    return unwrap(services.reminders().get_reminder_stats(user_id))
