"""
Booking reminder schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from pydantic import Field

from marketplace.models.base.enums import ReminderChannel, ReminderStatus
from marketplace.schemas.common.base import BaseResponseSchema, BaseSchema, BaseUpdateSchema

__all__ = [
    "BookingReminderResponse",
    "ReminderPreferences",
    "ReminderPreferencesUpdate",
    "ReminderStats",
    "ReminderDispatchSummary",
]


class BookingReminderResponse(BaseResponseSchema):
    booking_id: str
    type: ReminderChannel
    scheduled_for: datetime
    status: ReminderStatus
    sent_at: Optional[datetime] = None
    retry_count: int = 0
    last_error: Optional[str] = None


class ReminderPreferences(BaseSchema):
    """Per-channel reminder opt-ins of a user."""

    email: bool
    sms: bool
    whatsapp: bool


class ReminderPreferencesUpdate(BaseUpdateSchema):
    email: Optional[bool] = None
    sms: Optional[bool] = None
    whatsapp: Optional[bool] = None


class ReminderStats(BaseSchema):
    by_status: Dict[ReminderStatus, int]
    total: int = 0


class ReminderDispatchSummary(BaseSchema):
    """Outcome of one dispatch or retry run."""

    processed: int = 0
    sent: int = 0
    failed: int = 0
    errors: Dict[str, str] = Field(
        default_factory=dict,
        description="Reminder id to last error",
    )
