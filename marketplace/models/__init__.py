"""
Database models.

Importing this package registers every mapped class on the shared metadata.
"""

from marketplace.models.base import Base, BaseModel, TimestampModel
from marketplace.models.booking import (
    Booking,
    BookingAddOn,
    BookingReminder,
    BookingWaitlist,
    GroupBooking,
    RecurringBooking,
    TimeSlot,
    WaitlistAlternativeDate,
)
from marketplace.models.notification import Notification
from marketplace.models.payment import Payment
from marketplace.models.service import GroupBookingSettings, Service, ServiceAddOn, ServiceBundle
from marketplace.models.user import User

__all__ = [
    "Base",
    "BaseModel",
    "TimestampModel",
    "Booking",
    "BookingAddOn",
    "BookingReminder",
    "BookingWaitlist",
    "GroupBooking",
    "GroupBookingSettings",
    "Notification",
    "Payment",
    "RecurringBooking",
    "Service",
    "ServiceAddOn",
    "ServiceBundle",
    "TimeSlot",
    "User",
    "WaitlistAlternativeDate",
]
