"""
Booking models package.
"""

from marketplace.models.booking.booking import Booking, BookingAddOn, TimeSlot
from marketplace.models.booking.booking_reminder import BookingReminder
from marketplace.models.booking.booking_waitlist import BookingWaitlist, WaitlistAlternativeDate
from marketplace.models.booking.group_booking import GroupBooking
from marketplace.models.booking.recurring_booking import RecurringBooking

__all__ = [
    "Booking",
    "BookingAddOn",
    "BookingReminder",
    "BookingWaitlist",
    "GroupBooking",
    "RecurringBooking",
    "TimeSlot",
    "WaitlistAlternativeDate",
]
