"""
Booking repositories package.
"""

from marketplace.repositories.booking.booking_reminder_repository import BookingReminderRepository
from marketplace.repositories.booking.booking_repository import BookingRepository, day_bounds
from marketplace.repositories.booking.booking_waitlist_repository import BookingWaitlistRepository
from marketplace.repositories.booking.group_booking_repository import GroupBookingRepository
from marketplace.repositories.booking.payment_repository import PaymentRepository
from marketplace.repositories.booking.recurring_booking_repository import RecurringBookingRepository
from marketplace.repositories.booking.time_slot_repository import TimeSlotRepository

__all__ = [
    "BookingReminderRepository",
    "BookingRepository",
    "BookingWaitlistRepository",
    "GroupBookingRepository",
    "PaymentRepository",
    "RecurringBookingRepository",
    "TimeSlotRepository",
    "day_bounds",
]
