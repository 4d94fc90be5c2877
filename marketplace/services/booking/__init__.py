"""
Booking service layer.

Provides business logic for:
- Booking creation and the status state machine
- Pricing and quotes
- Per-day capacity and buffer windows
- Recurring series
- Group bookings
- Waitlist offers and conversion
- Reminder scheduling and dispatch
"""

from marketplace.services.booking.booking_service import BookingService, BookingPage
from marketplace.services.booking.booking_pricing_service import (
    BookingPricingService,
    PriceBreakdown,
    PricingCalculator,
    fee_split,
)
from marketplace.services.booking.booking_capacity_service import BookingCapacityService
from marketplace.services.booking.recurrence import RecurrenceRule, generate_occurrences
from marketplace.services.booking.recurring_booking_service import RecurringBookingService
from marketplace.services.booking.group_booking_service import GroupBookingService
from marketplace.services.booking.booking_waitlist_service import BookingWaitlistService
from marketplace.services.booking.booking_reminder_service import BookingReminderService

__all__ = [
    "BookingService",
    "BookingPage",
    "BookingPricingService",
    "PriceBreakdown",
    "PricingCalculator",
    "fee_split",
    "BookingCapacityService",
    "RecurrenceRule",
    "generate_occurrences",
    "RecurringBookingService",
    "GroupBookingService",
    "BookingWaitlistService",
    "BookingReminderService",
]
