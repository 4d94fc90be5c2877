"""
Booking schemas package.
"""

from marketplace.schemas.booking.booking_reminder import (
    BookingReminderResponse,
    ReminderDispatchSummary,
    ReminderPreferences,
    ReminderPreferencesUpdate,
    ReminderStats,
)
from marketplace.schemas.booking.booking_request import (
    BookingCreate,
    BookingDecline,
    BookingStatusUpdate,
    to_naive_utc,
)
from marketplace.schemas.booking.booking_response import (
    BookingAddOnResponse,
    BookingListResponse,
    BookingResponse,
    PaymentResponse,
    PriceQuote,
)
from marketplace.schemas.booking.booking_waitlist import (
    WaitlistConvert,
    WaitlistConversionResponse,
    WaitlistJoin,
    WaitlistNotify,
    WaitlistPriorityUpdate,
    WaitlistResponse,
    WaitlistServiceSummary,
    WaitlistStats,
)
from marketplace.schemas.booking.group_booking import (
    AvailableGroupBooking,
    GroupBookingCancel,
    GroupBookingCreate,
    GroupBookingDetails,
    GroupBookingJoin,
    GroupMembershipResponse,
    GroupBookingResponse,
)
from marketplace.schemas.booking.recurring_booking import (
    RecurringBookingCreate,
    RecurringBookingCreated,
    RecurringBookingDetails,
    RecurringBookingResponse,
    RecurringBookingResume,
    RecurringGenerationSummary,
)

__all__ = [
    "BookingReminderResponse",
    "ReminderDispatchSummary",
    "ReminderPreferences",
    "ReminderPreferencesUpdate",
    "ReminderStats",
    "BookingCreate",
    "BookingDecline",
    "BookingStatusUpdate",
    "to_naive_utc",
    "BookingAddOnResponse",
    "BookingListResponse",
    "BookingResponse",
    "PaymentResponse",
    "PriceQuote",
    "WaitlistConvert",
    "WaitlistConversionResponse",
    "WaitlistJoin",
    "WaitlistNotify",
    "WaitlistPriorityUpdate",
    "WaitlistResponse",
    "WaitlistServiceSummary",
    "WaitlistStats",
    "AvailableGroupBooking",
    "GroupMembershipResponse",
    "GroupBookingCancel",
    "GroupBookingCreate",
    "GroupBookingDetails",
    "GroupBookingJoin",
    "GroupBookingResponse",
    "RecurringBookingCreate",
    "RecurringBookingDetails",
    "RecurringBookingResponse",
    "RecurringBookingResume",
    "RecurringBookingCreated",
    "RecurringGenerationSummary",
]
