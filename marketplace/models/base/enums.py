"""
Database enums mirroring schema enums.

Shared by the SQLAlchemy models and the Pydantic schemas so both layers
speak the same status vocabulary.
"""

import enum


class ServiceStatus(str, enum.Enum):
    """Publication status of a service."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class PriceType(str, enum.Enum):
    """How a service price is applied."""
    FIXED = "fixed"
    HOURLY = "hourly"


class BookingStatus(str, enum.Enum):
    """Booking lifecycle status."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def terminal(cls) -> frozenset:
        return frozenset({cls.DECLINED, cls.COMPLETED, cls.CANCELLED})

    @classmethod
    def live(cls) -> frozenset:
        """Statuses that hold capacity."""
        return frozenset({cls.PENDING, cls.ACCEPTED})


class PaymentStatus(str, enum.Enum):
    """Payment record status."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class RecurrenceFrequency(str, enum.Enum):
    """Recurring booking frequency."""
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class RecurringBookingStatus(str, enum.Enum):
    """Recurring series status."""
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class GroupBookingStatus(str, enum.Enum):
    """Group booking container status."""
    OPEN = "open"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class WaitlistStatus(str, enum.Enum):
    """Waitlist entry status."""
    ACTIVE = "active"
    NOTIFIED = "notified"
    BOOKED = "booked"
    CANCELLED = "cancelled"

    @classmethod
    def terminal(cls) -> frozenset:
        return frozenset({cls.BOOKED, cls.CANCELLED})


class ReminderChannel(str, enum.Enum):
    """Delivery channel of a booking reminder."""
    EMAIL = "email"
    SMS = "sms"
    WHATSAPP = "whatsapp"


class ReminderStatus(str, enum.Enum):
    """Booking reminder status."""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    CANCELLED = "cancelled"


class NotificationType(str, enum.Enum):
    """Closed set of notification kinds emitted by the booking core."""
    BOOKING_CREATED = "booking_created"
    BOOKING_ACCEPTED = "booking_accepted"
    BOOKING_DECLINED = "booking_declined"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_COMPLETED = "booking_completed"
    BOOKING_REMINDER = "booking_reminder"
    GROUP_MINIMUM_REACHED = "group_minimum_reached"
    GROUP_FULL = "group_full"
    GROUP_BELOW_MINIMUM = "group_below_minimum"
    GROUP_CANCELLED = "group_cancelled"
    WAITLIST_JOINED = "waitlist_joined"
    WAITLIST_AVAILABLE = "waitlist_available"
