"""
Recurring booking series.
"""

from datetime import date as Date
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    Date as SQLDate,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from marketplace.models.base.base_model import TimestampModel
from marketplace.models.base.enums import RecurrenceFrequency, RecurringBookingStatus

__all__ = ["RecurringBooking"]


class RecurringBooking(TimestampModel):
    """
    Template generating a bounded sequence of bookings.

    Child bookings reference the series through ``recurring_booking_id`` and
    are materialized in batches, never all at once.

    Attributes:
        frequency: daily, weekly, biweekly or monthly
        interval: Every N frequency units
        start_date: First date considered
        end_date: Last date considered (inclusive)
        occurrences: Maximum number of child bookings
        days_of_week: Weekdays for weekly series, 0 = Sunday
        day_of_month: Pinned day for monthly series
        time_slot: Time of day, "HH:MM"
        duration: Minutes per occurrence
    """

    __table_args__ = (
        CheckConstraint("\"interval\" >= 1", name="ck_recurring_interval_positive"),
        CheckConstraint(
            "occurrences IS NULL OR occurrences >= 1",
            name="ck_recurring_occurrences_positive",
        ),
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="ck_recurring_date_range",
        ),
    )

    service_id: Mapped[str] = mapped_column(
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    client_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    provider_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    frequency: Mapped[RecurrenceFrequency] = mapped_column(
        SQLEnum(RecurrenceFrequency),
        nullable=False,
    )

    interval: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    start_date: Mapped[Date] = mapped_column(SQLDate, nullable=False)

    end_date: Mapped[Optional[Date]] = mapped_column(SQLDate, nullable=True)

    occurrences: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    days_of_week: Mapped[Optional[List[int]]] = mapped_column(
        JSON,
        nullable=True,
        comment="Weekdays (0 = Sunday) for weekly and biweekly series",
    )

    day_of_month: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    time_slot: Mapped[str] = mapped_column(
        String(5),
        nullable=False,
        comment="Time of day HH:MM",
    )

    duration: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Minutes per occurrence",
    )

    total_price: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Price per occurrence at creation time",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    status: Mapped[RecurringBookingStatus] = mapped_column(
        SQLEnum(RecurringBookingStatus),
        nullable=False,
        default=RecurringBookingStatus.ACTIVE,
        index=True,
    )

    @validates("days_of_week")
    def validate_days_of_week(self, key: str, value):
        if value is None:
            return value
        days = sorted(set(int(day) for day in value))
        if any(day < 0 or day > 6 for day in days):
            raise ValueError("Days of week must be between 0 (Sunday) and 6 (Saturday)")
        return days

    @property
    def is_active(self) -> bool:
        return self.status == RecurringBookingStatus.ACTIVE

    def involves(self, user_id: str) -> bool:
        return user_id in (self.client_id, self.provider_id)

    def __repr__(self) -> str:
        return (
            f"<RecurringBooking(id={self.id}, frequency={self.frequency.value}, "
            f"status={self.status.value})>"
        )
