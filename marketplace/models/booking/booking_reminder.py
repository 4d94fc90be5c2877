"""
Booking reminder model.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.models.base.base_model import TimestampModel
from marketplace.models.base.enums import ReminderChannel, ReminderStatus
from marketplace.models.booking.booking import Booking

__all__ = ["BookingReminder"]


class BookingReminder(TimestampModel):
    """Scheduled notification tied to one booking."""

    __table_args__ = (
        UniqueConstraint(
            "booking_id", "type", "scheduled_for",
            name="uq_booking_reminder_slot",
        ),
        Index("ix_booking_reminders_status_due", "status", "scheduled_for"),
    )

    booking_id: Mapped[str] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type: Mapped[ReminderChannel] = mapped_column(
        SQLEnum(ReminderChannel),
        nullable=False,
        comment="Delivery channel",
    )

    scheduled_for: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    status: Mapped[ReminderStatus] = mapped_column(
        SQLEnum(ReminderStatus),
        nullable=False,
        default=ReminderStatus.PENDING,
    )

    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    booking: Mapped["Booking"] = relationship("Booking")

    def mark_sent(self, now: datetime) -> None:
        self.status = ReminderStatus.SENT
        self.sent_at = now
        self.last_error = None

    def mark_failed(self, error: str) -> None:
        self.status = ReminderStatus.FAILED
        self.retry_count = (self.retry_count or 0) + 1
        self.last_error = error

    def __repr__(self) -> str:
        return (
            f"<BookingReminder(id={self.id}, type={self.type.value}, "
            f"status={self.status.value}, scheduled_for={self.scheduled_for})>"
        )
