"""
Booking waitlist models.

A client's standing request for a date that is currently unavailable, with
alternative dates, a priority and the lifecycle of a time-boxed offer.
"""

from datetime import date as Date, datetime
from typing import List, Optional

from sqlalchemy import (
    Date as SQLDate,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.models.base.base_model import TimestampModel
from marketplace.models.base.enums import WaitlistStatus

__all__ = [
    "BookingWaitlist",
    "WaitlistAlternativeDate",
]


class BookingWaitlist(TimestampModel):
    """
    Waitlist entry for a service date.

    One row per (service, client); rejoining after a terminal status reuses
    the row.

    Attributes:
        preferred_date: Requested day
        preferred_time: Requested time of day, "HH:MM"
        priority: Higher is served first
        status: active, notified, booked or cancelled
        notified_at: When the current offer was made
        expires_at: When the current offer lapses
        converted_booking_id: Booking created from the offer
    """

    __table_args__ = (
        UniqueConstraint("service_id", "client_id", name="uq_waitlist_service_client"),
        Index("ix_waitlist_service_status_date", "service_id", "status", "preferred_date"),
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

    preferred_date: Mapped[Date] = mapped_column(SQLDate, nullable=False)

    preferred_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)

    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)

    status: Mapped[WaitlistStatus] = mapped_column(
        SQLEnum(WaitlistStatus),
        nullable=False,
        default=WaitlistStatus.ACTIVE,
        index=True,
    )

    notified_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)

    converted_booking_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("bookings.id", ondelete="SET NULL"),
        nullable=True,
    )

    alternative_dates: Mapped[List["WaitlistAlternativeDate"]] = relationship(
        "WaitlistAlternativeDate",
        back_populates="waitlist",
        cascade="all, delete-orphan",
        order_by="WaitlistAlternativeDate.date",
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in WaitlistStatus.terminal()

    @property
    def alternative_date_values(self) -> List[Date]:
        return [alternative.date for alternative in self.alternative_dates]

    def offer_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def __repr__(self) -> str:
        return (
            f"<BookingWaitlist(id={self.id}, service_id={self.service_id}, "
            f"status={self.status.value}, priority={self.priority})>"
        )


class WaitlistAlternativeDate(TimestampModel):
    """Alternative acceptable day of a waitlist entry."""

    __table_args__ = (
        UniqueConstraint("waitlist_id", "date", name="uq_waitlist_alternative_date"),
    )

    waitlist_id: Mapped[str] = mapped_column(
        ForeignKey("booking_waitlists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    date: Mapped[Date] = mapped_column(SQLDate, nullable=False, index=True)

    waitlist: Mapped["BookingWaitlist"] = relationship(
        "BookingWaitlist",
        back_populates="alternative_dates",
    )
