"""
Booking models.

The Booking row is the central scheduling commitment. Its status only moves
along the transitions enforced by the booking service, and each guarded
transition bumps ``version``.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.models.base.base_model import TimestampModel
from marketplace.models.base.enums import BookingStatus
from marketplace.models.base.mixins import VersionMixin

if TYPE_CHECKING:
    from marketplace.models.payment.payment import Payment
    from marketplace.models.service.service import Service, ServiceAddOn

__all__ = [
    "Booking",
    "BookingAddOn",
    "TimeSlot",
]


class Booking(VersionMixin, TimestampModel):
    """
    Scheduling commitment between a client and a provider.

    Attributes:
        service_id: Booked service
        client_id: Booking party
        provider_id: Service owner
        booking_date: Start timestamp
        end_date: Optional end timestamp
        total_price: Price in minor currency units
        status: Lifecycle status
        cancellation_reason: Reason recorded on decline or cancel
        cancelled_by: Party that declined or cancelled
        completed_at: Completion timestamp
        recurring_booking_id: Parent recurring series
        group_booking_id: Group container
    """

    __table_args__ = (
        CheckConstraint("total_price >= 0", name="ck_booking_total_price_positive"),
        CheckConstraint("client_id <> provider_id", name="ck_booking_client_not_provider"),
        CheckConstraint(
            "end_date IS NULL OR end_date > booking_date",
            name="ck_booking_end_after_start",
        ),
        Index("ix_bookings_service_date_status", "service_id", "booking_date", "status"),
        Index("ix_bookings_client_created", "client_id", "created_at"),
        Index("ix_bookings_provider_created", "provider_id", "created_at"),
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

    booking_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    total_price: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Total price in minor currency units",
    )

    status: Mapped[BookingStatus] = mapped_column(
        SQLEnum(BookingStatus),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    cancelled_by: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    recurring_booking_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("recurring_bookings.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    group_booking_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("group_bookings.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Relationships
    service: Mapped["Service"] = relationship("Service")

    payment: Mapped[Optional["Payment"]] = relationship(
        "Payment",
        back_populates="booking",
        uselist=False,
    )

    add_ons: Mapped[List["BookingAddOn"]] = relationship(
        "BookingAddOn",
        back_populates="booking",
        cascade="all, delete-orphan",
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in BookingStatus.terminal()

    @property
    def holds_capacity(self) -> bool:
        return self.status in BookingStatus.live()

    def involves(self, user_id: str) -> bool:
        return user_id in (self.client_id, self.provider_id)

    def counterpart_of(self, user_id: str) -> str:
        """The other party of the booking."""
        return self.provider_id if user_id == self.client_id else self.client_id

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, service_id={self.service_id}, "
            f"status={self.status.value}, date={self.booking_date})>"
        )


class BookingAddOn(TimestampModel):
    """Add-on priced into a booking, with the price that was charged."""

    booking_id: Mapped[str] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    add_on_id: Mapped[str] = mapped_column(
        ForeignKey("service_add_ons.id", ondelete="RESTRICT"),
        nullable=False,
    )

    price: Mapped[int] = mapped_column(Integer, nullable=False)

    booking: Mapped["Booking"] = relationship("Booking", back_populates="add_ons")

    add_on: Mapped["ServiceAddOn"] = relationship("ServiceAddOn")


class TimeSlot(TimestampModel):
    """
    Blocked window on a provider's calendar.

    Buffer windows around a booking are stored as booked slots tied to the
    booking that produced them and released when that booking is declined or
    cancelled.
    """

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_time_slot_window"),
        Index("ix_time_slots_service_window", "service_id", "start_time", "end_time"),
    )

    provider_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    service_id: Mapped[str] = mapped_column(
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
    )

    booking_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    is_booked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
