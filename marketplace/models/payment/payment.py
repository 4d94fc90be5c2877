"""
Payment record model.

Only the financial record derived from a booking is modelled here; money
movement belongs to the payment gateway.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.models.base.base_model import TimestampModel
from marketplace.models.base.enums import PaymentStatus

if TYPE_CHECKING:
    from marketplace.models.booking.booking import Booking

__all__ = ["Payment"]


class Payment(TimestampModel):
    """
    Financial record, one per booking.

    Attributes:
        amount: Booking total in minor currency units
        service_fee: Platform fee
        net_amount: Amount owed to the provider
        escrow_release_date: When provider funds become available
        refund_amount: Amount refunded on cancellation
    """

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_payment_amount_positive"),
        CheckConstraint(
            "service_fee + net_amount = amount",
            name="ck_payment_fee_split",
        ),
    )

    booking_id: Mapped[str] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    amount: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )

    service_fee: Mapped[int] = mapped_column(Integer, nullable=False)

    net_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    escrow_release_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    refund_amount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    refunded_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    booking: Mapped["Booking"] = relationship("Booking", back_populates="payment")

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, amount={self.amount}, status={self.status.value})>"
