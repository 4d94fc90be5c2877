"""
Service catalogue models.

A Service is the bookable offering a provider publishes. Add-ons, bundles
and group-booking settings hang off it and feed the pricing calculator and
the group coordinator.
"""

from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from marketplace.models.base.base_model import Base, TimestampModel
from marketplace.models.base.enums import PriceType, ServiceStatus

if TYPE_CHECKING:
    from marketplace.models.user.user import User

__all__ = [
    "Service",
    "ServiceAddOn",
    "ServiceBundle",
    "GroupBookingSettings",
    "service_bundle_items",
]


service_bundle_items = Table(
    "service_bundle_items",
    Base.metadata,
    Column("bundle_id", ForeignKey("service_bundles.id", ondelete="CASCADE"), primary_key=True),
    Column("service_id", ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
)


class Service(TimestampModel):
    """
    Bookable offering published by a provider.

    Attributes:
        provider_id: Owning provider
        price: Price in minor currency units (per hour for hourly services)
        price_type: fixed or hourly
        max_bookings: Optional cap of live bookings per calendar day
        buffer_time: Optional padding in minutes blocked around each booking
        booking_count: Running counter of live bookings
        allow_recurring: Whether recurring series may target this service
    """

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_service_price_positive"),
        CheckConstraint("booking_count >= 0", name="ck_service_booking_count_positive"),
        CheckConstraint(
            "max_bookings IS NULL OR max_bookings > 0",
            name="ck_service_max_bookings_positive",
        ),
        CheckConstraint(
            "buffer_time IS NULL OR buffer_time >= 0",
            name="ck_service_buffer_time_positive",
        ),
    )

    provider_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Provider offering the service",
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    price: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Price in minor currency units",
    )

    price_type: Mapped[PriceType] = mapped_column(
        SQLEnum(PriceType),
        nullable=False,
        default=PriceType.FIXED,
    )

    status: Mapped[ServiceStatus] = mapped_column(
        SQLEnum(ServiceStatus),
        nullable=False,
        default=ServiceStatus.ACTIVE,
        index=True,
    )

    location: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    duration: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Typical duration in minutes",
    )

    max_bookings: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Maximum live bookings per calendar day",
    )

    buffer_time: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Minutes blocked before and after each booking",
    )

    booking_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Live booking counter",
    )

    allow_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    provider: Mapped["User"] = relationship("User", foreign_keys=[provider_id])

    add_ons: Mapped[List["ServiceAddOn"]] = relationship(
        "ServiceAddOn",
        back_populates="service",
        cascade="all, delete-orphan",
    )

    group_settings: Mapped[Optional["GroupBookingSettings"]] = relationship(
        "GroupBookingSettings",
        back_populates="service",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def is_active(self) -> bool:
        return self.status == ServiceStatus.ACTIVE

    @property
    def has_buffer(self) -> bool:
        return bool(self.buffer_time and self.buffer_time > 0)

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, title={self.title}, status={self.status.value})>"


class ServiceAddOn(TimestampModel):
    """Optional paid extra attached to a single booking of a service."""

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_add_on_price_positive"),
    )

    service_id: Mapped[str] = mapped_column(
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    price: Mapped[int] = mapped_column(Integer, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    service: Mapped["Service"] = relationship("Service", back_populates="add_ons")


class ServiceBundle(TimestampModel):
    """Provider-defined group of services sold together at a discount."""

    provider_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    discount: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=0,
        comment="Discount percent applied to member services",
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    services: Mapped[List["Service"]] = relationship("Service", secondary=service_bundle_items)

    @validates("discount")
    def validate_discount(self, key: str, value) -> Decimal:
        value = Decimal(str(value))
        if value < 0 or value > 100:
            raise ValueError("Bundle discount must be between 0 and 100 percent")
        return value

    def includes(self, service_id: str) -> bool:
        return any(service.id == service_id for service in self.services)


class GroupBookingSettings(TimestampModel):
    """Per-service configuration for group bookings."""

    __tablename__ = "group_booking_settings"

    __table_args__ = (
        CheckConstraint("min_group_size >= 1", name="ck_group_settings_min_size"),
        CheckConstraint("max_group_size >= min_group_size", name="ck_group_settings_max_size"),
    )

    service_id: Mapped[str] = mapped_column(
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    min_group_size: Mapped[int] = mapped_column(Integer, nullable=False, default=2)

    max_group_size: Mapped[int] = mapped_column(Integer, nullable=False, default=10)

    group_discount: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=0,
        comment="Per-person discount percent",
    )

    service: Mapped["Service"] = relationship("Service", back_populates="group_settings")
