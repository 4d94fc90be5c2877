"""
Booking pricing.

Prices are integer minor currency units. Duration pricing comes first, then
the bundle discount, then add-ons, which are never discounted.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from marketplace.core.clock import Clock
from marketplace.core.config import BookingSettings
from marketplace.models.base.enums import PriceType
from marketplace.models.service.service import Service, ServiceAddOn
from marketplace.repositories.service.service_repository import ServiceRepository
from marketplace.schemas.booking.booking_request import BookingCreate
from marketplace.schemas.booking.booking_response import PriceQuote
from marketplace.services.base.base_service import BaseService
from marketplace.services.base.service_result import ServiceResult
from marketplace.services.base.transaction_manager import TransactionManager


def round_half_up(value) -> int:
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def fee_split(amount: int, fee_percent: int = 10) -> Tuple[int, int]:
    """Split ``amount`` into (platform fee, provider net); the parts always sum to ``amount``."""
    fee = round_half_up(Decimal(amount) * Decimal(fee_percent) / Decimal(100))
    return fee, amount - fee


def billed_hours(start: datetime, end: Optional[datetime]) -> int:
    """Whole hours billed for a window; partial hours count as full ones."""
    if end is None:
        return 1
    return math.ceil((end - start).total_seconds() / 3600)


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: int
    discount: int
    add_ons_total: int
    total_price: int
    billed_hours: Optional[int] = None
    add_on_prices: Tuple[Tuple[str, int], ...] = ()

    def to_quote(self) -> PriceQuote:
        return PriceQuote(
            base_price=self.base_price,
            discount=self.discount,
            add_ons_total=self.add_ons_total,
            total_price=self.total_price,
            billed_hours=self.billed_hours,
        )


class PricingCalculator:
    """Pure price computation, no database access."""

    def __init__(self, max_discount_percent: int = 50):
        self.max_discount_percent = max_discount_percent

    def calculate(
        self,
        price: int,
        price_type: PriceType,
        booking_date: datetime,
        end_date: Optional[datetime] = None,
        bundle_discount: Optional[Decimal] = None,
        add_on_prices: Iterable[Tuple[str, int]] = (),
    ) -> PriceBreakdown:
        """
        Compute the total price of one booking.

        Raises:
            ValueError: For negative prices, a discount outside the allowed
                range or an end date not after the start
        """
        if price < 0:
            raise ValueError("Price cannot be negative")
        if end_date is not None and end_date <= booking_date:
            raise ValueError("End date must be after the booking date")

        hours = None
        base = price
        if price_type == PriceType.HOURLY:
            hours = billed_hours(booking_date, end_date)
            base = price * hours

        discount = 0
        if bundle_discount is not None:
            percent = Decimal(str(bundle_discount))
            if percent < 0 or percent > self.max_discount_percent:
                raise ValueError(
                    f"Discount must be between 0 and {self.max_discount_percent} percent"
                )
            discounted = round_half_up(Decimal(base) * (Decimal(100) - percent) / Decimal(100))
            discount = base - discounted

        add_on_prices = tuple(add_on_prices)
        add_ons_total = 0
        for _, add_on_price in add_on_prices:
            if add_on_price < 0:
                raise ValueError("Add-on price cannot be negative")
            add_ons_total += add_on_price

        return PriceBreakdown(
            base_price=base,
            discount=discount,
            add_ons_total=add_ons_total,
            total_price=base - discount + add_ons_total,
            billed_hours=hours,
            add_on_prices=add_on_prices,
        )

    def discounted_unit_price(self, price: int, discount_percent: Decimal) -> int:
        """Per-person price of a group booking."""
        percent = Decimal(str(discount_percent))
        if percent < 0 or percent > self.max_discount_percent:
            raise ValueError(f"Discount must be between 0 and {self.max_discount_percent} percent")
        return round_half_up(Decimal(price) * (Decimal(100) - percent) / Decimal(100))


class BookingPricingService(BaseService[Service, ServiceRepository]):
    """
    Prices bookings against the catalogue: loads the bundle and add-ons a
    request names and runs them through the PricingCalculator.
    """

    def __init__(
        self,
        service_repository: ServiceRepository,
        db_session: Session,
        settings: Optional[BookingSettings] = None,
        clock: Optional[Clock] = None,
        transactions: Optional[TransactionManager] = None,
    ):
        super().__init__(service_repository, db_session, clock, transactions)
        self.settings = settings or BookingSettings()
        self.calculator = PricingCalculator(self.settings.MAX_DISCOUNT_PERCENT)

    def price_booking(
        self,
        service: Service,
        booking_date: datetime,
        end_date: Optional[datetime] = None,
        bundle_id: Optional[str] = None,
        add_on_ids: Sequence[str] = (),
    ) -> ServiceResult[PriceBreakdown]:
        """
        Price a booking of ``service``; domain problems come back as failures.

        A bundle the service does not belong to is ignored. Add-ons must be
        active and belong to the service.
        """
        bundle_discount = None
        if bundle_id:
            bundle = self.repository.get_bundle(bundle_id)
            if bundle is None:
                return ServiceResult.not_found("ServiceBundle", bundle_id)
            if bundle.is_active and bundle.includes(service.id):
                bundle_discount = bundle.discount

        priced_add_ons: List[Tuple[str, int]] = []
        if add_on_ids:
            found = {add_on.id: add_on for add_on in self.repository.get_add_ons(list(add_on_ids))}
            unavailable = [
                add_on_id
                for add_on_id in add_on_ids
                if not self._add_on_available(found.get(add_on_id), service.id)
            ]
            if unavailable:
                return ServiceResult.validation_failure(
                    "Some add-ons are not available for this service",
                    field="add_on_ids",
                    details={"add_on_ids": unavailable},
                )
            priced_add_ons = [(add_on_id, found[add_on_id].price) for add_on_id in add_on_ids]

        try:
            breakdown = self.calculator.calculate(
                price=service.price,
                price_type=service.price_type,
                booking_date=booking_date,
                end_date=end_date,
                bundle_discount=bundle_discount,
                add_on_prices=priced_add_ons,
            )
        except ValueError as e:
            return ServiceResult.validation_failure(str(e))
        return ServiceResult.success(breakdown)

    def quote(self, data: BookingCreate) -> ServiceResult[PriceQuote]:
        """Price a booking request without creating anything."""
        try:
            service = self.repository.get_by_id(data.service_id)
            if service is None:
                return ServiceResult.not_found("Service", data.service_id)
            result = self.price_booking(
                service,
                data.booking_date,
                data.end_date,
                data.bundle_id,
                data.add_on_ids,
            )
            return result.map(lambda breakdown: breakdown.to_quote())
        except Exception as e:
            return self._handle_exception(e, "quote booking price", data.service_id)

    @staticmethod
    def _add_on_available(add_on: Optional[ServiceAddOn], service_id: str) -> bool:
        return add_on is not None and add_on.is_active and add_on.service_id == service_id
