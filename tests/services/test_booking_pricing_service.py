from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from marketplace.models.base.enums import PriceType
from marketplace.schemas.booking import BookingCreate
from marketplace.services.base.service_result import ErrorCode
from marketplace.services.booking.booking_pricing_service import (
    PricingCalculator,
    billed_hours,
    fee_split,
    round_half_up,
)

START = datetime(2030, 1, 8, 10, 0)


@pytest.fixture
def calculator():
    return PricingCalculator(max_discount_percent=50)


class TestPricingCalculator:
    def test_fixed_price_ignores_duration(self, calculator):
        breakdown = calculator.calculate(10000, PriceType.FIXED, START, START + timedelta(hours=5))

        assert breakdown.base_price == 10000
        assert breakdown.total_price == 10000
        assert breakdown.billed_hours is None

    def test_hourly_price_bills_started_hours(self, calculator):
        breakdown = calculator.calculate(5000, PriceType.HOURLY, START, START + timedelta(minutes=90))

        assert breakdown.billed_hours == 2
        assert breakdown.total_price == 10000

    def test_hourly_price_without_end_bills_one_hour(self, calculator):
        breakdown = calculator.calculate(5000, PriceType.HOURLY, START)

        assert breakdown.billed_hours == 1
        assert breakdown.total_price == 5000

    def test_bundle_discount_applies_before_add_ons(self, calculator):
        breakdown = calculator.calculate(
            10000,
            PriceType.FIXED,
            START,
            bundle_discount=Decimal("10"),
            add_on_prices=[("extra", 2000)],
        )

        assert breakdown.discount == 1000
        assert breakdown.add_ons_total == 2000
        assert breakdown.total_price == 11000

    def test_discount_rounds_half_up(self, calculator):
        breakdown = calculator.calculate(999, PriceType.FIXED, START, bundle_discount=Decimal("50"))

        assert breakdown.total_price == 500
        assert breakdown.discount == 499

    @pytest.mark.parametrize("discount", [Decimal("-1"), Decimal("50.5"), Decimal("80")])
    def test_rejects_discount_outside_allowed_range(self, calculator, discount):
        with pytest.raises(ValueError):
            calculator.calculate(10000, PriceType.FIXED, START, bundle_discount=discount)

    def test_rejects_end_before_start(self, calculator):
        with pytest.raises(ValueError):
            calculator.calculate(10000, PriceType.HOURLY, START, START - timedelta(hours=1))

    def test_group_unit_price(self, calculator):
        assert calculator.discounted_unit_price(10000, Decimal("10")) == 9000
        assert calculator.discounted_unit_price(999, Decimal("50")) == 500


class TestPricingHelpers:
    def test_round_half_up(self):
        assert round_half_up(Decimal("2.5")) == 3
        assert round_half_up(Decimal("2.4")) == 2

    def test_fee_split_parts_sum_to_amount(self):
        assert fee_split(10000) == (1000, 9000)
        fee, net = fee_split(1005)
        assert fee == 101
        assert fee + net == 1005

    def test_billed_hours_counts_partial_hours(self):
        assert billed_hours(START, START + timedelta(minutes=61)) == 2
        assert billed_hours(START, START + timedelta(hours=3)) == 3


class TestBookingPricingService:
    def test_quote_with_bundle_and_add_on(self, services, service, bundle, add_on):
        result = services.pricing().quote(
            BookingCreate(
                service_id=service.id,
                booking_date=START,
                bundle_id=bundle.id,
                add_on_ids=[add_on.id],
            )
        )

        assert result.is_success
        assert result.data.discount == 1500
        assert result.data.add_ons_total == 2500
        assert result.data.total_price == 11000

    def test_bundle_without_the_service_is_ignored(self, services, db_session, make_service, provider, bundle):
        other = make_service(provider, title="Ironing", price=4000)

        result = services.pricing().price_booking(other, START, bundle_id=bundle.id)

        assert result.is_success
        assert result.data.total_price == 4000

    def test_unknown_bundle_is_not_found(self, services, service):
        result = services.pricing().price_booking(service, START, bundle_id="missing")

        assert result.error_code == ErrorCode.NOT_FOUND

    def test_inactive_add_on_is_rejected(self, services, db_session, service, add_on):
        add_on.is_active = False
        db_session.commit()

        result = services.pricing().price_booking(service, START, add_on_ids=[add_on.id, "unknown"])

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert result.error.details == {"add_on_ids": [add_on.id, "unknown"]}

    def test_quote_for_unknown_service(self, services):
        result = services.pricing().quote(BookingCreate(service_id="missing", booking_date=START))

        assert result.error_code == ErrorCode.NOT_FOUND
