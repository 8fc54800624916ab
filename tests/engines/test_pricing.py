"""
Tests for rental day counting and the pricing summary.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from booking_engines.pricing import PricingPolicy, rental_days, summarize_pricing
from booking_kernel.exceptions import ConfigurationError
from tests.factories import aed

PICKUP = datetime(2025, 3, 1, 10, 0)


class TestRentalDays:
    def test_whole_days(self):
        assert rental_days(PICKUP, PICKUP + timedelta(days=3)) == 3

    def test_part_day_counts(self):
        assert rental_days(PICKUP, PICKUP + timedelta(days=2, hours=1)) == 3

    def test_minimum_one_day(self):
        assert rental_days(PICKUP, PICKUP + timedelta(hours=2)) == 1

    def test_return_before_pickup(self):
        with pytest.raises(ValueError):
            rental_days(PICKUP, PICKUP)


class TestSummarizePricing:
    def test_default_rates(self):
        summary = summarize_pricing(aed("1000"), add_ons=[aed("100"), aed("50")])
        assert summary.add_ons_total == aed("150.00")
        assert summary.subtotal == aed("1150.00")
        assert summary.tax_amount == aed("57.50")
        assert summary.total_amount == aed("1207.50")
        assert summary.down_payment_amount == aed("362.25")
        assert summary.balance_due == aed("845.25")

    def test_down_payment_and_balance_sum_to_total(self):
        summary = summarize_pricing(aed("333.33"))
        assert summary.down_payment_amount + summary.balance_due == summary.total_amount

    def test_discount(self):
        summary = summarize_pricing(aed("500"), discount=aed("100"))
        assert summary.discount_amount == aed("100.00")
        assert summary.subtotal == aed("400.00")

    def test_discount_capped_at_gross(self):
        summary = summarize_pricing(aed("100"), add_ons=[aed("20")], discount=aed("500"))
        assert summary.discount_amount == aed("120.00")
        assert summary.subtotal.is_zero
        assert summary.total_amount.is_zero

    def test_custom_policy(self):
        policy = PricingPolicy(tax_rate=Decimal("0"), down_payment_rate=Decimal("1"))
        summary = summarize_pricing(aed("200"), policy=policy)
        assert summary.tax_amount.is_zero
        assert summary.down_payment_amount == aed("200.00")
        assert summary.balance_due.is_zero

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError):
            summarize_pricing(aed("-1"))
        with pytest.raises(ValueError):
            summarize_pricing(aed("10"), add_ons=[aed("-1")])

    def test_negative_discount_rejected(self):
        with pytest.raises(ValueError):
            summarize_pricing(aed("10"), discount=aed("-1"))


class TestPricingPolicy:
    def test_rate_out_of_range(self):
        with pytest.raises(ConfigurationError) as exc_info:
            PricingPolicy(tax_rate=Decimal("1.5"))
        assert exc_info.value.key == "tax_rate"

    def test_float_rate_rejected(self):
        with pytest.raises(ConfigurationError):
            PricingPolicy(down_payment_rate=0.3)
