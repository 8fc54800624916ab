"""
Tests for ConversionPolicy and PaymentPolicy.

Covers:
- Points to currency and back
- Minimum redemption check
- Configuration validation
"""

from decimal import Decimal

import pytest

from booking_engines.conversion import ConversionPolicy, PaymentPolicy
from booking_kernel.domain.funding import FundingSource
from booking_kernel.domain.values import Currency, Money
from booking_kernel.exceptions import ConfigurationError
from tests.factories import aed


class TestConversionPolicy:
    def setup_method(self):
        self.policy = ConversionPolicy()

    def test_defaults(self):
        assert self.policy.conversion_rate == 100
        assert self.policy.min_redemption == 1000
        assert self.policy.currency == Currency("AED")

    def test_to_currency(self):
        assert self.policy.to_currency(20000) == aed("200.00")
        assert self.policy.to_currency(0).is_zero

    def test_to_currency_rounds_to_minor_unit(self):
        policy = ConversionPolicy(conversion_rate=3)
        assert policy.to_currency(1) == aed("0.33")
        assert policy.to_currency(2) == aed("0.67")

    def test_to_units_rounds_half_up(self):
        assert self.policy.to_units(aed("12.345")) == 1235
        assert self.policy.to_units(aed("12.344")) == 1234

    def test_round_trip_at_default_rate(self):
        for points in (0, 1, 99, 1000, 123457):
            assert self.policy.to_units(self.policy.to_currency(points)) == points

    def test_negative_points_rejected(self):
        with pytest.raises(ValueError):
            self.policy.to_currency(-1)

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            self.policy.to_units(aed("-1"))

    def test_other_currency_rejected(self):
        with pytest.raises(ValueError, match="policy currency"):
            self.policy.to_units(Money.of("1", "USD"))

    def test_meets_minimum(self):
        assert self.policy.meets_minimum(1000)
        assert not self.policy.meets_minimum(999)

    def test_currency_from_string(self):
        assert ConversionPolicy(currency="USD").currency == Currency("USD")

    @pytest.mark.parametrize("rate", [0, -5])
    def test_non_positive_rate_rejected(self, rate):
        with pytest.raises(ConfigurationError) as exc_info:
            ConversionPolicy(conversion_rate=rate)
        assert exc_info.value.key == "conversion_rate"

    def test_fractional_rate_rejected(self):
        with pytest.raises(ConfigurationError):
            ConversionPolicy(conversion_rate=Decimal("2.5"))

    def test_negative_minimum_rejected(self):
        with pytest.raises(ConfigurationError):
            ConversionPolicy(min_redemption=-1)


class TestPaymentPolicy:
    def test_default(self):
        policy = PaymentPolicy.default()
        assert policy.currency == Currency("AED")
        assert policy.epsilon == Decimal("0.01")
        assert policy.default_method is FundingSource.CREDIT_CARD

    def test_default_in_other_currency(self):
        assert PaymentPolicy.default("SAR").currency == Currency("SAR")

    def test_method_coerced(self):
        assert PaymentPolicy(default_method="cash").default_method is FundingSource.CASH

    def test_negative_epsilon_rejected(self):
        with pytest.raises(ConfigurationError):
            PaymentPolicy(epsilon=Decimal("-0.01"))

    def test_ratio_out_of_range_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            PaymentPolicy(credit_usage_warning_ratio=Decimal("1.5"))
        assert exc_info.value.key == "credit_usage_warning_ratio"

    def test_line_warning_threshold_rejected(self):
        with pytest.raises(ConfigurationError):
            PaymentPolicy(max_lines_before_warning=0)
