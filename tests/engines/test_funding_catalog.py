"""
Tests for FundingSourceCatalog capacity rules.
"""

from booking_engines.conversion import ConversionPolicy
from booking_engines.funding_catalog import FundingSourceCatalog
from booking_kernel.domain.funding import FundingSource
from tests.factories import aed, make_profile


class TestBalanceCap:
    def setup_method(self):
        self.catalog = FundingSourceCatalog(ConversionPolicy())

    def test_unbound_methods_have_no_cap(self):
        profile = make_profile(wallet="10")
        for method in (FundingSource.CREDIT_CARD, FundingSource.CASH, FundingSource.PAYMENT_LINK):
            assert self.catalog.balance_cap(method, profile) is None

    def test_loyalty_cap_is_points_value(self):
        profile = make_profile(points=25000)
        assert self.catalog.balance_cap(FundingSource.LOYALTY_POINTS, profile) == aed("250.00")

    def test_credit_cap_uses_available_not_limit(self):
        profile = make_profile(credit_limit="1000", credit_available="400")
        assert self.catalog.balance_cap(FundingSource.CREDIT, profile) == aed("400")

    def test_no_profile_means_zero_cap(self):
        assert self.catalog.balance_cap(FundingSource.CUSTOMER_WALLET, None).is_zero


class TestMaxAmount:
    def setup_method(self):
        self.catalog = FundingSourceCatalog()

    def test_wallet_bounded_by_balance(self):
        profile = make_profile(wallet="300")
        result = self.catalog.max_amount(
            FundingSource.CUSTOMER_WALLET, profile, aed("1000"), aed("0")
        )
        assert result == aed("300")

    def test_bounded_by_remaining_plus_current(self):
        profile = make_profile(wallet="5000")
        result = self.catalog.max_amount(
            FundingSource.CUSTOMER_WALLET, profile, aed("200"), aed("100")
        )
        assert result == aed("300")

    def test_card_bounded_only_by_headroom(self):
        result = self.catalog.max_amount(FundingSource.CREDIT_CARD, None, aed("750"), aed("250"))
        assert result == aed("1000")

    def test_never_negative(self):
        result = self.catalog.max_amount(FundingSource.CASH, None, aed("-500"), aed("100"))
        assert result.is_zero

    def test_profile_bound_without_customer(self):
        result = self.catalog.max_amount(FundingSource.CREDIT, None, aed("1000"), aed("0"))
        assert result.is_zero


class TestMaxPoints:
    def setup_method(self):
        self.catalog = FundingSourceCatalog()

    def test_bounded_by_balance(self):
        profile = make_profile(points=5000)
        assert self.catalog.max_points(profile, aed("1000"), 0) == 5000

    def test_bounded_by_remaining(self):
        profile = make_profile(points=500000)
        assert self.catalog.max_points(profile, aed("100"), 2000) == 12000

    def test_over_allocated_remaining_reduces_bound(self):
        profile = make_profile(points=500000)
        assert self.catalog.max_points(profile, aed("-10"), 3000) == 2000

    def test_no_profile(self):
        assert self.catalog.max_points(None, aed("100"), 0) == 0


class TestDescribeUnavailable:
    def setup_method(self):
        self.catalog = FundingSourceCatalog()

    def test_no_customer(self):
        assert (
            self.catalog.describe_unavailable(FundingSource.CUSTOMER_WALLET, None)
            == "Customer Wallet requires a customer to be selected"
        )

    def test_zero_balances(self):
        profile = make_profile()
        assert (
            self.catalog.describe_unavailable(FundingSource.LOYALTY_POINTS, profile)
            == "Customer has no loyalty points to redeem"
        )
        assert (
            self.catalog.describe_unavailable(FundingSource.CUSTOMER_WALLET, profile)
            == "Customer wallet balance is zero"
        )
        assert (
            self.catalog.describe_unavailable(FundingSource.CREDIT, profile)
            == "Customer has no available credit"
        )

    def test_available(self):
        profile = make_profile(wallet="10")
        assert self.catalog.describe_unavailable(FundingSource.CUSTOMER_WALLET, profile) is None
        assert self.catalog.describe_unavailable(FundingSource.CASH, None) is None
