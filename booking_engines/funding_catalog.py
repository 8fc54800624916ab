"""
Module: booking_engines.funding_catalog
Responsibility:
    Answer "how much can this payment line hold?" for every funding source,
    given the customer's balances and what is still unallocated.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Capacity never exceeds the customer balance behind a profile-bound
      method.
    - Capacity never exceeds remaining_amount + current_line_amount, so a
      line can absorb what is left plus what it already holds.
    - Capacity is never negative.
    - No profile means zero capacity for profile-bound methods.

Failure modes:
    - ValueError (from Money) when amounts are in a different currency.
"""

from __future__ import annotations

from booking_kernel.domain.funding import CustomerPaymentProfile, FundingSource
from booking_kernel.domain.values import Money, min_money
from booking_engines.conversion import ConversionPolicy


class FundingSourceCatalog:
    """
    Capacity rules per funding source.

    Contract:
        Stateless apart from the conversion policy used to value points.
    Non-goals:
        Does not check minimum redemption or submission readiness; that is
        the validator's job.
    """

    def __init__(self, conversion: ConversionPolicy | None = None):
        self.conversion = conversion or ConversionPolicy()

    def balance_cap(
        self,
        method: FundingSource,
        profile: CustomerPaymentProfile | None,
    ) -> Money | None:
        """Balance bounding a method, or None when only the amount due bounds it."""
        if not method.is_profile_bound:
            return None
        currency = self.conversion.currency
        if profile is None:
            return Money.zero(currency)
        match method:
            case FundingSource.LOYALTY_POINTS:
                return self.conversion.to_currency(profile.loyalty_points)
            case FundingSource.CUSTOMER_WALLET:
                return profile.wallet_balance
            case FundingSource.CREDIT:
                return profile.credit_available
        return None

    def max_amount(
        self,
        method: FundingSource,
        profile: CustomerPaymentProfile | None,
        remaining_amount: Money,
        current_line_amount: Money,
    ) -> Money:
        headroom = (remaining_amount + current_line_amount).clamp_non_negative()
        cap = self.balance_cap(method, profile)
        if cap is None:
            return headroom
        return min_money(cap, headroom).clamp_non_negative()

    def max_points(
        self,
        profile: CustomerPaymentProfile | None,
        remaining_amount: Money,
        current_points: int,
    ) -> int:
        """Upper bound for a loyalty line's point count."""
        if profile is None:
            return 0
        if remaining_amount.is_negative:
            remaining_points = -self.conversion.to_units(-remaining_amount)
        else:
            remaining_points = self.conversion.to_units(remaining_amount)
        return max(0, min(profile.loyalty_points, remaining_points + current_points))

    def describe_unavailable(
        self,
        method: FundingSource,
        profile: CustomerPaymentProfile | None,
    ) -> str | None:
        """Operator-facing reason a method has no capacity, or None."""
        if not method.is_profile_bound:
            return None
        if profile is None:
            return f"{method.label} requires a customer to be selected"
        cap = self.balance_cap(method, profile)
        if cap is not None and cap.is_zero:
            match method:
                case FundingSource.LOYALTY_POINTS:
                    return "Customer has no loyalty points to redeem"
                case FundingSource.CUSTOMER_WALLET:
                    return "Customer wallet balance is zero"
                case FundingSource.CREDIT:
                    return "Customer has no available credit"
        return None
