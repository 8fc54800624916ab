"""
Module: booking_engines.allocation_validator
Responsibility:
    Check a payment allocation against the customer's balances and the
    payment policy, producing operator-facing errors and advisory warnings.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Re-run after every allocation mutation; the result is data, never raised.

Invariants enforced:
    - Validation is a pure function of (allocation, profile, policy): running
      it twice on the same inputs yields identical results.
    - Lines with a zero amount are ignored while editing and rejected only
      when validating for submission.
    - An unallocated remainder beyond epsilon is a submission error only;
      over-allocation beyond epsilon is always an error.
    - Warnings never affect ``is_valid``.

Failure modes:
    - None raised for data problems; every problem is a message.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from decimal import Decimal

from booking_kernel.domain.funding import (
    CustomerPaymentProfile,
    FundingSource,
    PaymentAllocation,
)
from booking_kernel.domain.values import Money
from booking_engines.conversion import PaymentPolicy
from booking_engines.funding_catalog import FundingSourceCatalog
from booking_engines.tracer import traced_engine


@dataclass(frozen=True)
class AllocationValidation:
    """Ordered error and warning messages for one allocation."""

    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.is_valid


def format_money(money: Money) -> str:
    rounded = money.round()
    return f"{rounded.amount} {rounded.currency.code}"


@traced_engine(
    "allocation_validator", "1.0", fingerprint_fields=("allocation", "profile", "for_submission")
)
def validate_allocation(
    allocation: PaymentAllocation,
    profile: CustomerPaymentProfile | None,
    policy: PaymentPolicy,
    *,
    for_submission: bool = False,
) -> AllocationValidation:
    catalog = FundingSourceCatalog(policy.conversion)
    conversion = policy.conversion
    remaining = allocation.remaining_amount
    errors: list[str] = []
    warnings: list[str] = []

    for index, line in enumerate(allocation.payments):
        label = f"Payment {index + 1}"

        if not line.amount.is_positive:
            if for_submission:
                errors.append(f"{label}: Amount must be greater than 0")
            continue

        capacity = catalog.max_amount(line.method, profile, remaining, line.amount)
        points = line.loyalty_points_used

        if line.method is FundingSource.LOYALTY_POINTS and points is not None:
            if 0 < points < conversion.min_redemption:
                errors.append(
                    f"{label}: Minimum {conversion.min_redemption} loyalty points required"
                )
            available = profile.loyalty_points if profile is not None else 0
            if points > available:
                errors.append(
                    f"{label}: Insufficient loyalty points. "
                    f"Available: {available}, Required: {points}"
                )
            elif line.amount > capacity:
                errors.append(
                    f"{label}: {line.method.label} amount {format_money(line.amount)} "
                    f"exceeds the maximum of {format_money(capacity)}"
                )
            if not conversion.to_currency(points).within(line.amount, policy.epsilon):
                errors.append(
                    f"{label}: {points} points are worth "
                    f"{format_money(conversion.to_currency(points))}, "
                    f"not {format_money(line.amount)}"
                )
        elif line.amount > capacity:
            errors.append(
                f"{label}: {line.method.label} amount {format_money(line.amount)} "
                f"exceeds the maximum of {format_money(capacity)}"
            )

        unavailable = catalog.describe_unavailable(line.method, profile)
        if unavailable is not None:
            warnings.append(f"{label}: {unavailable}")

        if line.amount.amount > policy.large_amount_threshold:
            warnings.append(
                f"{label}: Very large amount {format_money(line.amount)}, please verify"
            )

    if remaining.amount < -policy.epsilon:
        errors.append(f"Over-allocated by {format_money(-remaining)}")
    elif for_submission and remaining.amount > policy.epsilon:
        errors.append(
            f"Remaining amount ({format_money(remaining)}) must be allocated"
        )

    warnings.extend(_collect_warnings(allocation, profile, policy))

    return AllocationValidation(errors=tuple(errors), warnings=tuple(warnings))


def _collect_warnings(
    allocation: PaymentAllocation,
    profile: CustomerPaymentProfile | None,
    policy: PaymentPolicy,
) -> list[str]:
    warnings: list[str] = []
    active = [p for p in allocation.payments if p.amount.is_positive]

    counts = Counter(p.method for p in active if p.method.is_profile_bound)
    for method, count in counts.items():
        if count > 1:
            warnings.append(f'Payment method "{method.label}" used {count} times')

    if profile is not None:
        credit_used = allocation.amount_for(FundingSource.CREDIT)
        limit = profile.credit_limit
        if limit.is_positive and credit_used.is_positive:
            if credit_used.amount / limit.amount > policy.credit_usage_warning_ratio:
                percent = (credit_used.amount / limit.amount * 100).quantize(Decimal("1"))
                warnings.append(f"Using {percent}% of available credit limit")

        wallet_used = allocation.amount_for(FundingSource.CUSTOMER_WALLET)
        if profile.wallet_balance.is_positive and wallet_used == profile.wallet_balance:
            warnings.append("Using entire wallet balance")

        points_used = allocation.points_used()
        if profile.loyalty_points > 0 and points_used > 0:
            ratio = Decimal(points_used) / Decimal(profile.loyalty_points)
            if ratio > policy.points_usage_warning_ratio:
                percent = (ratio * 100).quantize(Decimal("1"))
                warnings.append(f"Using {percent}% of available loyalty points")

    if allocation.line_count > policy.max_lines_before_warning:
        warnings.append(
            f"Using {allocation.line_count} payment methods may complicate reconciliation"
        )

    if allocation.total_amount.amount < policy.small_total_threshold:
        warnings.append(
            f"Very small total amount {format_money(allocation.total_amount)}"
        )

    has_deferred = any(p.method.is_deferred for p in active)
    has_immediate = any(not p.method.is_deferred for p in active)
    if has_deferred and has_immediate:
        warnings.append(
            "Mixing payment links with immediate payments: "
            "the booking stays partially unpaid until the link is settled"
        )

    return warnings
