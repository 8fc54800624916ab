"""
Module: booking_engines.pricing
Responsibility:
    Price summary of a reservation: rental days, base plus add-ons, discount,
    flat-rate tax and the down payment that becomes the amount due for the
    payment allocation.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Every figure is rounded to the currency's minor unit, half-up.
    - down_payment_amount + balance_due == total_amount exactly.
    - A discount never takes the subtotal below zero.

Failure modes:
    - ConfigurationError for a tax or down-payment rate outside [0, 1].
    - ValueError for negative inputs, mixed currencies or a return before
      pickup.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from booking_kernel.domain.values import Money, money_sum
from booking_kernel.exceptions import ConfigurationError
from booking_engines.tracer import traced_engine

DEFAULT_TAX_RATE = Decimal("0.05")
DEFAULT_DOWN_PAYMENT_RATE = Decimal("0.30")


@dataclass(frozen=True)
class PricingPolicy:
    tax_rate: Decimal = DEFAULT_TAX_RATE
    down_payment_rate: Decimal = DEFAULT_DOWN_PAYMENT_RATE

    def __post_init__(self) -> None:
        for name in ("tax_rate", "down_payment_rate"):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                raise ConfigurationError(name, f"must be a Decimal, got {type(value).__name__}")
            if not Decimal("0") <= value <= Decimal("1"):
                raise ConfigurationError(name, f"must be between 0 and 1, got {value}")


@dataclass(frozen=True)
class PricingSummary:
    base_amount: Money
    add_ons_total: Money
    discount_amount: Money
    subtotal: Money
    tax_amount: Money
    total_amount: Money
    down_payment_amount: Money
    balance_due: Money


def rental_days(pickup_at: datetime, return_at: datetime) -> int:
    """Whole days charged: any part day counts, never fewer than one."""
    if return_at <= pickup_at:
        raise ValueError("Return must be after pickup")
    seconds = (return_at - pickup_at).total_seconds()
    return max(1, math.ceil(seconds / 86400))


@traced_engine(
    "pricing", "1.0", fingerprint_fields=("base_amount", "add_ons", "policy", "discount")
)
def summarize_pricing(
    base_amount: Money,
    add_ons: Iterable[Money] = (),
    policy: PricingPolicy | None = None,
    discount: Money | None = None,
) -> PricingSummary:
    policy = policy or PricingPolicy()
    currency = base_amount.currency
    add_ons = tuple(add_ons)
    if base_amount.is_negative or any(a.is_negative for a in add_ons):
        raise ValueError("Prices cannot be negative")
    if discount is not None and discount.is_negative:
        raise ValueError("Discount cannot be negative")

    base = base_amount.round()
    add_ons_total = money_sum(add_ons, currency).round()
    gross = base + add_ons_total
    discount_amount = (discount or Money.zero(currency)).round()
    if discount_amount > gross:
        discount_amount = gross
    subtotal = gross - discount_amount

    tax_amount = (subtotal * policy.tax_rate).round()
    total_amount = subtotal + tax_amount
    down_payment = (total_amount * policy.down_payment_rate).round()

    return PricingSummary(
        base_amount=base,
        add_ons_total=add_ons_total,
        discount_amount=discount_amount,
        subtotal=subtotal,
        tax_amount=tax_amount,
        total_amount=total_amount,
        down_payment_amount=down_payment,
        balance_due=total_amount - down_payment,
    )
