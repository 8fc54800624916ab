"""
Funding -- payment methods, customer balances and split payment lines.

Responsibility:
    Value objects for the multi-source payment allocation: the closed set of
    funding sources, the customer's balances that bound three of them, the
    per-method settlement payloads, a single payment line and the allocation
    of a fixed total across lines.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.

Invariants enforced:
    - A line carries only the payload type that belongs to its method
      (no loyalty fields on a card line).
    - A loyalty_points line always carries a LoyaltyRedemption; its currency
      value IS the line amount, so the two cannot drift.
    - An allocation always has at least one line and a single currency.
    - allocated_amount / remaining_amount are re-derived by summation on
      every read.

Failure modes:
    - PayloadMismatchError for a payload that does not fit the method.
    - ValueError for negative balances, negative points, an empty
      allocation or mixed currencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from booking_kernel.domain.values import Currency, Money, money_sum
from booking_kernel.exceptions import PayloadMismatchError


class FundingSource(str, Enum):
    """How a payment line is settled."""

    LOYALTY_POINTS = "loyalty_points"
    CUSTOMER_WALLET = "customer_wallet"
    CREDIT = "credit"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PAYMENT_LINK = "payment_link"
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def is_profile_bound(self) -> bool:
        """Capacity comes from the customer's balances, not only the amount due."""
        return self in (
            FundingSource.LOYALTY_POINTS,
            FundingSource.CUSTOMER_WALLET,
            FundingSource.CREDIT,
        )

    @property
    def is_deferred(self) -> bool:
        """Settled later by the customer (payment link)."""
        return self is FundingSource.PAYMENT_LINK


_LABELS = {
    FundingSource.LOYALTY_POINTS: "Loyalty Points",
    FundingSource.CUSTOMER_WALLET: "Customer Wallet",
    FundingSource.CREDIT: "Account Credit",
    FundingSource.CREDIT_CARD: "Credit Card",
    FundingSource.DEBIT_CARD: "Debit Card",
    FundingSource.PAYMENT_LINK: "Payment Link",
    FundingSource.CASH: "Cash",
    FundingSource.BANK_TRANSFER: "Bank Transfer",
}


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class CustomerPaymentProfile:
    """
    Balances of the selected customer, supplied by an external lookup.

    Contract:
        Snapshot only; the kernel never mutates it. ``None`` is used in place
        of a profile when no customer has been selected yet.
    Guarantees:
        - All balances are non-negative.
    """

    wallet_balance: Money
    loyalty_points: int
    credit_limit: Money
    credit_available: Money

    def __post_init__(self) -> None:
        if self.loyalty_points < 0:
            raise ValueError("loyalty_points cannot be negative")
        for name in ("wallet_balance", "credit_limit", "credit_available"):
            if getattr(self, name).is_negative:
                raise ValueError(f"{name} cannot be negative")

    @classmethod
    def empty(cls, currency: str | Currency) -> CustomerPaymentProfile:
        zero = Money.zero(currency)
        return cls(
            wallet_balance=zero,
            loyalty_points=0,
            credit_limit=zero,
            credit_available=zero,
        )


# ---------------------------------------------------------------------------
# Method payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoyaltyRedemption:
    """Points redeemed by a loyalty_points line."""

    points_used: int

    def __post_init__(self) -> None:
        if self.points_used < 0:
            raise ValueError("points_used cannot be negative")


@dataclass(frozen=True)
class WalletDebit:
    """Wallet balance around the debit, recorded at settlement."""

    balance_before: Money
    balance_after: Money


@dataclass(frozen=True)
class CardCharge:
    last4: str

    def __post_init__(self) -> None:
        if len(self.last4) != 4 or not self.last4.isdigit():
            raise ValueError(f"last4 must be four digits, got {self.last4!r}")


@dataclass(frozen=True)
class PaymentLinkIssue:
    link_token: str
    link_url: str
    expires_in_hours: int = 24


MethodPayload = Union[LoyaltyRedemption, WalletDebit, CardCharge, PaymentLinkIssue]

_ALLOWED_PAYLOADS: dict[FundingSource, tuple[type, ...]] = {
    FundingSource.LOYALTY_POINTS: (LoyaltyRedemption,),
    FundingSource.CUSTOMER_WALLET: (WalletDebit,),
    FundingSource.CREDIT: (),
    FundingSource.CREDIT_CARD: (CardCharge,),
    FundingSource.DEBIT_CARD: (CardCharge,),
    FundingSource.PAYMENT_LINK: (PaymentLinkIssue,),
    FundingSource.CASH: (),
    FundingSource.BANK_TRANSFER: (),
}


@dataclass(frozen=True)
class SplitPaymentItem:
    """
    One payment line of an allocation.

    Contract:
        ``amount`` is always in the settlement currency. Loyalty lines carry
        their point count in a LoyaltyRedemption payload and their currency
        value is the line amount itself.
    Guarantees:
        - Payload type matches the method.
        - loyalty_points lines always have a LoyaltyRedemption.
    Non-goals:
        - Does not know the conversion rate; ConversionPolicy keeps
          amount and points consistent when lines are edited.
    """

    method: FundingSource
    amount: Money
    status: PaymentStatus = PaymentStatus.PENDING
    transaction_ref: str | None = None
    payload: MethodPayload | None = None
    failure_reason: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.method, FundingSource):
            object.__setattr__(self, "method", FundingSource(self.method))
        if not isinstance(self.status, PaymentStatus):
            object.__setattr__(self, "status", PaymentStatus(self.status))

        allowed = _ALLOWED_PAYLOADS[self.method]
        if self.method is FundingSource.LOYALTY_POINTS and self.payload is None:
            raise PayloadMismatchError(self.method.value, "None")
        if self.payload is not None and not isinstance(self.payload, allowed):
            raise PayloadMismatchError(self.method.value, type(self.payload).__name__)

    @property
    def loyalty_points_used(self) -> int | None:
        if isinstance(self.payload, LoyaltyRedemption):
            return self.payload.points_used
        return None

    @property
    def points_value(self) -> Money | None:
        if isinstance(self.payload, LoyaltyRedemption):
            return self.amount
        return None


@dataclass(frozen=True)
class PaymentAllocation:
    """
    A fixed total split across an ordered sequence of payment lines.

    Contract:
        ``total_amount`` is the read-only obligation. Totals are derived by
        summing the lines on every access, never patched incrementally.
    Guarantees:
        - At least one line.
        - Every line is in the total's currency.
        - allocated_amount + remaining_amount == total_amount.
    """

    total_amount: Money
    payments: tuple[SplitPaymentItem, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.payments, tuple):
            object.__setattr__(self, "payments", tuple(self.payments))
        if not self.payments:
            raise ValueError("An allocation must keep at least one payment line")
        for payment in self.payments:
            if payment.amount.currency != self.total_amount.currency:
                raise ValueError(
                    f"Payment currency {payment.amount.currency} does not match "
                    f"allocation currency {self.total_amount.currency}"
                )

    @property
    def currency(self) -> Currency:
        return self.total_amount.currency

    @property
    def allocated_amount(self) -> Money:
        return money_sum((p.amount for p in self.payments), self.currency)

    @property
    def remaining_amount(self) -> Money:
        return self.total_amount - self.allocated_amount

    @property
    def line_count(self) -> int:
        return len(self.payments)

    def line(self, index: int) -> SplitPaymentItem:
        return self.payments[index]

    def amount_for(self, method: FundingSource) -> Money:
        """Total allocated to one method across all its lines."""
        return money_sum(
            (p.amount for p in self.payments if p.method is method),
            self.currency,
        )

    def points_used(self) -> int:
        """Total loyalty points across all loyalty lines."""
        return sum(p.loyalty_points_used or 0 for p in self.payments)
