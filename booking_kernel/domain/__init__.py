"""
Pure domain layer.

Value objects for the booking kernel with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time (only through the injected Clock)
- I/O

All domain objects are immutable and deterministic.
"""

from booking_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from booking_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from booking_kernel.domain.funding import (
    CardCharge,
    CustomerPaymentProfile,
    FundingSource,
    LoyaltyRedemption,
    MethodPayload,
    PaymentAllocation,
    PaymentLinkIssue,
    PaymentStatus,
    SplitPaymentItem,
    WalletDebit,
)
from booking_kernel.domain.values import Currency, Money, min_money, money_sum
from booking_kernel.domain.wizard import (
    GroupProgress,
    ProgressSummary,
    StepGraph,
    StepRecord,
    StepStatus,
    StepValidity,
    WizardSession,
    WizardStep,
    WizardStepGroup,
)

__all__ = [
    "CardCharge",
    "Clock",
    "Currency",
    "CurrencyInfo",
    "CurrencyRegistry",
    "CustomerPaymentProfile",
    "DeterministicClock",
    "FundingSource",
    "GroupProgress",
    "LoyaltyRedemption",
    "MethodPayload",
    "Money",
    "PaymentAllocation",
    "PaymentLinkIssue",
    "PaymentStatus",
    "ProgressSummary",
    "SplitPaymentItem",
    "StepGraph",
    "StepRecord",
    "StepStatus",
    "StepValidity",
    "SystemClock",
    "WalletDebit",
    "WizardSession",
    "WizardStep",
    "WizardStepGroup",
    "min_money",
    "money_sum",
]
