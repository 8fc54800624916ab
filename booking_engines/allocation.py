"""
Module: booking_engines.allocation
Responsibility:
    Split a fixed amount due across several payment lines, each settled by a
    different funding source, and decide whether the split may be submitted.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Every mutation returns a new PaymentAllocation; nothing is edited in place.

Invariants enforced:
    - Conservation: allocated_amount + remaining_amount == total_amount,
      because both are re-derived by summation from the line tuple.
    - Loyalty lines keep amount == to_currency(points_used): an amount edit
      is converted to points and the amount re-derived from those points.
    - A method change resets the line's amount and payload in the same
      replacement, so a half-updated line is never observable.
    - The last remaining line cannot be removed.
    - A split is fully allocated when |remaining| < epsilon; this is the
      signal the wizard's payment step is completed from.
    - process_payment accepts a split with no submission errors, which
      tolerates |remaining| <= epsilon.

Failure modes:
    - PaymentLineNotFoundError for an index outside the allocation.
    - ValueError for negative amounts or points.
    - Refusals (removing the sole line, submitting an unsatisfied split) are
      logged and returned as data; they do not raise.

Usage:
    from booking_engines.allocation import AllocationEngine

    engine = AllocationEngine()
    allocation = engine.start_allocation(Money.of("1200.00", "AED"))
    allocation = engine.update_line_method(allocation, 0, FundingSource.CUSTOMER_WALLET)
    allocation = engine.update_line_amount(allocation, 0, "400")
    state = engine.evaluate(allocation, profile)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from booking_kernel.domain.funding import (
    CustomerPaymentProfile,
    FundingSource,
    LoyaltyRedemption,
    PaymentAllocation,
    PaymentStatus,
    SplitPaymentItem,
)
from booking_kernel.domain.values import Money
from booking_kernel.exceptions import PaymentLineNotFoundError
from booking_kernel.logging_config import get_logger
from booking_engines.allocation_validator import AllocationValidation, validate_allocation
from booking_engines.conversion import PaymentPolicy
from booking_engines.funding_catalog import FundingSourceCatalog
from booking_engines.tracer import traced_engine

logger = get_logger("engines.allocation")


@dataclass(frozen=True)
class AllocationState:
    """An allocation together with its freshly derived totals and validation."""

    allocation: PaymentAllocation
    validation: AllocationValidation
    is_fully_allocated: bool

    @property
    def allocated_amount(self) -> Money:
        return self.allocation.allocated_amount

    @property
    def remaining_amount(self) -> Money:
        return self.allocation.remaining_amount

    @property
    def can_submit(self) -> bool:
        return self.is_fully_allocated and self.validation.is_valid


@dataclass(frozen=True)
class PaymentSubmission:
    """
    Outcome of process_payment.

    On acceptance ``payments`` holds the finalized lines (status completed);
    on refusal it holds the lines unchanged and ``errors`` says why.
    """

    accepted: bool
    payments: tuple[SplitPaymentItem, ...]
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


class AllocationEngine:
    """
    Multi-source payment allocation.

    Contract:
        Stateless apart from the payment policy; every method takes an
        allocation and returns a new one (or an evaluation of it).
    Guarantees:
        - Totals are never cached; they are summed from the lines on read.
        - Re-evaluating an unchanged allocation gives an identical state.
    Non-goals:
        - No gateway calls; settlement is a service concern.
    """

    def __init__(self, policy: PaymentPolicy | None = None):
        self.policy = policy or PaymentPolicy.default()
        self.conversion = self.policy.conversion
        self.catalog = FundingSourceCatalog(self.conversion)

    # -- construction ------------------------------------------------------

    def start_allocation(
        self,
        total_amount: Money,
        default_method: FundingSource | None = None,
    ) -> PaymentAllocation:
        """One line carrying the whole amount due."""
        method = default_method or self.policy.default_method
        line = self._new_line(method, total_amount.clamp_non_negative())
        allocation = PaymentAllocation(total_amount=total_amount, payments=(line,))
        logger.info(
            "allocation_started",
            extra={
                "total_amount": str(total_amount.amount),
                "currency": total_amount.currency.code,
                "default_method": method.value,
            },
        )
        return allocation

    # -- line operations ---------------------------------------------------

    def add_line(
        self,
        allocation: PaymentAllocation,
        default_method: FundingSource | None = None,
    ) -> PaymentAllocation:
        """Append a line that absorbs whatever is still unallocated."""
        method = default_method or self.policy.default_method
        amount = allocation.remaining_amount.clamp_non_negative()
        line = self._new_line(method, amount)
        logger.debug(
            "payment_line_added",
            extra={"method": method.value, "amount": str(line.amount.amount)},
        )
        return replace(allocation, payments=allocation.payments + (line,))

    def remove_line(self, allocation: PaymentAllocation, index: int) -> PaymentAllocation:
        self._check_index(allocation, index)
        if allocation.line_count == 1:
            logger.warning(
                "payment_line_removal_refused",
                extra={"index": index, "reason": "sole_line"},
            )
            return allocation
        payments = allocation.payments[:index] + allocation.payments[index + 1:]
        logger.debug("payment_line_removed", extra={"index": index})
        return replace(allocation, payments=payments)

    def update_line_method(
        self,
        allocation: PaymentAllocation,
        index: int,
        method: FundingSource,
    ) -> PaymentAllocation:
        """Switch a line's method; amount and payload reset with it."""
        self._check_index(allocation, index)
        method = FundingSource(method)
        line = self._new_line(method, Money.zero(allocation.currency))
        return self._replace_line(allocation, index, line)

    def update_line_amount(
        self,
        allocation: PaymentAllocation,
        index: int,
        amount: Money | Decimal | str | int,
    ) -> PaymentAllocation:
        self._check_index(allocation, index)
        value = self._coerce_amount(amount, allocation)
        if value.is_negative:
            raise ValueError(f"Payment amount cannot be negative, got {value}")

        current = allocation.line(index)
        if current.method is FundingSource.LOYALTY_POINTS:
            points = self.conversion.to_units(value)
            line = replace(
                current,
                amount=self.conversion.to_currency(points),
                payload=LoyaltyRedemption(points_used=points),
            )
        else:
            line = replace(current, amount=value)
        return self._replace_line(allocation, index, line)

    def update_line_points(
        self,
        allocation: PaymentAllocation,
        index: int,
        points: int,
    ) -> PaymentAllocation:
        """Set a loyalty line's point count; its amount follows."""
        self._check_index(allocation, index)
        if points < 0:
            raise ValueError(f"Loyalty points cannot be negative, got {points}")
        current = allocation.line(index)
        if current.method is not FundingSource.LOYALTY_POINTS:
            raise ValueError(
                f"Payment line {index} is {current.method.value}, not loyalty_points"
            )
        line = replace(
            current,
            amount=self.conversion.to_currency(points),
            payload=LoyaltyRedemption(points_used=points),
        )
        return self._replace_line(allocation, index, line)

    def fill_line(
        self,
        allocation: PaymentAllocation,
        index: int,
        profile: CustomerPaymentProfile | None,
    ) -> PaymentAllocation:
        """Raise a line to its capacity (the "use maximum" action)."""
        self._check_index(allocation, index)
        current = allocation.line(index)
        if current.method is FundingSource.LOYALTY_POINTS:
            points = self.catalog.max_points(
                profile, allocation.remaining_amount, current.loyalty_points_used or 0
            )
            return self.update_line_points(allocation, index, points)
        capacity = self.max_amount_for_line(allocation, index, profile)
        return self.update_line_amount(allocation, index, capacity)

    # -- derived views -----------------------------------------------------

    def max_amount_for_line(
        self,
        allocation: PaymentAllocation,
        index: int,
        profile: CustomerPaymentProfile | None,
    ) -> Money:
        self._check_index(allocation, index)
        line = allocation.line(index)
        return self.catalog.max_amount(
            line.method, profile, allocation.remaining_amount, line.amount
        )

    def is_fully_allocated(self, allocation: PaymentAllocation) -> bool:
        return abs(allocation.remaining_amount.amount) < self.policy.epsilon

    def evaluate(
        self,
        allocation: PaymentAllocation,
        profile: CustomerPaymentProfile | None,
    ) -> AllocationState:
        validation = validate_allocation(
            allocation=allocation, profile=profile, policy=self.policy
        )
        return AllocationState(
            allocation=allocation,
            validation=validation,
            is_fully_allocated=self.is_fully_allocated(allocation),
        )

    # -- submission --------------------------------------------------------

    @traced_engine("allocation", "1.0", fingerprint_fields=("allocation", "profile"))
    def process_payment(
        self,
        allocation: PaymentAllocation,
        profile: CustomerPaymentProfile | None,
    ) -> PaymentSubmission:
        """
        Finalize a satisfied allocation.

        Refuses (no state change) unless the submission validation has no
        errors; it reports any remainder or excess beyond epsilon.
        """
        validation = validate_allocation(
            allocation=allocation,
            profile=profile,
            policy=self.policy,
            for_submission=True,
        )
        if not validation.is_valid:
            logger.warning(
                "payment_submission_refused",
                extra={
                    "error_count": len(validation.errors),
                    "remaining_amount": str(allocation.remaining_amount.amount),
                },
            )
            return PaymentSubmission(
                accepted=False,
                payments=allocation.payments,
                errors=validation.errors,
                warnings=validation.warnings,
            )

        finalized = tuple(
            replace(p, status=PaymentStatus.COMPLETED) for p in allocation.payments
        )
        logger.info(
            "payment_submission_accepted",
            extra={
                "line_count": len(finalized),
                "total_amount": str(allocation.total_amount.amount),
                "methods": [p.method.value for p in finalized],
            },
        )
        return PaymentSubmission(
            accepted=True, payments=finalized, warnings=validation.warnings
        )

    # -- internals ---------------------------------------------------------

    def _new_line(self, method: FundingSource, amount: Money) -> SplitPaymentItem:
        if method is FundingSource.LOYALTY_POINTS:
            points = self.conversion.to_units(amount)
            return SplitPaymentItem(
                method=method,
                amount=self.conversion.to_currency(points),
                payload=LoyaltyRedemption(points_used=points),
            )
        return SplitPaymentItem(method=method, amount=amount)

    @staticmethod
    def _check_index(allocation: PaymentAllocation, index: int) -> None:
        if not 0 <= index < allocation.line_count:
            raise PaymentLineNotFoundError(index, allocation.line_count)

    @staticmethod
    def _replace_line(
        allocation: PaymentAllocation,
        index: int,
        line: SplitPaymentItem,
    ) -> PaymentAllocation:
        payments = list(allocation.payments)
        payments[index] = line
        return replace(allocation, payments=tuple(payments))

    @staticmethod
    def _coerce_amount(
        amount: Money | Decimal | str | int,
        allocation: PaymentAllocation,
    ) -> Money:
        if isinstance(amount, Money):
            return amount
        return Money.of(amount, allocation.currency)
