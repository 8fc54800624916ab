"""
booking_services.settlement_service -- Settle an accepted split payment.

Responsibility:
    Takes the finalized lines of an accepted PaymentSubmission and settles
    them one by one through a PaymentGateway: redeem points, debit the
    wallet, draw on credit, charge cards, issue payment links, and note
    cash or bank transfers.  On the first failure every line already
    settled is reversed.  On success the lines are recorded as
    SplitPaymentRecord rows for the agreement.

Architecture position:
    Services -- stateful orchestration over the gateway (external I/O) and
    the kernel models.  The allocation engine has already decided the
    split; this service never re-allocates.

Invariants enforced:
    - Lines are settled sequentially in allocation order.
    - All-or-nothing: when a line fails, earlier lines are reversed in
      reverse order and nothing is recorded.
    - A failed reversal is logged and does not stop the other reversals.
    - Payment links stay pending until the customer pays the link.
    - Each settled line carries the payload of its own method only.

Failure modes:
    - SettlementError when asked to settle a refused submission.
    - GatewayError from the gateway becomes SettlementResult(success=False).
    - Any other exception reverses the settled lines and propagates.
    - PaymentRecordNotFoundError from update_payment_status.

Usage:
    service = SettlementService(session, gateway, actor_id)
    result = service.settle(agreement_id, "CUST-7", submission)
    if not result.success:
        show(result.error)
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from booking_engines.allocation import PaymentSubmission
from booking_kernel.domain.clock import Clock, SystemClock
from booking_kernel.domain.funding import (
    CardCharge,
    FundingSource,
    LoyaltyRedemption,
    PaymentLinkIssue,
    PaymentStatus,
    SplitPaymentItem,
    WalletDebit,
)
from booking_kernel.domain.values import Money
from booking_kernel.exceptions import (
    GatewayError,
    PaymentRecordNotFoundError,
    SettlementError,
)
from booking_kernel.logging_config import LogContext, get_logger
from booking_kernel.models.split_payment import SplitPaymentRecord

logger = get_logger("services.settlement")

PAYMENT_LINK_EXPIRY_HOURS = 24


class PaymentGateway(Protocol):
    """
    External payment operations, one pair (do / undo) per funding source.

    Implementations raise GatewayError when an operation is refused.
    """

    def redeem_points(self, customer_id: str, points: int) -> None: ...

    def restore_points(self, customer_id: str, points: int, reason: str) -> None: ...

    def debit_wallet(self, customer_id: str, amount: Money) -> WalletDebit: ...

    def credit_wallet(self, customer_id: str, amount: Money) -> None: ...

    def use_credit(self, customer_id: str, amount: Money) -> None: ...

    def release_credit(self, customer_id: str, amount: Money) -> None: ...

    def charge_card(
        self, customer_id: str, method: FundingSource, amount: Money
    ) -> CardCharge: ...

    def refund_card(self, transaction_ref: str, amount: Money) -> None: ...

    def issue_payment_link(
        self, agreement_id: UUID, customer_id: str, amount: Money, expires_in_hours: int
    ) -> PaymentLinkIssue: ...

    def cancel_payment_link(self, link_token: str) -> None: ...

    def record_manual(self, customer_id: str, method: FundingSource, amount: Money) -> None: ...


def new_transaction_ref() -> str:
    return f"TXN_{uuid.uuid4().hex[:12].upper()}"


@dataclass(frozen=True)
class SettlementResult:
    """
    Outcome of settling one allocation.

    On success ``processed`` holds the settled lines (links pending, the
    rest completed).  On failure ``processed`` is empty, ``failed`` holds
    the submitted lines with the failing one marked failed, and ``error``
    says what went wrong.
    """

    success: bool
    processed: tuple[SplitPaymentItem, ...] = ()
    failed: tuple[SplitPaymentItem, ...] = ()
    error: str | None = None
    record_ids: tuple[UUID, ...] = ()


def _metadata_for(item: SplitPaymentItem) -> dict[str, Any]:
    payload = item.payload
    if isinstance(payload, WalletDebit):
        return {
            "wallet_balance_before": str(payload.balance_before.amount),
            "wallet_balance_after": str(payload.balance_after.amount),
        }
    if isinstance(payload, CardCharge):
        return {"card_last4": payload.last4}
    if isinstance(payload, PaymentLinkIssue):
        return {
            "link_token": payload.link_token,
            "link_url": payload.link_url,
            "expires_in_hours": payload.expires_in_hours,
        }
    if isinstance(payload, LoyaltyRedemption):
        return {"points_used": payload.points_used}
    meta: dict[str, Any] = {}
    if item.failure_reason:
        meta["error"] = item.failure_reason
    return meta


def _item_from_record(record: SplitPaymentRecord) -> SplitPaymentItem:
    method = FundingSource(record.payment_method)
    amount = Money.of(record.amount, record.currency)
    meta = record.payment_metadata or {}
    payload: Any = None
    match method:
        case FundingSource.LOYALTY_POINTS:
            payload = LoyaltyRedemption(points_used=record.loyalty_points_used)
        case FundingSource.CUSTOMER_WALLET if "wallet_balance_before" in meta:
            payload = WalletDebit(
                balance_before=Money.of(meta["wallet_balance_before"], record.currency),
                balance_after=Money.of(meta["wallet_balance_after"], record.currency),
            )
        case FundingSource.CREDIT_CARD | FundingSource.DEBIT_CARD if "card_last4" in meta:
            payload = CardCharge(last4=meta["card_last4"])
        case FundingSource.PAYMENT_LINK if "link_token" in meta:
            payload = PaymentLinkIssue(
                link_token=meta["link_token"],
                link_url=meta.get("link_url", ""),
                expires_in_hours=int(meta.get("expires_in_hours", PAYMENT_LINK_EXPIRY_HOURS)),
            )
    return SplitPaymentItem(
        method=method,
        amount=amount,
        status=PaymentStatus(record.status),
        transaction_ref=record.transaction_ref,
        payload=payload,
        failure_reason=meta.get("error"),
    )


class SettlementService:
    """
    Sequential multi-source settlement with compensation.

    Contract:
        Works inside the caller's SQLAlchemy session and only flushes.
    Non-goals:
        - Does not retry failed gateway calls.
        - Does not decide amounts; it settles exactly the accepted lines.
    """

    def __init__(
        self,
        session: Session,
        gateway: PaymentGateway,
        actor_id: UUID,
        clock: Clock | None = None,
        reference_factory: Callable[[], str] = new_transaction_ref,
    ):
        self.session = session
        self.gateway = gateway
        self.actor_id = actor_id
        self.clock = clock or SystemClock()
        self.reference_factory = reference_factory

    # =========================================================================
    # Settlement
    # =========================================================================

    def settle(
        self,
        agreement_id: UUID,
        customer_id: str,
        submission: PaymentSubmission,
    ) -> SettlementResult:
        if not submission.accepted:
            raise SettlementError("Cannot settle a payment submission that was refused")

        with LogContext.bind(agreement_id=str(agreement_id), customer_id=customer_id):
            logger.info(
                "settlement_started",
                extra={"line_count": len(submission.payments)},
            )
            settled: list[SplitPaymentItem] = []
            for index, item in enumerate(submission.payments):
                try:
                    settled.append(self._settle_line(agreement_id, customer_id, item))
                except GatewayError as e:
                    logger.warning(
                        "settlement_line_failed",
                        extra={"index": index, "method": item.method.value, "reason": e.reason},
                    )
                    self._rollback(customer_id, settled)
                    failed = list(submission.payments)
                    failed[index] = replace(
                        item, status=PaymentStatus.FAILED, failure_reason=str(e)
                    )
                    return SettlementResult(
                        success=False,
                        failed=tuple(failed),
                        error=f"Payment processing failed: {e}",
                    )
                except Exception:
                    logger.exception("settlement_line_crashed", extra={"index": index})
                    self._rollback(customer_id, settled)
                    raise

            records = self._record(agreement_id, customer_id, settled)
            logger.info(
                "settlement_completed",
                extra={
                    "line_count": len(settled),
                    "pending_links": sum(1 for s in settled if s.status is PaymentStatus.PENDING),
                },
            )
            return SettlementResult(
                success=True,
                processed=tuple(settled),
                record_ids=tuple(r.id for r in records),
            )

    def _settle_line(
        self,
        agreement_id: UUID,
        customer_id: str,
        item: SplitPaymentItem,
    ) -> SplitPaymentItem:
        ref = self.reference_factory()
        completed = replace(item, status=PaymentStatus.COMPLETED, transaction_ref=ref)

        match item.method:
            case FundingSource.LOYALTY_POINTS:
                points = item.loyalty_points_used
                if not points:
                    raise GatewayError(item.method.value, "loyalty points not specified")
                self.gateway.redeem_points(customer_id, points)
                return completed
            case FundingSource.CUSTOMER_WALLET:
                debit = self.gateway.debit_wallet(customer_id, item.amount)
                return replace(completed, payload=debit)
            case FundingSource.CREDIT:
                self.gateway.use_credit(customer_id, item.amount)
                return completed
            case FundingSource.CREDIT_CARD | FundingSource.DEBIT_CARD:
                charge = self.gateway.charge_card(customer_id, item.method, item.amount)
                return replace(completed, payload=charge)
            case FundingSource.PAYMENT_LINK:
                link = self.gateway.issue_payment_link(
                    agreement_id, customer_id, item.amount, PAYMENT_LINK_EXPIRY_HOURS
                )
                return replace(
                    item, status=PaymentStatus.PENDING, transaction_ref=ref, payload=link
                )
            case FundingSource.CASH | FundingSource.BANK_TRANSFER:
                self.gateway.record_manual(customer_id, item.method, item.amount)
                return completed
        raise GatewayError(item.method.value, "unsupported payment method")

    def _rollback(self, customer_id: str, settled: list[SplitPaymentItem]) -> None:
        """Reverse settled lines, newest first; a failed reversal is logged and skipped."""
        for item in reversed(settled):
            try:
                match item.method:
                    case FundingSource.LOYALTY_POINTS:
                        self.gateway.restore_points(
                            customer_id,
                            item.loyalty_points_used or 0,
                            "Rollback - payment failed",
                        )
                    case FundingSource.CUSTOMER_WALLET:
                        self.gateway.credit_wallet(customer_id, item.amount)
                    case FundingSource.CREDIT:
                        self.gateway.release_credit(customer_id, item.amount)
                    case FundingSource.CREDIT_CARD | FundingSource.DEBIT_CARD:
                        self.gateway.refund_card(item.transaction_ref or "", item.amount)
                    case FundingSource.PAYMENT_LINK:
                        if isinstance(item.payload, PaymentLinkIssue):
                            self.gateway.cancel_payment_link(item.payload.link_token)
                logger.info(
                    "settlement_line_rolled_back",
                    extra={"method": item.method.value, "transaction_ref": item.transaction_ref},
                )
            except GatewayError:
                logger.error(
                    "settlement_rollback_failed",
                    extra={"method": item.method.value, "transaction_ref": item.transaction_ref},
                    exc_info=True,
                )

    def _record(
        self,
        agreement_id: UUID,
        customer_id: str,
        settled: list[SplitPaymentItem],
    ) -> list[SplitPaymentRecord]:
        now = self.clock.now()
        records = [
            SplitPaymentRecord(
                agreement_id=agreement_id,
                customer_id=customer_id,
                line_index=index,
                payment_method=item.method.value,
                amount=item.amount.amount,
                currency=item.amount.currency.code,
                loyalty_points_used=item.loyalty_points_used or 0,
                transaction_ref=item.transaction_ref,
                status=item.status.value,
                payment_metadata=_metadata_for(item),
                processed_at=now if item.status is PaymentStatus.COMPLETED else None,
                created_by_id=self.actor_id,
            )
            for index, item in enumerate(settled)
        ]
        self.session.add_all(records)
        self.session.flush()
        return records

    # =========================================================================
    # Queries and updates
    # =========================================================================

    def payment_breakdown(self, agreement_id: UUID) -> tuple[SplitPaymentItem, ...]:
        records = self.session.execute(
            select(SplitPaymentRecord)
            .where(SplitPaymentRecord.agreement_id == agreement_id)
            .order_by(SplitPaymentRecord.line_index)
        ).scalars()
        return tuple(_item_from_record(r) for r in records)

    def update_payment_status(
        self,
        record_id: UUID,
        status: PaymentStatus,
        transaction_ref: str | None = None,
    ) -> SplitPaymentRecord:
        """Move a recorded line to a new status (e.g. a payment link paid)."""
        record = self.session.get(SplitPaymentRecord, record_id)
        if record is None:
            raise PaymentRecordNotFoundError(str(record_id))

        status = PaymentStatus(status)
        record.status = status.value
        if transaction_ref is not None:
            record.transaction_ref = transaction_ref
        if status is PaymentStatus.COMPLETED:
            record.processed_at = self.clock.now()
        record.updated_by_id = self.actor_id
        self.session.flush()

        logger.info(
            "split_payment_status_updated",
            extra={"record_id": str(record_id), "status": status.value},
        )
        return record
