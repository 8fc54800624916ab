"""
Tests for SettlementService: sequential settlement, compensation on
failure, persistence of the split and status updates.
"""

from itertools import count
from uuid import uuid4

import pytest

from booking_engines.allocation import AllocationEngine
from booking_engines.conversion import PaymentPolicy
from booking_kernel.domain.funding import (
    CardCharge,
    FundingSource,
    PaymentLinkIssue,
    PaymentStatus,
    WalletDebit,
)
from booking_kernel.exceptions import GatewayError, PaymentRecordNotFoundError, SettlementError
from booking_kernel.models.split_payment import SplitPaymentRecord
from booking_services.settlement_service import SettlementService, new_transaction_ref
from tests.factories import aed, make_profile


class RecordingGateway:
    """In-memory gateway that logs every call and fails on request."""

    def __init__(self, fail_on: str | None = None, fail_rollback_on: str | None = None):
        self.calls: list[tuple] = []
        self.fail_on = fail_on
        self.fail_rollback_on = fail_rollback_on

    def _call(self, name: str, *args):
        self.calls.append((name, *args))
        if name in (self.fail_on, self.fail_rollback_on):
            raise GatewayError(name, "declined")

    def redeem_points(self, customer_id, points):
        self._call("redeem_points", points)

    def restore_points(self, customer_id, points, reason):
        self._call("restore_points", points)

    def debit_wallet(self, customer_id, amount):
        self._call("debit_wallet", amount)
        return WalletDebit(balance_before=aed("500"), balance_after=aed("500") - amount)

    def credit_wallet(self, customer_id, amount):
        self._call("credit_wallet", amount)

    def use_credit(self, customer_id, amount):
        self._call("use_credit", amount)

    def release_credit(self, customer_id, amount):
        self._call("release_credit", amount)

    def charge_card(self, customer_id, method, amount):
        self._call("charge_card", amount)
        return CardCharge(last4="4242")

    def refund_card(self, transaction_ref, amount):
        self._call("refund_card", transaction_ref)

    def issue_payment_link(self, agreement_id, customer_id, amount, expires_in_hours):
        self._call("issue_payment_link", amount)
        return PaymentLinkIssue(
            link_token="tok-1",
            link_url="https://pay.example/tok-1",
            expires_in_hours=expires_in_hours,
        )

    def cancel_payment_link(self, link_token):
        self._call("cancel_payment_link", link_token)

    def record_manual(self, customer_id, method, amount):
        self._call("record_manual", method)

    @property
    def names(self) -> list[str]:
        return [c[0] for c in self.calls]


def _sequential_refs():
    counter = count(1)
    return lambda: f"TXN_{next(counter):012d}"


def _submission(*methods_and_amounts, points: int | None = None):
    """Build an accepted submission from (method, amount) pairs."""
    engine = AllocationEngine(PaymentPolicy.default())
    total = sum(int(a) for _, a in methods_and_amounts)
    allocation = engine.start_allocation(aed(str(total)), methods_and_amounts[0][0])
    allocation = engine.update_line_amount(allocation, 0, methods_and_amounts[0][1])
    for method, amount in methods_and_amounts[1:]:
        allocation = engine.add_line(allocation, method)
        allocation = engine.update_line_amount(allocation, allocation.line_count - 1, amount)
    profile = make_profile(wallet="500", points=points or 100000, credit_limit="1000")
    submission = engine.process_payment(allocation, profile)
    assert submission.accepted, submission.errors
    return submission


@pytest.fixture
def agreement_id():
    return uuid4()


def _service(db_session, gateway, test_actor_id, deterministic_clock):
    return SettlementService(
        db_session,
        gateway,
        test_actor_id,
        clock=deterministic_clock,
        reference_factory=_sequential_refs(),
    )


class TestSettle:
    def test_settles_every_line_in_order(
        self, db_session, test_actor_id, deterministic_clock, agreement_id
    ):
        gateway = RecordingGateway()
        service = _service(db_session, gateway, test_actor_id, deterministic_clock)
        submission = _submission(
            (FundingSource.LOYALTY_POINTS, "20"),
            (FundingSource.CUSTOMER_WALLET, "100"),
            (FundingSource.CREDIT_CARD, "80"),
        )

        result = service.settle(agreement_id, "CUST-7", submission)

        assert result.success
        assert gateway.names == ["redeem_points", "debit_wallet", "charge_card"]
        assert gateway.calls[0] == ("redeem_points", 2000)
        assert [p.transaction_ref for p in result.processed] == [
            "TXN_000000000001",
            "TXN_000000000002",
            "TXN_000000000003",
        ]
        assert all(p.status is PaymentStatus.COMPLETED for p in result.processed)
        assert result.processed[1].payload == WalletDebit(
            balance_before=aed("500"), balance_after=aed("400")
        )
        assert result.processed[2].payload == CardCharge(last4="4242")
        assert len(result.record_ids) == 3

    def test_payment_link_stays_pending(
        self, db_session, test_actor_id, deterministic_clock, agreement_id
    ):
        gateway = RecordingGateway()
        service = _service(db_session, gateway, test_actor_id, deterministic_clock)
        submission = _submission((FundingSource.CASH, "40"), (FundingSource.PAYMENT_LINK, "60"))

        result = service.settle(agreement_id, "CUST-7", submission)

        assert result.success
        assert result.processed[0].status is PaymentStatus.COMPLETED
        assert result.processed[1].status is PaymentStatus.PENDING
        assert result.processed[1].payload.link_token == "tok-1"

    def test_failure_rolls_back_in_reverse(
        self, db_session, test_actor_id, deterministic_clock, agreement_id, captured_logs
    ):
        gateway = RecordingGateway(fail_on="charge_card")
        service = _service(db_session, gateway, test_actor_id, deterministic_clock)
        submission = _submission(
            (FundingSource.LOYALTY_POINTS, "20"),
            (FundingSource.CREDIT, "30"),
            (FundingSource.CUSTOMER_WALLET, "50"),
            (FundingSource.CREDIT_CARD, "100"),
        )

        result = service.settle(agreement_id, "CUST-7", submission)

        assert not result.success
        assert result.processed == ()
        assert result.error.startswith("Payment processing failed")
        assert result.failed[3].status is PaymentStatus.FAILED
        assert result.failed[3].failure_reason
        assert gateway.names == [
            "redeem_points",
            "use_credit",
            "debit_wallet",
            "charge_card",
            "credit_wallet",
            "release_credit",
            "restore_points",
        ]
        assert db_session.query(SplitPaymentRecord).count() == 0
        assert any(r["message"] == "settlement_line_failed" for r in captured_logs())

    def test_failed_reversal_does_not_stop_others(
        self, db_session, test_actor_id, deterministic_clock, agreement_id, captured_logs
    ):
        gateway = RecordingGateway(fail_on="record_manual", fail_rollback_on="credit_wallet")
        service = _service(db_session, gateway, test_actor_id, deterministic_clock)
        submission = _submission(
            (FundingSource.LOYALTY_POINTS, "20"),
            (FundingSource.CUSTOMER_WALLET, "50"),
            (FundingSource.CASH, "30"),
        )

        result = service.settle(agreement_id, "CUST-7", submission)

        assert not result.success
        assert gateway.names[-2:] == ["credit_wallet", "restore_points"]
        assert any(r["message"] == "settlement_rollback_failed" for r in captured_logs())

    def test_card_refund_uses_transaction_ref(
        self, db_session, test_actor_id, deterministic_clock, agreement_id
    ):
        gateway = RecordingGateway(fail_on="issue_payment_link")
        service = _service(db_session, gateway, test_actor_id, deterministic_clock)
        submission = _submission(
            (FundingSource.DEBIT_CARD, "70"), (FundingSource.PAYMENT_LINK, "30")
        )

        service.settle(agreement_id, "CUST-7", submission)

        assert gateway.calls[-1] == ("refund_card", "TXN_000000000001")

    def test_unexpected_error_rolls_back_and_propagates(
        self, db_session, test_actor_id, deterministic_clock, agreement_id
    ):
        class BrokenGateway(RecordingGateway):
            def use_credit(self, customer_id, amount):
                raise RuntimeError("connection reset")

        gateway = BrokenGateway()
        service = _service(db_session, gateway, test_actor_id, deterministic_clock)
        submission = _submission((FundingSource.CASH, "10"), (FundingSource.CREDIT, "90"))

        with pytest.raises(RuntimeError):
            service.settle(agreement_id, "CUST-7", submission)
        assert gateway.names == ["record_manual"]

    def test_refused_submission_rejected(self, db_session, test_actor_id, agreement_id):
        engine = AllocationEngine()
        allocation = engine.start_allocation(aed("100"))
        allocation = engine.update_line_amount(allocation, 0, "50")
        submission = engine.process_payment(allocation, None)
        service = SettlementService(db_session, RecordingGateway(), test_actor_id)

        with pytest.raises(SettlementError):
            service.settle(agreement_id, "CUST-7", submission)


class TestRecords:
    def test_breakdown_round_trip(
        self, db_session, test_actor_id, deterministic_clock, agreement_id
    ):
        service = _service(db_session, RecordingGateway(), test_actor_id, deterministic_clock)
        submission = _submission(
            (FundingSource.LOYALTY_POINTS, "20"),
            (FundingSource.CUSTOMER_WALLET, "30"),
            (FundingSource.CREDIT_CARD, "25"),
            (FundingSource.PAYMENT_LINK, "25"),
        )
        service.settle(agreement_id, "CUST-7", submission)

        breakdown = service.payment_breakdown(agreement_id)

        assert [p.method for p in breakdown] == [
            FundingSource.LOYALTY_POINTS,
            FundingSource.CUSTOMER_WALLET,
            FundingSource.CREDIT_CARD,
            FundingSource.PAYMENT_LINK,
        ]
        assert breakdown[0].loyalty_points_used == 2000
        assert breakdown[1].payload.balance_after == aed("470")
        assert breakdown[2].payload == CardCharge(last4="4242")
        assert breakdown[3].status is PaymentStatus.PENDING
        assert sum(p.amount.amount for p in breakdown) == 100

    def test_processed_at_only_for_completed(
        self, db_session, test_actor_id, deterministic_clock, agreement_id
    ):
        service = _service(db_session, RecordingGateway(), test_actor_id, deterministic_clock)
        submission = _submission((FundingSource.CASH, "40"), (FundingSource.PAYMENT_LINK, "60"))
        service.settle(agreement_id, "CUST-7", submission)

        rows = (
            db_session.query(SplitPaymentRecord)
            .filter_by(agreement_id=agreement_id)
            .order_by(SplitPaymentRecord.line_index)
            .all()
        )
        assert rows[0].processed_at is not None
        assert rows[1].processed_at is None
        assert rows[0].created_by_id == test_actor_id

    def test_update_status_completes_link(
        self, db_session, test_actor_id, deterministic_clock, agreement_id
    ):
        service = _service(db_session, RecordingGateway(), test_actor_id, deterministic_clock)
        submission = _submission((FundingSource.CASH, "40"), (FundingSource.PAYMENT_LINK, "60"))
        result = service.settle(agreement_id, "CUST-7", submission)

        record = service.update_payment_status(
            result.record_ids[1], PaymentStatus.COMPLETED, transaction_ref="LINK-PAID-1"
        )

        assert record.status == "completed"
        assert record.transaction_ref == "LINK-PAID-1"
        assert record.processed_at is not None
        assert service.payment_breakdown(agreement_id)[1].status is PaymentStatus.COMPLETED

    def test_update_unknown_record(self, db_session, test_actor_id):
        service = SettlementService(db_session, RecordingGateway(), test_actor_id)
        with pytest.raises(PaymentRecordNotFoundError):
            service.update_payment_status(uuid4(), PaymentStatus.FAILED)


class TestTransactionRef:
    def test_format(self):
        ref = new_transaction_ref()
        assert ref.startswith("TXN_")
        assert len(ref) == 16
