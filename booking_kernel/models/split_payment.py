"""
Module: booking_kernel.models.split_payment
Responsibility: ORM persistence for the settled lines of a multi-source
    payment, one row per payment line of an agreement.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - amount is Numeric(38, 9), never float.
    - payment_metadata holds only the payload of the row's own method
      (wallet before/after, card last-4, link token and url).
    - processed_at is set when, and only when, the row is completed.

Failure modes:
    - IntegrityError on a missing agreement_id, method, amount or status.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from booking_kernel.db.base import TrackedBase


class SplitPaymentRecord(TrackedBase):
    """
    One settled (or pending) payment line of an agreement.

    Guarantees:
        - line_index preserves the order the operator allocated the lines in.
        - status is one of pending, completed, failed.
    Non-goals:
        - Does not re-validate the allocation; rows are written only after
          the allocation was accepted and settled.
    """

    __tablename__ = "agreement_split_payments"

    __table_args__ = (
        Index("idx_split_payment_agreement", "agreement_id"),
        Index("idx_split_payment_status", "status"),
    )

    agreement_id: Mapped[UUID] = mapped_column(nullable=False)

    customer_id: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    line_index: Mapped[int] = mapped_column(nullable=False, default=0)

    payment_method: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    loyalty_points_used: Mapped[int] = mapped_column(nullable=False, default=0)

    transaction_ref: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
    )

    payment_metadata: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

    processed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return (
            f"<SplitPaymentRecord {self.agreement_id}#{self.line_index} "
            f"{self.payment_method} {self.amount} {self.status}>"
        )
