"""
Module: booking_kernel.models.wizard_draft
Responsibility: ORM persistence for an in-progress booking wizard, so an
    operator can leave and resume a booking.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - draft_key is unique: one draft per key, overwritten on each save.
    - step_records and data_bag are plain JSON; hydration back into a
      WizardSession is the draft service's job.
"""

from typing import Any

from sqlalchemy import JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from booking_kernel.db.base import TrackedBase

DRAFT_FORMAT_VERSION = 1


class WizardDraft(TrackedBase):
    """Saved wizard progress keyed by an operator-chosen draft key."""

    __tablename__ = "wizard_drafts"

    __table_args__ = (
        UniqueConstraint("draft_key", name="uq_wizard_draft_key"),
    )

    draft_key: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    format_version: Mapped[int] = mapped_column(
        nullable=False,
        default=DRAFT_FORMAT_VERSION,
    )

    active_step: Mapped[int] = mapped_column(nullable=False)

    last_modified_step: Mapped[int | None] = mapped_column(nullable=True)

    # {"1": {"completed": true, "skipped": false, ...}, ...}
    step_records: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

    data_bag: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

    def __repr__(self) -> str:
        return f"<WizardDraft {self.draft_key} step={self.active_step}>"
