"""
booking_services.draft_service -- Save and resume wizard progress.

Responsibility:
    Persists a WizardSession as a WizardDraft row keyed by a draft key and
    hydrates it back, fitted to the current step graph, so an operator can
    leave a booking and resume it later.

Architecture position:
    Services -- stateful I/O over the kernel models.
    Uses WizardNavigator.hydrate for normalisation; never runs rules itself.

Invariants enforced:
    - One draft per key: saving again overwrites the stored draft.
    - Stored step records carry only completed/skipped/visited/last_errors;
      statuses are re-resolved on load, never trusted from storage.
    - Data bag values are stored as JSON: dates and datetimes as ISO
      strings, Decimals as strings, enums by value.
    - Missing record fields load as their defaults, so older drafts remain
      readable.

Failure modes:
    - DraftCorruptError when a stored draft cannot be fitted to the graph
      (active step gone, a step both completed and skipped, bad types).

Usage:
    service = DraftService(session, actor_id, navigator)
    service.save("reservation:walk-in:42", wizard)
    wizard = service.load("reservation:walk-in:42")
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from booking_engines.wizard_session import WizardNavigator
from booking_kernel.domain.wizard import StepRecord, WizardSession
from booking_kernel.exceptions import BookingKernelError, DraftCorruptError
from booking_kernel.logging_config import LogContext, get_logger
from booking_kernel.models.wizard_draft import DRAFT_FORMAT_VERSION, WizardDraft

logger = get_logger("services.draft")


def to_json_value(value: Any) -> Any:
    """Convert a data bag value to something the JSON column can store."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json_value(v) for v in value]
    return value


def _record_to_json(record: StepRecord) -> dict[str, Any]:
    return {
        "completed": record.completed,
        "skipped": record.skipped,
        "visited": record.visited,
        "last_errors": dict(record.last_errors),
    }


def _record_from_json(data: Mapping[str, Any]) -> StepRecord:
    return StepRecord(
        completed=bool(data.get("completed", False)),
        skipped=bool(data.get("skipped", False)),
        visited=bool(data.get("visited", False)),
        last_errors={str(k): str(v) for k, v in (data.get("last_errors") or {}).items()},
    )


class DraftService:
    """
    Wizard draft storage.

    Contract:
        Works inside the caller's SQLAlchemy session and only flushes;
        committing is the caller's (or session_scope's) decision.
    """

    def __init__(self, session: Session, actor_id: UUID, navigator: WizardNavigator):
        self.session = session
        self.actor_id = actor_id
        self.navigator = navigator

    def _find(self, draft_key: str) -> WizardDraft | None:
        return self.session.execute(
            select(WizardDraft).where(WizardDraft.draft_key == draft_key)
        ).scalar_one_or_none()

    def save(self, draft_key: str, wizard: WizardSession) -> WizardDraft:
        step_records = {str(n): _record_to_json(r) for n, r in wizard.records.items()}
        data_bag = to_json_value(dict(wizard.data_bag))

        draft = self._find(draft_key)
        if draft is None:
            draft = WizardDraft(
                draft_key=draft_key,
                created_by_id=self.actor_id,
                active_step=wizard.active_step,
            )
            self.session.add(draft)
        else:
            draft.updated_by_id = self.actor_id

        draft.format_version = DRAFT_FORMAT_VERSION
        draft.active_step = wizard.active_step
        draft.last_modified_step = wizard.last_modified_step
        draft.step_records = step_records
        draft.data_bag = data_bag
        self.session.flush()

        with LogContext.bind(draft_key=draft_key, actor_id=self.actor_id):
            logger.info("wizard_draft_saved", extra={"active_step": wizard.active_step})
        return draft

    def load(self, draft_key: str) -> WizardSession | None:
        draft = self._find(draft_key)
        if draft is None:
            return None

        try:
            raw_records = draft.step_records or {}
            if not isinstance(raw_records, Mapping):
                raise ValueError("step_records is not a mapping")
            records = {int(n): _record_from_json(r) for n, r in raw_records.items()}
            data_bag = draft.data_bag or {}
            if not isinstance(data_bag, Mapping):
                raise ValueError("data_bag is not a mapping")
            wizard = self.navigator.hydrate(
                active_step=int(draft.active_step),
                records=records,
                data_bag=data_bag,
                last_modified_step=draft.last_modified_step,
            )
        except (BookingKernelError, ValueError, TypeError, AttributeError) as e:
            with LogContext.bind(draft_key=draft_key):
                logger.warning("wizard_draft_corrupt", extra={"reason": str(e)})
            raise DraftCorruptError(draft_key, str(e)) from e

        with LogContext.bind(draft_key=draft_key):
            logger.info("wizard_draft_loaded", extra={"active_step": wizard.active_step})
        return wizard

    def clear(self, draft_key: str) -> bool:
        """Delete a draft; returns False when there was none."""
        draft = self._find(draft_key)
        if draft is None:
            return False
        self.session.delete(draft)
        self.session.flush()
        with LogContext.bind(draft_key=draft_key, actor_id=self.actor_id):
            logger.info("wizard_draft_cleared")
        return True
