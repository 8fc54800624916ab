"""
Module: booking_engines.wizard_session
Responsibility:
    Transitions of the booking wizard: moving between steps, marking steps
    complete, skipped or reset, merging data, and the final submission gate.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Every transition takes a WizardSession and returns a new one.  Draft
    persistence lives in ``booking_services.draft_service``.

Invariants enforced:
    - Navigation never blocks: any step in 1..N can be reached from any
      other, whatever the data looks like.  Leaving a step runs its rules
      and records the errors; it does not stop the move.
    - Leaving forwards with no errors marks the step complete; leaving
      backwards with no errors only clears old errors.
    - Every record's validation_status is re-resolved after each transition.
    - A conditional step never stays complete once its flag is set and its
      rules fail.
    - The active step is always visited and never reads as not-visited.
    - The submission gate (``require_submittable``) is the only place that
      refuses the operator, and it names every invalid step.

Failure modes:
    - UnknownStepError for a step number outside the graph.
    - StepsIncompleteError from require_submittable.

Usage:
    navigator = WizardNavigator(graph, rule_book)
    session = navigator.start()
    session = navigator.update_data(session, {"customer_id": "C-1"})
    session = navigator.go_to_step(session, 5)
    navigator.require_submittable(session)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from booking_kernel.domain.wizard import (
    GroupProgress,
    ProgressSummary,
    StepGraph,
    StepRecord,
    StepStatus,
    StepValidity,
    WizardSession,
)
from booking_kernel.exceptions import StepsIncompleteError, UnknownStepError
from booking_kernel.logging_config import get_logger
from booking_engines.step_status import resolve_status
from booking_engines.validation_rules import FieldErrors, RuleBook, is_required

logger = get_logger("engines.wizard_session")

PAYMENT_ALLOCATED_FIELD = "payment_allocated"

_INVALID_STATUSES = frozenset(
    {StepStatus.HAS_ERRORS, StepStatus.INCOMPLETE, StepStatus.NOT_VISITED}
)


def _percentage(part: int, whole: int) -> int:
    if whole == 0:
        return 0
    value = (Decimal(part) * 100 / Decimal(whole)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(value)


class WizardNavigator:
    """
    Step progression state machine over a fixed step graph.

    Contract:
        Holds only the graph and the rule book; sessions are passed in and
        returned, never stored.
    Guarantees:
        - Transitions are total for every step in the graph.
        - Re-settling an unchanged session yields an equal session.
    """

    def __init__(
        self,
        graph: StepGraph,
        rules: RuleBook | None = None,
        payment_step: int | None = None,
    ):
        self.graph = graph
        self.rules = rules or RuleBook()
        self.payment_step = payment_step if payment_step is not None else len(graph)
        graph.step(self.payment_step)

    # -- construction ------------------------------------------------------

    def start(
        self,
        data_bag: Mapping[str, Any] | None = None,
        active_step: int = 1,
    ) -> WizardSession:
        self.graph.step(active_step)
        records = {n: StepRecord() for n in self.graph.step_numbers}
        records[active_step] = StepRecord(visited=True)
        session = WizardSession(
            active_step=active_step,
            records=records,
            data_bag=dict(data_bag or {}),
        )
        logger.info(
            "wizard_session_started",
            extra={"step_count": len(self.graph), "active_step": active_step},
        )
        return self._settle(session)

    def hydrate(
        self,
        active_step: int,
        records: Mapping[int, StepRecord],
        data_bag: Mapping[str, Any] | None = None,
        last_modified_step: int | None = None,
    ) -> WizardSession:
        """Rebuild a session from stored parts, fitted to the current graph.

        Records for steps the graph no longer has are dropped; steps without
        a stored record start fresh.
        """
        self.graph.step(active_step)
        fitted = {n: records.get(n, StepRecord()) for n in self.graph.step_numbers}
        fitted[active_step] = replace(fitted[active_step], visited=True)
        if last_modified_step is not None and not self.graph.contains(last_modified_step):
            last_modified_step = None
        session = WizardSession(
            active_step=active_step,
            records=fitted,
            data_bag=dict(data_bag or {}),
            last_modified_step=last_modified_step,
        )
        return self._settle(session)

    # -- navigation --------------------------------------------------------

    def go_to_step(self, session: WizardSession, target: int) -> WizardSession:
        """Move to ``target``, validating the step being left. Never blocked."""
        self.graph.step(target)
        active = session.active_step
        errors = self.validate_step(session, active)

        records = dict(session.records)
        current = records[active]
        if errors:
            records[active] = replace(current, completed=False, visited=True, last_errors=errors)
        elif target > active and not current.skipped:
            records[active] = replace(current, completed=True, visited=True, last_errors={})
        else:
            records[active] = replace(current, visited=True, last_errors={})
        records[target] = replace(records[target], visited=True)

        logger.debug(
            "wizard_step_changed",
            extra={
                "from_step": active,
                "to_step": target,
                "error_fields": sorted(errors),
            },
        )
        return self._settle(replace(session, active_step=target, records=records))

    def next_step(self, session: WizardSession) -> WizardSession:
        return self.go_to_step(session, min(session.active_step + 1, len(self.graph)))

    def previous_step(self, session: WizardSession) -> WizardSession:
        return self.go_to_step(session, max(session.active_step - 1, 1))

    # -- explicit status changes ------------------------------------------

    def mark_step_complete(self, session: WizardSession, step: int) -> WizardSession:
        return self._update_record(
            session, step, completed=True, skipped=False, visited=True, last_errors={}
        )

    def mark_step_incomplete(self, session: WizardSession, step: int) -> WizardSession:
        return self._update_record(session, step, completed=False)

    def skip_step(self, session: WizardSession, step: int) -> WizardSession:
        return self._update_record(session, step, skipped=True, completed=False)

    def unskip_step(self, session: WizardSession, step: int) -> WizardSession:
        return self._update_record(session, step, skipped=False)

    def reset_step_status(self, session: WizardSession, step: int) -> WizardSession:
        self.graph.step(step)
        records = dict(session.records)
        records[step] = StepRecord(visited=step == session.active_step)
        return self._settle(replace(session, records=records))

    def complete_active_step(self, session: WizardSession) -> WizardSession:
        """Validate the active step in place: complete it, or record its errors."""
        active = session.active_step
        errors = self.validate_step(session, active)
        if errors:
            return self._update_record(session, active, completed=False, last_errors=errors)
        if session.record(active).skipped:
            return self._update_record(session, active, last_errors={})
        return self.mark_step_complete(session, active)

    # -- data --------------------------------------------------------------

    def update_data(
        self,
        session: WizardSession,
        updates: Mapping[str, Any],
        step: int | None = None,
    ) -> WizardSession:
        """Merge ``updates`` into the data bag as one replacement.

        A conditional step whose flag this update turns on loses any
        completion it earned while it did not apply, unless the new data
        already satisfies its rules.
        """
        if step is not None:
            self.graph.step(step)
        data_bag = {**session.data_bag, **updates}

        records = dict(session.records)
        for wizard_step in self.graph:
            was_required = is_required(wizard_step, session.data_bag)
            if was_required or not is_required(wizard_step, data_bag):
                continue
            record = records[wizard_step.number]
            errors = self.rules.errors_for(wizard_step, data_bag)
            if record.completed and errors:
                records[wizard_step.number] = replace(record, completed=False, last_errors=errors)
                logger.info(
                    "wizard_step_reopened",
                    extra={"step": wizard_step.number, "error_fields": sorted(errors)},
                )

        return self._settle(
            replace(
                session,
                records=records,
                data_bag=data_bag,
                last_modified_step=step if step is not None else session.active_step,
            )
        )

    def record_payment_outcome(
        self,
        session: WizardSession,
        fully_allocated: bool,
        payment_step: int | None = None,
    ) -> WizardSession:
        """Feed the allocation result back as the payment step's completeness."""
        step = payment_step if payment_step is not None else self.payment_step
        session = self.update_data(session, {PAYMENT_ALLOCATED_FIELD: fully_allocated}, step)
        if fully_allocated:
            return self.mark_step_complete(session, step)
        return self.mark_step_incomplete(session, step)

    # -- queries -----------------------------------------------------------

    def validate_step(self, session: WizardSession, step: int) -> FieldErrors:
        return self.rules.errors_for(self.graph.step(step), session.data_bag)

    def status_of(self, session: WizardSession, step: int) -> StepStatus:
        wizard_step = self.graph.step(step)
        return resolve_status(
            session.record(step),
            step == session.active_step,
            is_required(wizard_step, session.data_bag),
        )

    def step_statuses(self, session: WizardSession) -> dict[int, StepStatus]:
        return {n: self.status_of(session, n) for n in self.graph.step_numbers}

    def validate_all_required(
        self,
        session: WizardSession,
        required_steps: Iterable[int] | None = None,
    ) -> StepValidity:
        numbers = self.graph.step_numbers if required_steps is None else tuple(required_steps)
        invalid: list[int] = []
        for number in numbers:
            step = self.graph.step(number)
            if not is_required(step, session.data_bag):
                continue
            status = resolve_status(session.record(number), number == session.active_step)
            if status in _INVALID_STATUSES:
                invalid.append(number)
        return StepValidity(is_valid=not invalid, invalid_steps=tuple(invalid))

    def require_submittable(
        self,
        session: WizardSession,
        required_steps: Iterable[int] | None = None,
    ) -> StepValidity:
        """Submission gate: raise StepsIncompleteError naming the invalid steps."""
        validity = self.validate_all_required(session, required_steps)
        if not validity.is_valid:
            titles = self.graph.titles_for(validity.invalid_steps)
            logger.warning(
                "wizard_submission_blocked",
                extra={"invalid_steps": list(validity.invalid_steps)},
            )
            raise StepsIncompleteError(validity.invalid_steps, titles)
        logger.info("wizard_submission_allowed", extra={"step_count": len(self.graph)})
        return validity

    def progress_summary(self, session: WizardSession) -> ProgressSummary:
        records = [session.record(n) for n in self.graph.step_numbers]
        completed = sum(1 for r in records if r.completed)
        return ProgressSummary(
            completed=completed,
            visited=sum(1 for r in records if r.visited),
            skipped=sum(1 for r in records if r.skipped),
            total=len(records),
            has_errors=any(r.has_errors for r in records),
            percentage=_percentage(completed, len(records)),
        )

    def group_progress(self, session: WizardSession) -> tuple[GroupProgress, ...]:
        progress: list[GroupProgress] = []
        for group in self.graph.groups:
            done = sum(1 for n in group.member_steps if session.record(n).completed)
            progress.append(
                GroupProgress(
                    group_id=group.group_id,
                    title=group.title,
                    completed_steps=done,
                    total_steps=len(group.member_steps),
                    percentage=_percentage(done, len(group.member_steps)),
                    is_active=session.active_step in group.member_steps,
                )
            )
        return tuple(progress)

    # -- internals ---------------------------------------------------------

    def _update_record(self, session: WizardSession, step: int, **changes: Any) -> WizardSession:
        self.graph.step(step)
        records = dict(session.records)
        try:
            records[step] = replace(records[step], **changes)
        except KeyError:
            raise UnknownStepError(step, len(self.graph)) from None
        return self._settle(replace(session, records=records))

    def _settle(self, session: WizardSession) -> WizardSession:
        records: dict[int, StepRecord] = {}
        for step in self.graph:
            record = session.record(step.number)
            status = resolve_status(
                record,
                step.number == session.active_step,
                is_required(step, session.data_bag),
            )
            if record.validation_status is not status:
                record = replace(record, validation_status=status)
            records[step.number] = record
        return replace(session, records=records)
