"""
Module: booking_engines.step_status
Responsibility:
    Derive a step's display status from its record.  The status is never
    stored as a source of truth; it is recomputed after every transition.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Priority order: skipped, complete, has-errors, active, not applicable,
      visited, not-visited.  The first matching rule wins.
    - The active step is never reported as not-visited.
"""

from __future__ import annotations

from booking_kernel.domain.wizard import StepRecord, StepStatus


def resolve_status(record: StepRecord, is_active: bool, applicable: bool = True) -> StepStatus:
    """Resolve the status of one step.

    ``applicable`` is False for a conditional step whose controlling flag is
    unset; such a step reads as skipped unless the operator is on it or has
    already finished it.
    """
    if record.skipped:
        return StepStatus.SKIPPED
    if record.completed:
        return StepStatus.COMPLETE
    if record.has_errors:
        return StepStatus.HAS_ERRORS
    if is_active:
        return StepStatus.INCOMPLETE
    if not applicable:
        return StepStatus.SKIPPED
    if record.visited:
        return StepStatus.INCOMPLETE
    return StepStatus.NOT_VISITED
