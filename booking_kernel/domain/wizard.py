"""
Canonical wizard types (``booking_kernel.domain.wizard``).

Responsibility
--------------
Pure value objects for the step progression state machine: the static step
graph (steps and display groups), the per-step record kept by a session and
the session value itself.  Transitions live in
``booking_engines.wizard_session``; nothing here changes state.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Step numbers are contiguous ``1..N`` and unique.
* Every step belongs to a declared group; every group member is a step.
* A StepRecord is never both ``skipped`` and ``completed``.
* ``WizardSession.active_step`` is within ``1..N`` and has a record.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from booking_kernel.exceptions import StepGraphError, UnknownStepError


class StepStatus(str, Enum):
    """Display status of a step, always derived from its record."""

    NOT_VISITED = "not-visited"
    INCOMPLETE = "incomplete"
    HAS_ERRORS = "has-errors"
    COMPLETE = "complete"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class WizardStep:
    """A data-entry step.

    ``required_when`` names a data bag flag; when set, the step only applies
    (and only reports required-field errors) while that flag is truthy.
    """

    number: int
    title: str
    description: str
    group_id: str
    required_when: str | None = None


@dataclass(frozen=True)
class WizardStepGroup:
    """Progressive-disclosure section; display only, no effect on validity."""

    group_id: str
    title: str
    description: str
    member_steps: tuple[int, ...]


@dataclass(frozen=True)
class StepGraph:
    """
    Ordered, grouped set of wizard steps.

    Contract: immutable after construction; steps are ordered by number.
    Guarantees: numbering is ``1..N`` with no gaps; group membership is
    consistent in both directions.
    """

    steps: tuple[WizardStep, ...]
    groups: tuple[WizardStepGroup, ...] = ()

    def __post_init__(self) -> None:
        steps = tuple(sorted(self.steps, key=lambda s: s.number))
        object.__setattr__(self, "steps", steps)
        object.__setattr__(self, "groups", tuple(self.groups))

        if not steps:
            raise StepGraphError("at least one step is required")
        numbers = [s.number for s in steps]
        if numbers != list(range(1, len(steps) + 1)):
            raise StepGraphError(f"step numbers must be 1..{len(steps)}, got {numbers}")

        group_ids = [g.group_id for g in self.groups]
        if len(set(group_ids)) != len(group_ids):
            raise StepGraphError("duplicate group id")
        if self.groups:
            known = set(group_ids)
            for step in steps:
                if step.group_id not in known:
                    raise StepGraphError(
                        f"step {step.number} refers to unknown group {step.group_id!r}"
                    )
            for group in self.groups:
                for member in group.member_steps:
                    if member not in numbers:
                        raise StepGraphError(
                            f"group {group.group_id!r} lists unknown step {member}"
                        )
                    if steps[member - 1].group_id != group.group_id:
                        raise StepGraphError(
                            f"step {member} is listed by group {group.group_id!r} "
                            f"but declares group {steps[member - 1].group_id!r}"
                        )

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[WizardStep]:
        return iter(self.steps)

    @property
    def step_numbers(self) -> tuple[int, ...]:
        return tuple(s.number for s in self.steps)

    def contains(self, number: int) -> bool:
        return 1 <= number <= len(self.steps)

    def step(self, number: int) -> WizardStep:
        if not self.contains(number):
            raise UnknownStepError(number, len(self.steps))
        return self.steps[number - 1]

    def group_of(self, number: int) -> WizardStepGroup | None:
        group_id = self.step(number).group_id
        for group in self.groups:
            if group.group_id == group_id:
                return group
        return None

    def titles_for(self, numbers: tuple[int, ...] | list[int]) -> tuple[str, ...]:
        return tuple(self.step(n).title for n in numbers)


@dataclass(frozen=True)
class StepRecord:
    """
    What a session remembers about one step.

    ``validation_status`` is the status resolved at the last transition; it
    is recomputed, never edited directly.
    """

    completed: bool = False
    skipped: bool = False
    visited: bool = False
    validation_status: StepStatus = StepStatus.NOT_VISITED
    last_errors: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.completed and self.skipped:
            raise ValueError("A step cannot be both completed and skipped")
        if not isinstance(self.validation_status, StepStatus):
            object.__setattr__(self, "validation_status", StepStatus(self.validation_status))
        object.__setattr__(self, "last_errors", dict(self.last_errors))

    @property
    def has_errors(self) -> bool:
        return bool(self.last_errors)


@dataclass(frozen=True)
class WizardSession:
    """
    State of one operator's pass through the wizard.

    Contract: replaced wholesale by every transition; never mutated.
    Guarantees: one record per graph step; ``active_step`` has a record.
    """

    active_step: int
    records: Mapping[int, StepRecord]
    data_bag: Mapping[str, Any] = field(default_factory=dict)
    last_modified_step: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", dict(self.records))
        object.__setattr__(self, "data_bag", dict(self.data_bag))
        if self.active_step not in self.records:
            raise UnknownStepError(self.active_step, len(self.records))

    @property
    def step_count(self) -> int:
        return len(self.records)

    def record(self, number: int) -> StepRecord:
        try:
            return self.records[number]
        except KeyError:
            raise UnknownStepError(number, len(self.records)) from None

    def get(self, key: str, default: Any = None) -> Any:
        return self.data_bag.get(key, default)


@dataclass(frozen=True)
class StepValidity:
    """Submission-gate summary: ``{isValid, invalidSteps}``."""

    is_valid: bool
    invalid_steps: tuple[int, ...] = ()

    def __bool__(self) -> bool:
        return self.is_valid


@dataclass(frozen=True)
class ProgressSummary:
    completed: int
    visited: int
    skipped: int
    total: int
    has_errors: bool
    percentage: int

    @property
    def is_complete(self) -> bool:
        return self.completed == self.total


@dataclass(frozen=True)
class GroupProgress:
    group_id: str
    title: str
    completed_steps: int
    total_steps: int
    percentage: int
    is_active: bool

    @property
    def is_complete(self) -> bool:
        return self.percentage == 100
