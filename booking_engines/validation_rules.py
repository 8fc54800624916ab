"""
Module: booking_engines.validation_rules
Responsibility:
    Per-step field validation for the booking wizard.  A step's rule set is
    evaluated against the shared data bag and yields a field -> message map.
    Also owns ``is_required``, the single predicate deciding whether a
    conditional step applies to the current booking.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Rule sets are compiled from configuration (``booking_config``) and
    handed to the wizard navigator; engines never parse YAML.

Invariants enforced:
    - Evaluating rules never raises on bad data: an unparseable value is a
      field error, not an exception.
    - The first failing rule for a field wins; later rules for the same
      field are not evaluated.
    - A step whose controlling flag is unset produces no errors, and the
      submission gate treats it as not required.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from booking_kernel.domain.wizard import WizardStep

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

FieldErrors = dict[str, str]
CustomCheck = Callable[[Mapping[str, Any]], Mapping[str, str]]


class RuleKind(str, Enum):
    REQUIRED = "required"
    ACCEPTED = "accepted"
    AFTER = "after"
    EMAIL = "email"
    RANGE = "range"
    MIN_ITEMS = "min_items"


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return False


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def _as_decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


@dataclass(frozen=True)
class FieldRule:
    """
    One check on one data bag field.

    ``when_field`` makes the rule conditional: it only applies while that
    field is truthy or, when ``when_in`` is given, while it holds one of
    those values.
    """

    field: str
    kind: RuleKind
    message: str
    when_field: str | None = None
    when_in: tuple[Any, ...] = ()
    other_field: str | None = None
    minimum: Decimal | None = None
    maximum: Decimal | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, RuleKind):
            object.__setattr__(self, "kind", RuleKind(self.kind))
        object.__setattr__(self, "when_in", tuple(self.when_in))
        if self.kind is RuleKind.AFTER and not self.other_field:
            raise ValueError(f"'after' rule on {self.field} needs other_field")

    def applies(self, data_bag: Mapping[str, Any]) -> bool:
        if self.when_field is None:
            return True
        controller = data_bag.get(self.when_field)
        if self.when_in:
            return controller in self.when_in
        return bool(controller) and not is_blank(controller)

    def check(self, data_bag: Mapping[str, Any]) -> str | None:
        """Return the message when the rule fails, else None."""
        if not self.applies(data_bag):
            return None
        value = data_bag.get(self.field)

        match self.kind:
            case RuleKind.REQUIRED:
                return self.message if is_blank(value) else None
            case RuleKind.ACCEPTED:
                return None if value is True else self.message
            case RuleKind.AFTER:
                other = data_bag.get(self.other_field)
                if is_blank(value) or is_blank(other):
                    return None
                later, earlier = _as_datetime(value), _as_datetime(other)
                if later is None or earlier is None:
                    return self.message
                if (later.tzinfo is None) != (earlier.tzinfo is None):
                    later, earlier = later.replace(tzinfo=None), earlier.replace(tzinfo=None)
                return None if later > earlier else self.message
            case RuleKind.EMAIL:
                if is_blank(value):
                    return None
                return None if EMAIL_PATTERN.match(str(value).strip()) else self.message
            case RuleKind.RANGE:
                if is_blank(value):
                    return None
                number = _as_decimal(value)
                if number is None:
                    return self.message
                if self.minimum is not None and number < self.minimum:
                    return self.message
                if self.maximum is not None and number > self.maximum:
                    return self.message
                return None
            case RuleKind.MIN_ITEMS:
                minimum = int(self.minimum) if self.minimum is not None else 1
                items = value if isinstance(value, (list, tuple)) else ()
                return self.message if len(items) < minimum else None
        return None


@dataclass(frozen=True)
class ValidationRuleSet:
    """Ordered rules (and optional coded checks) for one step."""

    step: int
    rules: tuple[FieldRule, ...] = ()
    checks: tuple[CustomCheck, ...] = ()

    def evaluate(self, data_bag: Mapping[str, Any]) -> FieldErrors:
        errors: FieldErrors = {}
        for rule in self.rules:
            if rule.field in errors:
                continue
            message = rule.check(data_bag)
            if message is not None:
                errors[rule.field] = message
        for check in self.checks:
            for name, message in check(data_bag).items():
                errors.setdefault(name, message)
        return errors


def is_required(step: WizardStep, data_bag: Mapping[str, Any]) -> bool:
    """A step applies unless it names a controlling flag that is not set."""
    if step.required_when is None:
        return True
    return bool(data_bag.get(step.required_when))


@dataclass(frozen=True)
class RuleBook:
    """All rule sets of a wizard, keyed by step number."""

    rule_sets: Mapping[int, ValidationRuleSet] = field(default_factory=dict)

    @classmethod
    def from_rule_sets(cls, rule_sets: list[ValidationRuleSet] | tuple[ValidationRuleSet, ...]) -> RuleBook:
        return cls(rule_sets={rs.step: rs for rs in rule_sets})

    def errors_for(self, step: WizardStep, data_bag: Mapping[str, Any]) -> FieldErrors:
        if not is_required(step, data_bag):
            return {}
        rule_set = self.rule_sets.get(step.number)
        if rule_set is None:
            return {}
        return rule_set.evaluate(data_bag)
