"""
Booking configuration schema.

Defines the human-authored, reviewable source artifact for a booking flow:
the wizard's steps and groups, the per-step field rules, the payment
policy and the pricing rates.  YAML is parsed into these types by the
loader and compiled into engine objects by the compiler.

Key distinction:
  BookingConfiguration   = source artifact (human-authored, versioned)
  CompiledBookingConfig  = runtime artifact (engine objects, frozen)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

# ---------------------------------------------------------------------------
# Payment and pricing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PaymentPolicyDef:
    """Conversion, tolerance and warning thresholds for split payments."""

    currency: str
    conversion_rate: int
    min_redemption: int
    epsilon: Decimal
    default_method: str = "credit_card"
    large_amount_threshold: Decimal = Decimal("1000000")
    credit_usage_warning_ratio: Decimal = Decimal("0.80")
    points_usage_warning_ratio: Decimal = Decimal("0.90")
    max_lines_before_warning: int = 5
    small_total_threshold: Decimal = Decimal("1")


@dataclass(frozen=True)
class PricingDef:
    tax_rate: Decimal
    down_payment_rate: Decimal


# ---------------------------------------------------------------------------
# Wizard
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StepGroupDef:
    group_id: str
    title: str
    description: str = ""


@dataclass(frozen=True)
class StepDef:
    """A wizard step; ``required_when`` names the data bag flag gating it."""

    number: int
    title: str
    group: str
    description: str = ""
    required_when: str | None = None


@dataclass(frozen=True)
class StepGraphDef:
    groups: tuple[StepGroupDef, ...]
    steps: tuple[StepDef, ...]
    payment_step: int | None = None


@dataclass(frozen=True)
class FieldRuleDef:
    """
    One field rule as authored.

    ``rule`` is one of required, required_when, accepted, after, email,
    range, min_items.  ``when_field``/``when_in`` make any rule conditional.
    """

    step: int
    field: str
    rule: str
    message: str
    when_field: str | None = None
    when_in: tuple[Any, ...] = ()
    other_field: str | None = None
    minimum: Decimal | None = None
    maximum: Decimal | None = None


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BookingConfiguration:
    """
    Everything a booking flow is configured with.

    Attributes:
        config_id: Unique identifier (e.g., "reservation-aed-v1")
        version: Configuration version number
        checksum: SHA-256 of the canonical serialization of the source YAML
        payment_policy: Split payment policy
        pricing: Tax and down payment rates
        step_graph: Wizard steps and groups
        validation_rules: Field rules across all steps, in authored order
    """

    config_id: str
    version: int
    checksum: str
    payment_policy: PaymentPolicyDef
    pricing: PricingDef
    step_graph: StepGraphDef
    validation_rules: tuple[FieldRuleDef, ...] = ()
