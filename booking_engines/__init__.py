"""
Module: booking_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    booking engines: wizard step progression and multi-source payment
    allocation.  This is the canonical import surface for
    booking_services and for callers driving a booking.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import booking_kernel (domain, exceptions, logging).
    MUST NOT import booking_services or booking_config.

Invariants enforced:
    - Purity: engines never read the clock, files or the database.
    - Decimal-only arithmetic: amounts are Money; floats are rejected.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from booking_engines import AllocationEngine, WizardNavigator
"""

from booking_engines.allocation import AllocationEngine, AllocationState, PaymentSubmission
from booking_engines.allocation_validator import (
    AllocationValidation,
    format_money,
    validate_allocation,
)
from booking_engines.conversion import ConversionPolicy, PaymentPolicy
from booking_engines.funding_catalog import FundingSourceCatalog
from booking_engines.pricing import PricingPolicy, PricingSummary, rental_days, summarize_pricing
from booking_engines.step_status import resolve_status
from booking_engines.tracer import compute_input_fingerprint, traced_engine
from booking_engines.validation_rules import (
    FieldRule,
    RuleBook,
    RuleKind,
    ValidationRuleSet,
    is_required,
)
from booking_engines.wizard_session import PAYMENT_ALLOCATED_FIELD, WizardNavigator

__all__ = [
    "AllocationEngine",
    "AllocationState",
    "AllocationValidation",
    "ConversionPolicy",
    "FieldRule",
    "FundingSourceCatalog",
    "PAYMENT_ALLOCATED_FIELD",
    "PaymentPolicy",
    "PaymentSubmission",
    "PricingPolicy",
    "PricingSummary",
    "RuleBook",
    "RuleKind",
    "ValidationRuleSet",
    "WizardNavigator",
    "compute_input_fingerprint",
    "format_money",
    "is_required",
    "rental_days",
    "resolve_status",
    "summarize_pricing",
    "traced_engine",
    "validate_allocation",
]
