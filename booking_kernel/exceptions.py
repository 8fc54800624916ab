"""
Typed Exception Hierarchy for the Booking Kernel.

===============================================================================
WHAT IS (AND IS NOT) AN EXCEPTION HERE
===============================================================================

Most things that go wrong while an operator fills in a booking are NOT
exceptions. A missing customer, a wallet line above the wallet balance, a
loyalty redemption under the minimum: these are expected, recoverable states
and are returned as data (error maps, error lists) by the validators.

Exceptions are reserved for:
  1. Programmer errors at a public boundary (unknown step number, payment
     line index out of range, a payload that does not match its method).
  2. The final submission gate, which is the ONLY place allowed to refuse
     the operator outright.
  3. Failures of external collaborators (payment gateway, draft storage).
  4. Invalid configuration.

Every exception carries a machine-readable ``code`` class attribute and its
context as attributes, never only inside the message string.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BookingKernelError (base)
    |
    +-- WizardError
    |   +-- UnknownStepError
    |   +-- StepsIncompleteError
    |   +-- StepGraphError
    |
    +-- AllocationError
    |   +-- PaymentLineNotFoundError
    |   +-- PayloadMismatchError
    |
    +-- SettlementError
    |   +-- GatewayError
    |   +-- PaymentRecordNotFoundError
    |
    +-- ConfigurationError
    |
    +-- DraftError
        +-- DraftCorruptError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                      | When Raised
----------------|---------------------------|-------------------------------------------
Wizard          | UNKNOWN_STEP              | Step number not in the step graph
                | STEPS_INCOMPLETE          | Submission with invalid required steps
                | INVALID_STEP_GRAPH        | Graph definition is inconsistent
----------------|---------------------------|-------------------------------------------
Allocation      | PAYMENT_LINE_NOT_FOUND    | Line index outside the allocation
                | PAYLOAD_MISMATCH          | Method payload does not fit the method
----------------|---------------------------|-------------------------------------------
Settlement      | GATEWAY_ERROR             | Gateway refused or failed a charge
                | PAYMENT_RECORD_NOT_FOUND  | Split payment record id unknown
----------------|---------------------------|-------------------------------------------
Configuration   | INVALID_CONFIGURATION     | Rate, threshold or rule value invalid
----------------|---------------------------|-------------------------------------------
Draft           | DRAFT_CORRUPT             | Persisted draft cannot be hydrated
"""


class BookingKernelError(Exception):
    """
    Base exception for all booking kernel errors.

    All subclasses must have a ``code`` class attribute.
    """

    code: str = "BOOKING_KERNEL_ERROR"


# Wizard exceptions


class WizardError(BookingKernelError):
    """Base exception for step-progression errors."""

    code: str = "WIZARD_ERROR"


class UnknownStepError(WizardError):
    """Step number is not part of the step graph."""

    code: str = "UNKNOWN_STEP"

    def __init__(self, step: int, step_count: int):
        self.step = step
        self.step_count = step_count
        super().__init__(f"Unknown step {step}: graph has steps 1..{step_count}")


class StepsIncompleteError(WizardError):
    """
    Final submission refused because required steps are not valid.

    The message names every invalid step by title so the operator can act
    on it directly.
    """

    code: str = "STEPS_INCOMPLETE"

    def __init__(self, invalid_steps: tuple[int, ...], step_titles: tuple[str, ...]):
        self.invalid_steps = invalid_steps
        self.step_titles = step_titles
        super().__init__(
            "Cannot submit: complete these steps first: " + ", ".join(step_titles)
        )


class StepGraphError(WizardError):
    """Step graph definition is inconsistent."""

    code: str = "INVALID_STEP_GRAPH"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid step graph: {reason}")


# Allocation exceptions


class AllocationError(BookingKernelError):
    """Base exception for payment allocation errors."""

    code: str = "ALLOCATION_ERROR"


class PaymentLineNotFoundError(AllocationError):
    """Payment line index is outside the allocation."""

    code: str = "PAYMENT_LINE_NOT_FOUND"

    def __init__(self, index: int, line_count: int):
        self.index = index
        self.line_count = line_count
        super().__init__(
            f"Payment line {index} not found: allocation has {line_count} line(s)"
        )


class PayloadMismatchError(AllocationError):
    """A method payload was attached to a line of a different method."""

    code: str = "PAYLOAD_MISMATCH"

    def __init__(self, method: str, payload_type: str):
        self.method = method
        self.payload_type = payload_type
        super().__init__(f"Payload {payload_type} is not valid for method {method}")


# Settlement exceptions


class SettlementError(BookingKernelError):
    """Base exception for settlement errors."""

    code: str = "SETTLEMENT_ERROR"


class GatewayError(SettlementError):
    """The payment gateway failed or refused an operation."""

    code: str = "GATEWAY_ERROR"

    def __init__(self, method: str, reason: str):
        self.method = method
        self.reason = reason
        super().__init__(f"Gateway failure for {method}: {reason}")


class PaymentRecordNotFoundError(SettlementError):
    """Split payment record id does not exist."""

    code: str = "PAYMENT_RECORD_NOT_FOUND"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Split payment record not found: {record_id}")


# Configuration exceptions


class ConfigurationError(BookingKernelError):
    """A configuration value is invalid."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration for {key}: {reason}")


# Draft exceptions


class DraftError(BookingKernelError):
    """Base exception for wizard draft storage errors."""

    code: str = "DRAFT_ERROR"


class DraftCorruptError(DraftError):
    """A persisted draft cannot be hydrated into a session."""

    code: str = "DRAFT_CORRUPT"

    def __init__(self, draft_key: str, reason: str):
        self.draft_key = draft_key
        self.reason = reason
        super().__init__(f"Draft {draft_key} cannot be loaded: {reason}")
