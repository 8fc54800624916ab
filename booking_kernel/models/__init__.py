"""ORM models for the booking kernel."""

from booking_kernel.models.split_payment import SplitPaymentRecord
from booking_kernel.models.wizard_draft import DRAFT_FORMAT_VERSION, WizardDraft

__all__ = [
    "DRAFT_FORMAT_VERSION",
    "SplitPaymentRecord",
    "WizardDraft",
]
