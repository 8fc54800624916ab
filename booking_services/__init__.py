"""
booking_services -- I/O-bearing orchestration around the pure booking engines.

Services are the only layer that touches the database or external payment
gateways.  Each works inside a caller-supplied SQLAlchemy session and only
flushes; transaction boundaries belong to the caller (see
``booking_kernel.db.session_scope``).
"""

from booking_services.draft_service import DraftService
from booking_services.settlement_service import (
    PaymentGateway,
    SettlementResult,
    SettlementService,
)

__all__ = [
    "DraftService",
    "PaymentGateway",
    "SettlementResult",
    "SettlementService",
]
