"""
Shared fixtures for the booking kernel tests.

Logging is configured once per run at DEBUG so engine traces are emitted;
``captured_logs`` hands tests the JSON records of their own calls.  Service
tests get a throwaway in-memory SQLite database.
"""

import json
import logging
from collections.abc import Iterator
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from booking_engines.allocation import AllocationEngine
from booking_engines.conversion import PaymentPolicy
from booking_engines.validation_rules import RuleBook
from booking_engines.wizard_session import WizardNavigator
from booking_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from booking_kernel.domain.clock import DeterministicClock
from booking_kernel.logging_config import (
    ROOT_LOGGER,
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from tests.factories import make_graph, required_rule

DESK_OPERATOR_ID = uuid4()


@pytest.fixture(autouse=True, scope="session")
def _structured_logging():
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _isolated_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Records logged under ``booking_kernel`` during the test, parsed from JSON.

        def test_refusal(allocation_engine, captured_logs):
            allocation_engine.remove_line(allocation, 0)
            assert captured_logs()[-1]["message"] == "payment_line_removal_refused"
    """
    buffer = StringIO()
    handler = logging.StreamHandler(buffer)
    handler.setFormatter(StructuredFormatter(include_traceback=False))
    kernel_logger = logging.getLogger(ROOT_LOGGER)
    level = kernel_logger.level
    kernel_logger.setLevel(logging.DEBUG)
    kernel_logger.addHandler(handler)

    def read() -> list[dict]:
        return [json.loads(line) for line in buffer.getvalue().splitlines() if line]

    yield read

    kernel_logger.removeHandler(handler)
    kernel_logger.setLevel(level)


@pytest.fixture
def db_session() -> Iterator[Session]:
    init_engine_from_url("sqlite:///:memory:")
    create_tables()
    session = get_session()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        drop_tables()
        reset_engine()


@pytest.fixture
def test_actor_id():
    return DESK_OPERATOR_ID


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def payment_policy() -> PaymentPolicy:
    return PaymentPolicy.default()


@pytest.fixture
def allocation_engine(payment_policy) -> AllocationEngine:
    return AllocationEngine(payment_policy)


@pytest.fixture
def seven_step_navigator() -> WizardNavigator:
    """Seven steps; step n requires a field named ``field_<n>``."""
    rules = RuleBook.from_rule_sets([required_rule(n, f"field_{n}") for n in range(1, 8)])
    return WizardNavigator(make_graph(7), rules)


@pytest.fixture
def complete_data_bag() -> dict:
    return {f"field_{n}": f"value {n}" for n in range(1, 8)}
