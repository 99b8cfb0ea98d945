"""
Pytest fixtures for the rental schedule test suite.

Provides:
- Structured logging configuration and log capture
- In-memory SQLite database sessions (fresh schema per test)
- Deterministic clock and actor id
- Agreement and schedule factories

Environment Variables:
- DATABASE_URL: optional database URL for the ``session`` fixture.
  Defaults to in-memory SQLite ("sqlite://").
"""

import json
import logging
import os
from collections.abc import Generator
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from rental_config.schema import DatabaseConfig
from rental_engines.types import PaymentSchedule, RentalAgreement
from rental_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_config,
    reset_engine,
)
from rental_kernel.domain.clock import DeterministicClock
from rental_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()

DEFAULT_DATABASE_URL = "sqlite://"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture rental_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            generate_schedule(agreement)
            logs = captured_logs()
            assert any(r["message"] == "schedule_generated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("rental_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


@pytest.fixture
def db_engine():
    """Engine with a freshly created schema; torn down after the test."""
    eng = init_engine_from_config(DatabaseConfig(url=get_database_url()))
    create_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing."""
    sess = get_session()
    yield sess
    sess.rollback()
    sess.close()


# =============================================================================
# Clock and actor
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    """Clock fixed at 2024-01-15 noon UTC."""
    return DeterministicClock.on(date(2024, 1, 15))


@pytest.fixture
def test_actor_id():
    return TEST_ACTOR_ID


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_agreement():
    """Factory for RentalAgreement values with monthly defaults."""

    def _make(
        start_date: date | str = date(2024, 1, 1),
        end_date: date | str | None = date(2024, 3, 31),
        rental_amount: Decimal | str | int = Decimal("300.00"),
        rental_period: str = "month",
        **overrides,
    ) -> RentalAgreement:
        values = {
            "id": overrides.pop("id", uuid4()),
            "contract_number": overrides.pop("contract_number", "RA-2024-001"),
            "start_date": start_date,
            "end_date": end_date,
            "rental_amount": rental_amount,
            "rental_period": rental_period,
        }
        values.update(overrides)
        return RentalAgreement(**values)

    return _make


@pytest.fixture
def make_schedule():
    """Factory for single PaymentSchedule rows (one billing day each)."""

    def _make(
        due_date: date,
        amount_due: Decimal | str = Decimal("100.00"),
        amount_paid: Decimal | str = Decimal("0"),
        **overrides,
    ) -> PaymentSchedule:
        values = {
            "rental_agreement_id": overrides.pop("rental_agreement_id", "agreement-1"),
            "contract_number": overrides.pop("contract_number", "RA-2024-001"),
            "due_date": due_date,
            "billing_period_start": overrides.pop("billing_period_start", due_date),
            "billing_period_end": overrides.pop("billing_period_end", due_date),
            "amount_due": amount_due,
            "amount_paid": amount_paid,
        }
        values.update(overrides)
        return PaymentSchedule(**values)

    return _make
