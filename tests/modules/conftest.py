"""
Shared fixtures for schedule module tests.

Every fixture is opt-in.  Each test declares the parent entities it depends
on in its signature, so FK ordering is visible at collection time.
"""

from datetime import date
from decimal import Decimal

import pytest

from rental_config.schema import RentalConfig
from rental_modules.schedules.service import PaymentScheduleService


@pytest.fixture
def rental_config() -> RentalConfig:
    return RentalConfig()


@pytest.fixture
def schedule_service(session, deterministic_clock, rental_config) -> PaymentScheduleService:
    """Service bound to the test session, clock fixed on 2024-01-15."""
    return PaymentScheduleService(session, clock=deterministic_clock, config=rental_config)


@pytest.fixture
def six_month_agreement(schedule_service, test_actor_id):
    """Jan..Jun 2024 at 300.00 per month, schedule generated."""
    agreement, schedules = schedule_service.create_agreement(
        contract_number="RA-2024-001",
        start_date=date(2024, 1, 1),
        end_date=date(2024, 6, 30),
        rental_amount=Decimal("300.00"),
        rental_period="month",
        actor_id=test_actor_id,
    )
    return agreement
