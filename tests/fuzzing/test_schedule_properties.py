"""
Hypothesis property tests for the schedule engines.

Properties checked:
- Generated schedules cover the agreement range contiguously and are
  deterministic
- Status projection follows the priority rules and never changes amounts
- Payment allocation conserves the payment and never overpays a row
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from hypothesis import HealthCheck, assume, given, settings
from hypothesis import strategies as st

from rental_engines.allocation import apply_payment, settle_schedules
from rental_engines.schedule import generate_schedule, resolve_end_date
from rental_engines.status import project_status, total_outstanding
from rental_engines.types import PaymentSchedule, RentalAgreement, ScheduleStatus

pytestmark = pytest.mark.slow

BASE_DATE = date(2020, 1, 1)

dates = st.dates(min_value=date(2000, 1, 1), max_value=date(2040, 12, 31))

money = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("100000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

non_negative_money = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("100000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


@st.composite
def agreements(draw):
    start = draw(dates)
    period = draw(st.sampled_from(["day", "month"]))
    span = draw(st.integers(min_value=0, max_value=400 if period == "day" else 3000))
    return RentalAgreement(
        id="agreement-h",
        contract_number="RA-H",
        start_date=start,
        end_date=start + timedelta(days=span),
        rental_amount=draw(non_negative_money),
        rental_period=period,
    )


@st.composite
def schedule_rows(draw, max_rows=8):
    count = draw(st.integers(min_value=0, max_value=max_rows))
    rows = []
    for index in range(count):
        due = BASE_DATE + timedelta(days=draw(st.integers(min_value=0, max_value=365)))
        amount_due = draw(non_negative_money)
        paid_fraction = draw(st.sampled_from(["0", "0.25", "0.5", "1"]))
        amount_paid = (amount_due * Decimal(paid_fraction)).quantize(Decimal("0.01"))
        rows.append(
            PaymentSchedule(
                rental_agreement_id="agreement-h",
                contract_number="RA-H",
                due_date=due,
                # Distinct period starts so rows can be matched back
                billing_period_start=BASE_DATE + timedelta(days=1000 + index),
                billing_period_end=BASE_DATE + timedelta(days=1000 + index),
                amount_due=amount_due,
                amount_paid=amount_paid,
                id=f"row-{index}",
            )
        )
    return rows


class TestGeneratorProperties:
    """Coverage and determinism of generated schedules."""

    @given(agreement=agreements())
    @settings(max_examples=100, deadline=None)
    def test_periods_cover_range(self, agreement):
        rows = generate_schedule(agreement)

        assert rows[0].billing_period_start == agreement.start_date
        assert rows[-1].billing_period_end == agreement.end_date
        for previous, current in zip(rows, rows[1:]):
            assert current.billing_period_start == previous.billing_period_end + timedelta(days=1)
        for row in rows:
            assert row.billing_period_start <= row.billing_period_end
            assert row.due_date == row.billing_period_start
            assert row.amount_due == agreement.rental_amount

    @given(agreement=agreements())
    @settings(max_examples=50, deadline=None)
    def test_deterministic(self, agreement):
        assert generate_schedule(agreement) == generate_schedule(agreement)

    @given(start=dates, months=st.integers(min_value=1, max_value=120))
    @settings(max_examples=100, deadline=None)
    def test_month_duration_gives_that_many_rows(self, start, months):
        assume(start.day <= 28)
        end = resolve_end_date(start, months, "months")
        agreement = RentalAgreement(
            id="a",
            contract_number="RA",
            start_date=start,
            end_date=end,
            rental_amount="10",
            rental_period="month",
        )
        assert len(generate_schedule(agreement)) == months

    @given(start=dates, months=st.integers(min_value=1, max_value=120))
    @settings(max_examples=100, deadline=None)
    def test_clamped_month_steps_never_lose_a_period(self, start, months):
        """Starts on the 29th to 31st may clamp and then add periods, never drop them."""
        end = resolve_end_date(start, months, "months")
        agreement = RentalAgreement(
            id="a",
            contract_number="RA",
            start_date=start,
            end_date=end,
            rental_amount="10",
            rental_period="month",
        )
        rows = generate_schedule(agreement)

        assert len(rows) >= months
        for previous, current in zip(rows, rows[1:]):
            assert current.billing_period_start.day <= previous.billing_period_start.day

    @given(start=dates, days=st.integers(min_value=1, max_value=500))
    @settings(max_examples=100, deadline=None)
    def test_day_duration_gives_that_many_rows(self, start, days):
        end = resolve_end_date(start, days, "days")
        agreement = RentalAgreement(
            id="a",
            contract_number="RA",
            start_date=start,
            end_date=end,
            rental_amount="10",
            rental_period="day",
        )
        assert len(generate_schedule(agreement)) == days


class TestStatusProperties:
    """Projection rules hold for arbitrary rows and dates."""

    @given(rows=schedule_rows(), offset=st.integers(min_value=-30, max_value=730))
    @settings(max_examples=150, deadline=None)
    def test_status_rules(self, rows, offset):
        as_of = BASE_DATE + timedelta(days=offset)
        projected = project_status(rows, as_of)

        assert len(projected) == len(rows)
        for before, after in zip(rows, projected):
            assert after.amount_due == before.amount_due
            assert after.amount_paid == before.amount_paid
            assert after.balance == after.amount_due - after.amount_paid

            late = (as_of - after.due_date).days
            if after.amount_paid >= after.amount_due:
                assert after.status == ScheduleStatus.PAID
                assert not after.is_overdue
            elif after.amount_paid > 0:
                assert after.status == ScheduleStatus.PARTIAL
                assert after.is_overdue == (late > 0)
            elif late > 0:
                assert after.status == ScheduleStatus.OVERDUE
            else:
                assert after.status == ScheduleStatus.PENDING

            assert after.is_overdue == (after.days_overdue > 0)
            if after.is_overdue:
                assert after.days_overdue == late

    @given(rows=schedule_rows(), offset=st.integers(min_value=0, max_value=400))
    @settings(max_examples=50, deadline=None)
    def test_projection_is_idempotent(self, rows, offset):
        as_of = BASE_DATE + timedelta(days=offset)
        once = project_status(rows, as_of)
        assert project_status(once, as_of) == once


class TestAllocationProperties:
    """Allocation conserves money and respects row balances."""

    @given(rows=schedule_rows(), amount=money)
    @settings(max_examples=200, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_conservation(self, rows, amount):
        result = apply_payment(rows, amount, BASE_DATE)

        assert result.total_payment == amount
        assert result.allocated_amount + result.remaining_amount == amount
        assert sum((a.amount_applied for a in result.allocations), Decimal("0")) == (
            result.allocated_amount
        )
        assert result.remaining_amount >= 0

    @given(rows=schedule_rows(), amount=money)
    @settings(max_examples=200, deadline=None)
    def test_rows_never_overpaid(self, rows, amount):
        result = apply_payment(rows, amount, BASE_DATE)

        for allocation in result.allocations:
            assert allocation.amount_applied > 0
            assert allocation.new_balance >= 0
            assert allocation.new_amount_paid - allocation.previous_amount_paid == (
                allocation.amount_applied
            )

    @given(rows=schedule_rows(), amount=money)
    @settings(max_examples=200, deadline=None)
    def test_outstanding_drops_by_allocated(self, rows, amount):
        before = total_outstanding(project_status(rows, BASE_DATE))
        result = apply_payment(rows, amount, BASE_DATE)
        after = total_outstanding(project_status(settle_schedules(rows, result), BASE_DATE))

        assert before - after == result.allocated_amount
        if result.remaining_amount > 0:
            assert after == 0

    @given(rows=schedule_rows(max_rows=6), amount=money)
    @settings(max_examples=150, deadline=None)
    def test_oldest_first(self, rows, amount):
        """Only the last touched row may be left with a balance."""
        assume(rows)
        result = apply_payment(rows, amount, BASE_DATE)

        due_by_id = {row.id: row.due_date for row in rows}
        touched_dates = [due_by_id[a.schedule_id] for a in result.allocations]
        assert touched_dates == sorted(touched_dates)
        for allocation in result.allocations[:-1]:
            assert allocation.new_balance == 0
