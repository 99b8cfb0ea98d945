"""
Module: rental_engines.allocation
Responsibility:
    Allocate an incoming rent payment across outstanding schedule rows,
    oldest due date first, and report per-row deltas plus any over-payment.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Persisting the deltas together with the payment ledger entry is the
    caller's job (see rental_modules.schedules.service).

Invariants enforced:
    - Conservation: allocated_amount + remaining_amount == total_payment,
      and the applied amounts sum to allocated_amount, exactly.
    - Ordering: stable sort by due_date; equal due dates keep input order.
    - Settled rows (status paid, or amount_paid >= amount_due) receive
      nothing.
    - No rounding: amounts carry at most two fraction digits on the way in,
      so Decimal subtraction never needs it.

Failure modes:
    - InvalidAmountError when the amount is not a finite number, is not
      positive, or has more than two fraction digits.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from datetime import date, datetime
from decimal import Decimal

from rental_engines.tracer import traced_engine
from rental_engines.types import AllocationResult, PaymentSchedule, ScheduleAllocation
from rental_kernel.domain.values import (
    MONEY_DECIMAL_PLACES,
    ZERO,
    fraction_digits,
    to_date,
    to_decimal,
)
from rental_kernel.exceptions import InvalidAmountError
from rental_kernel.logging_config import get_logger

logger = get_logger("engines.allocation")


def _payment_amount(amount: Decimal | int | float | str) -> Decimal:
    try:
        total = to_decimal(amount)
    except ValueError as e:
        raise InvalidAmountError(amount, "amount must be a finite number") from e
    if total <= ZERO:
        raise InvalidAmountError(amount)
    if fraction_digits(total) > MONEY_DECIMAL_PLACES:
        raise InvalidAmountError(
            amount, f"amount must have at most {MONEY_DECIMAL_PLACES} fraction digits"
        )
    return total


@traced_engine(
    "payment_allocator", "1.0", fingerprint_fields=("amount", "payment_date")
)
def apply_payment(
    schedules: Sequence[PaymentSchedule],
    amount: Decimal | int | float | str,
    payment_date: date | datetime | str,
) -> AllocationResult:
    """
    Allocate ``amount`` to ``schedules`` oldest-due first.

    Args:
        schedules: Rows of one agreement (any order).
        amount: Positive payment amount, at most two fraction digits.
        payment_date: Date the payment was received.

    Returns:
        AllocationResult; ``remaining_amount`` is the over-payment, if any.
    """
    total = _payment_amount(amount)
    paid_on = to_date(payment_date)

    remaining = total
    allocations: list[ScheduleAllocation] = []

    for schedule in sorted(schedules, key=lambda s: s.due_date):
        if remaining <= ZERO:
            break
        if schedule.is_settled:
            continue

        row_balance = schedule.amount_due - schedule.amount_paid
        applied = min(remaining, row_balance)
        remaining -= applied

        allocations.append(
            ScheduleAllocation(
                schedule_id=schedule.id,
                amount_applied=applied,
                previous_amount_paid=schedule.amount_paid,
                new_amount_paid=schedule.amount_paid + applied,
                previous_balance=row_balance,
                new_balance=row_balance - applied,
                billing_period_start=schedule.billing_period_start,
                billing_period_end=schedule.billing_period_end,
            )
        )

    allocated = total - remaining
    assert allocated + remaining == total
    assert sum((a.amount_applied for a in allocations), ZERO) == allocated

    logger.info(
        "payment_allocated",
        extra={
            "total_payment": str(total),
            "allocated_amount": str(allocated),
            "remaining_amount": str(remaining),
            "rows_touched": len(allocations),
            "payment_date": paid_on.isoformat(),
        },
    )

    return AllocationResult(
        total_payment=total,
        allocated_amount=allocated,
        remaining_amount=remaining,
        payment_date=paid_on,
        allocations=tuple(allocations),
    )


def settle_schedules(
    schedules: Sequence[PaymentSchedule],
    result: AllocationResult,
    payment_id: str | None = None,
) -> list[PaymentSchedule]:
    """
    Apply an allocation result to in-memory rows.

    Rows are matched on ``billing_period_start``, which is unique within
    one agreement.  Untouched rows are returned unchanged; touched rows get
    the new ``amount_paid`` and, when given, ``payment_id``.  Status fields
    are not re-projected.
    """
    by_period = {a.billing_period_start: a for a in result.allocations}
    settled: list[PaymentSchedule] = []
    for schedule in schedules:
        allocation = by_period.get(schedule.billing_period_start)
        if allocation is None:
            settled.append(schedule)
            continue
        changes: dict[str, object] = {"amount_paid": allocation.new_amount_paid}
        if payment_id is not None:
            changes["payment_id"] = payment_id
        settled.append(dataclasses.replace(schedule, **changes))
    return settled
