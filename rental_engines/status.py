"""
Module: rental_engines.status
Responsibility:
    Project the live status of schedule rows as of a date, and answer the
    read-side questions asked of a projected schedule (next due row,
    overdue rows, pending rows, outstanding total, summary).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Every path that surfaces schedules to a consumer goes through
    ``project_status`` first; stored status columns are never trusted.

Invariants enforced:
    - Amounts are never changed: ``amount_due`` and ``amount_paid`` of the
      output equal those of the input.
    - ``balance == amount_due - amount_paid`` on every output row.
    - Status rules, in priority order:
        1. amount_paid >= amount_due          -> paid
        2. amount_paid > 0                    -> partial (overdue if late)
        3. as_of_date > due_date              -> overdue
        4. otherwise                          -> pending
    - Day granularity: time-of-day on ``as_of_date`` is ignored.

Failure modes:
    - TypeError / ValueError from ``to_date`` for an unreadable as-of date.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Sequence
from datetime import date, datetime
from decimal import Decimal

from rental_engines.tracer import traced_engine
from rental_engines.types import PaymentSchedule, ScheduleStatus, ScheduleSummary
from rental_kernel.domain.values import ZERO, to_date
from rental_kernel.logging_config import get_logger

logger = get_logger("engines.status")


def project_row(schedule: PaymentSchedule, as_of: date) -> PaymentSchedule:
    """Recompute the derived fields of a single row."""
    days_late = (as_of - schedule.due_date).days

    if schedule.amount_paid >= schedule.amount_due:
        status, overdue, days = ScheduleStatus.PAID, False, 0
    elif schedule.amount_paid > ZERO:
        status = ScheduleStatus.PARTIAL
        overdue = days_late > 0
        days = days_late if overdue else 0
    elif days_late > 0:
        status, overdue, days = ScheduleStatus.OVERDUE, True, days_late
    else:
        status, overdue, days = ScheduleStatus.PENDING, False, 0

    # replace() re-runs __post_init__, which recomputes balance
    return dataclasses.replace(
        schedule, status=status, is_overdue=overdue, days_overdue=days
    )


@traced_engine("schedule_status", "1.0", fingerprint_fields=("as_of_date",))
def project_status(
    schedules: Iterable[PaymentSchedule],
    as_of_date: date | datetime | str,
) -> list[PaymentSchedule]:
    """
    Return new rows with status, overdue flags and balance as of a date.

    The input is not modified and its order is kept.
    """
    as_of = to_date(as_of_date)
    projected = [project_row(s, as_of) for s in schedules]
    logger.debug(
        "schedule_status_projected",
        extra={"as_of_date": as_of.isoformat(), "row_count": len(projected)},
    )
    return projected


def next_due_payment(schedules: Sequence[PaymentSchedule]) -> PaymentSchedule | None:
    """Earliest-due row that is not paid, or None when everything is settled."""
    for schedule in sorted(schedules, key=lambda s: s.due_date):
        if not schedule.is_settled:
            return schedule
    return None


def overdue_payments(schedules: Iterable[PaymentSchedule]) -> list[PaymentSchedule]:
    return [s for s in schedules if s.is_overdue]


def pending_payments(schedules: Iterable[PaymentSchedule]) -> list[PaymentSchedule]:
    """Rows still expecting money: pending or partially paid."""
    return [
        s
        for s in schedules
        if s.status in (ScheduleStatus.PENDING, ScheduleStatus.PARTIAL)
    ]


def total_outstanding(schedules: Iterable[PaymentSchedule]) -> Decimal:
    return sum((s.balance for s in schedules if not s.is_settled), ZERO)


def summarize(schedules: Sequence[PaymentSchedule]) -> ScheduleSummary:
    """
    Counts per status and money totals.

    Expects projected rows; stored statuses are counted as they are.
    """
    counts = {status: 0 for status in ScheduleStatus}
    for schedule in schedules:
        counts[schedule.status] += 1

    return ScheduleSummary(
        total_periods=len(schedules),
        pending_count=counts[ScheduleStatus.PENDING],
        partial_count=counts[ScheduleStatus.PARTIAL],
        overdue_count=counts[ScheduleStatus.OVERDUE],
        paid_count=counts[ScheduleStatus.PAID],
        total_due=sum((s.amount_due for s in schedules), ZERO),
        total_paid=sum((s.amount_paid for s in schedules), ZERO),
        total_outstanding=total_outstanding(schedules),
        total_late_fees=sum((s.late_fee for s in schedules), ZERO),
    )
