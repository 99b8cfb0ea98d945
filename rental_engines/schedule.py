"""
Module: rental_engines.schedule
Responsibility:
    Generate the billing-period schedule of a rental agreement, and resolve
    an agreement's inclusive end date from its duration.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import rental_kernel.domain.values, rental_kernel.exceptions
    and sibling engine modules.

Invariants enforced:
    - Determinism: the same agreement always yields an equal schedule (no
      clock access, no randomness).
    - Coverage: periods are contiguous, start at ``start_date`` and the last
      one ends on ``end_date``.
    - Each month period starts one calendar month after the previous one,
      clamped to the month end; once clamped (Jan 31 to Feb 29) the day
      stays clamped (Mar 29, Apr 29).
    - Safety bound: at most ``max_periods`` rows (default 1000).

Failure modes:
    - InvalidAgreementError for a missing start or end date, an end date
      before the start date, or a rental amount that is negative or has
      more than two fraction digits.
    - GenerationLimitExceeded is issued as a warning (never raised) when
      periods remain after the bound; the partial schedule is returned.

Usage:
    from rental_engines.schedule import generate_schedule
    rows = generate_schedule(agreement)
"""

from __future__ import annotations

import dataclasses
import warnings
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from rental_engines.tracer import traced_engine
from rental_engines.types import (
    DurationUnit,
    PaymentSchedule,
    RentalAgreement,
    RentalPeriod,
)
from rental_kernel.domain.values import (
    MONEY_DECIMAL_PLACES,
    ZERO,
    fraction_digits,
    to_date,
)
from rental_kernel.exceptions import GenerationLimitExceeded, InvalidAgreementError
from rental_kernel.logging_config import get_logger

logger = get_logger("engines.schedule")

GENERATION_LIMIT = 1000

_ONE_DAY = timedelta(days=1)


def resolve_end_date(
    start_date: date | str,
    duration_value: int,
    duration_unit: DurationUnit | str,
) -> date:
    """
    Inclusive end date of an agreement that runs ``duration_value`` units.

    ``resolve_end_date(2024-01-01, 3, "months")`` is 2024-03-31 and
    ``resolve_end_date(2024-06-01, 3, "days")`` is 2024-06-03.  Month
    arithmetic clamps to the month end (2024-01-31 + 1 month = 2024-02-29).

    Raises:
        InvalidAgreementError: duration is not a positive int or the unit
            is unknown.
    """
    if isinstance(duration_value, bool) or not isinstance(duration_value, int):
        raise InvalidAgreementError(
            f"duration_value must be an integer, got {duration_value!r}"
        )
    if duration_value <= 0:
        raise InvalidAgreementError(
            f"duration_value must be positive, got {duration_value}"
        )
    try:
        unit = DurationUnit(duration_unit)
    except ValueError as e:
        raise InvalidAgreementError(f"unknown duration_unit {duration_unit!r}") from e

    start = to_date(start_date)
    if unit == DurationUnit.DAYS:
        return start + timedelta(days=duration_value) - _ONE_DAY
    return start + relativedelta(months=duration_value) - _ONE_DAY


def with_resolved_end_date(agreement: RentalAgreement) -> RentalAgreement:
    """Return the agreement with ``end_date`` filled in from its duration."""
    if agreement.end_date is not None:
        return agreement
    if agreement.start_date is None:
        raise InvalidAgreementError("start_date is required", _agreement_ref(agreement))
    if agreement.duration_value is None or agreement.duration_unit is None:
        raise InvalidAgreementError(
            "end_date or duration_value/duration_unit is required",
            _agreement_ref(agreement),
        )
    end_date = resolve_end_date(
        agreement.start_date, agreement.duration_value, agreement.duration_unit
    )
    return dataclasses.replace(agreement, end_date=end_date)


def _agreement_ref(agreement: RentalAgreement) -> str | None:
    return str(agreement.id) if agreement.id is not None else None


def _validate(agreement: RentalAgreement) -> tuple[date, date]:
    ref = _agreement_ref(agreement)
    if agreement.start_date is None:
        raise InvalidAgreementError("start_date is required", ref)
    if agreement.end_date is None:
        raise InvalidAgreementError(
            "end_date is required; resolve it from start_date and duration first",
            ref,
        )
    if agreement.end_date < agreement.start_date:
        raise InvalidAgreementError(
            f"end_date {agreement.end_date} is before start_date {agreement.start_date}",
            ref,
        )
    if agreement.rental_amount < ZERO:
        raise InvalidAgreementError(
            f"rental_amount cannot be negative: {agreement.rental_amount}", ref
        )
    if fraction_digits(agreement.rental_amount) > MONEY_DECIMAL_PLACES:
        raise InvalidAgreementError(
            f"rental_amount must have at most {MONEY_DECIMAL_PLACES} fraction digits: "
            f"{agreement.rental_amount}",
            ref,
        )
    return agreement.start_date, agreement.end_date


@traced_engine(
    "schedule_generator", "1.0", fingerprint_fields=("agreement", "max_periods")
)
def generate_schedule(
    agreement: RentalAgreement,
    max_periods: int = GENERATION_LIMIT,
) -> list[PaymentSchedule]:
    """
    Emit one pending schedule row per billing period of ``agreement``.

    Day agreements get one row per calendar day.  Month agreements step
    one calendar month from the previous period start, each period ending
    the day before the next start and the last one truncated to
    ``end_date``.  A truncated final month is still
    charged the full rental amount.

    Args:
        agreement: Agreement with both ``start_date`` and ``end_date`` set.
        max_periods: Hard stop on the number of rows emitted.

    Returns:
        Rows ordered by due date; every row has ``amount_due ==
        rental_amount`` and nothing paid.
    """
    if max_periods < 1:
        raise ValueError(f"max_periods must be at least 1, got {max_periods}")

    start, end = _validate(agreement)
    rows: list[PaymentSchedule] = []
    current = start

    while current <= end:
        if len(rows) >= max_periods:
            logger.warning(
                "generation_limit_exceeded",
                extra={
                    "agreement_id": _agreement_ref(agreement),
                    "contract_number": agreement.contract_number,
                    "limit": max_periods,
                    "next_period_start": current.isoformat(),
                },
            )
            warnings.warn(
                GenerationLimitExceeded(max_periods, agreement.contract_number),
                stacklevel=3,
            )
            break

        if agreement.rental_period == RentalPeriod.DAY:
            period_end = current
            next_start = current + _ONE_DAY
        else:
            next_start = current + relativedelta(months=1)
            period_end = min(next_start - _ONE_DAY, end)

        rows.append(
            PaymentSchedule(
                rental_agreement_id=agreement.id,
                contract_number=agreement.contract_number,
                due_date=current,
                billing_period_start=current,
                billing_period_end=period_end,
                amount_due=agreement.rental_amount,
            )
        )
        current = next_start

    logger.info(
        "schedule_generated",
        extra={
            "agreement_id": _agreement_ref(agreement),
            "rental_period": agreement.rental_period.value,
            "period_count": len(rows),
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
        },
    )
    return rows
