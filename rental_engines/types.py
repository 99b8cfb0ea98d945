"""
Module: rental_engines.types
Responsibility:
    Immutable value types shared by the schedule engines: the rental
    agreement input, one payment schedule row per billing period, and the
    allocation and summary results.

Architecture position:
    Engines -- pure value layer, zero I/O.
    May only import rental_kernel.domain.values and rental_kernel.exceptions.

Invariants enforced:
    - Every monetary field is a ``Decimal``; boundary inputs (int, str,
      float) are coerced in ``__post_init__``.
    - ``PaymentSchedule.balance`` is never set by callers; it is always
      ``amount_due - amount_paid``.
    - All types are frozen; engines produce new values with
      ``dataclasses.replace`` instead of mutating.

Failure modes:
    - InvalidAgreementError when agreement fields cannot be coerced.
    - ValueError when a schedule row carries negative amounts or an
      unknown status.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from rental_kernel.domain.values import ZERO, format_money, to_date, to_decimal
from rental_kernel.exceptions import InvalidAgreementError


class RentalPeriod(str, Enum):
    """Billing granularity of an agreement."""

    DAY = "day"
    MONTH = "month"


class DurationUnit(str, Enum):
    """Unit of ``RentalAgreement.duration_value``."""

    DAYS = "days"
    MONTHS = "months"


class ScheduleStatus(str, Enum):
    """Derived status of a schedule row."""

    PENDING = "pending"
    PARTIAL = "partial"
    OVERDUE = "overdue"
    PAID = "paid"


# Record keys accepted by RentalAgreement.from_record, camelCase first
_AGREEMENT_KEYS: dict[str, tuple[str, ...]] = {
    "id": ("id",),
    "contract_number": ("contractNumber", "contract_number"),
    "start_date": ("startDate", "start_date"),
    "end_date": ("endDate", "end_date"),
    "duration_value": ("durationValue", "duration_value"),
    "duration_unit": ("durationUnit", "duration_unit"),
    "rental_amount": ("rentalAmount", "rental_amount"),
    "rental_period": ("rentalPeriod", "rental_period"),
}


@dataclass(frozen=True)
class RentalAgreement:
    """
    A rental agreement as supplied by the agreement collaborator.

    Contract:
        Input-only value.  ``end_date`` may be None for open-ended
        agreements; the generator needs it resolved first (see
        ``rental_engines.schedule.resolve_end_date``).
    Guarantees:
        - Dates are ``date`` objects, ``rental_amount`` is a ``Decimal``,
          ``rental_period`` / ``duration_unit`` are enum members.
    Non-goals:
        - Does not check that dates are ordered or the amount is
          non-negative; the generator rejects those.
    """

    id: str | UUID | None
    contract_number: str | None
    start_date: date | None
    rental_amount: Decimal
    rental_period: RentalPeriod
    end_date: date | None = None
    duration_value: int | None = None
    duration_unit: DurationUnit | None = None

    def __post_init__(self) -> None:
        agreement_id = str(self.id) if self.id is not None else None
        try:
            if self.start_date is not None:
                object.__setattr__(self, "start_date", to_date(self.start_date))
            if self.end_date is not None:
                object.__setattr__(self, "end_date", to_date(self.end_date))
        except (TypeError, ValueError) as e:
            raise InvalidAgreementError(f"unreadable date: {e}", agreement_id) from e

        try:
            object.__setattr__(self, "rental_amount", to_decimal(self.rental_amount))
        except ValueError as e:
            raise InvalidAgreementError(
                f"rental_amount {self.rental_amount!r} is not a number", agreement_id
            ) from e

        try:
            object.__setattr__(self, "rental_period", RentalPeriod(self.rental_period))
        except ValueError as e:
            raise InvalidAgreementError(
                f"unknown rental_period {self.rental_period!r}", agreement_id
            ) from e

        if self.duration_unit is not None:
            try:
                object.__setattr__(self, "duration_unit", DurationUnit(self.duration_unit))
            except ValueError as e:
                raise InvalidAgreementError(
                    f"unknown duration_unit {self.duration_unit!r}", agreement_id
                ) from e

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> RentalAgreement:
        """Build an agreement from a snake_case or camelCase mapping."""
        values: dict[str, Any] = {}
        for attr, keys in _AGREEMENT_KEYS.items():
            for key in keys:
                if key in record:
                    values[attr] = record[key]
                    break
        for required in ("rental_amount", "rental_period"):
            if values.get(required) is None:
                raise InvalidAgreementError(
                    f"{required} is required",
                    str(values["id"]) if values.get("id") is not None else None,
                )
        values.setdefault("id", None)
        values.setdefault("contract_number", None)
        values.setdefault("start_date", None)
        return cls(**values)


@dataclass(frozen=True)
class PaymentSchedule:
    """
    One billing period of a rental agreement.

    Contract:
        Frozen value.  ``status``, ``is_overdue`` and ``days_overdue`` are
        only meaningful after ``project_status``; stored values may be stale.
    Guarantees:
        - ``balance == amount_due - amount_paid`` at all times.
        - ``amount_due``, ``amount_paid`` and ``late_fee`` are non-negative.
    Non-goals:
        - Does not know about persistence; ``id`` is None until stored.
    """

    rental_agreement_id: str | UUID | None
    contract_number: str | None
    due_date: date
    billing_period_start: date
    billing_period_end: date
    amount_due: Decimal
    amount_paid: Decimal = ZERO
    status: ScheduleStatus = ScheduleStatus.PENDING
    is_overdue: bool = False
    days_overdue: int = 0
    late_fee: Decimal = ZERO
    payment_id: str | UUID | None = None
    id: str | UUID | None = None
    balance: Decimal = field(init=False)

    def __post_init__(self) -> None:
        for name in ("due_date", "billing_period_start", "billing_period_end"):
            object.__setattr__(self, name, to_date(getattr(self, name)))
        for name in ("amount_due", "amount_paid", "late_fee"):
            amount = to_decimal(getattr(self, name))
            if amount < ZERO:
                raise ValueError(f"{name} cannot be negative: {amount}")
            object.__setattr__(self, name, amount)
        object.__setattr__(self, "status", ScheduleStatus(self.status))
        if self.days_overdue < 0:
            raise ValueError(f"days_overdue cannot be negative: {self.days_overdue}")
        object.__setattr__(self, "balance", self.amount_due - self.amount_paid)

    @property
    def is_settled(self) -> bool:
        """True when the row counts as paid, whatever the stored status says."""
        return self.status == ScheduleStatus.PAID or self.amount_paid >= self.amount_due

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id) if self.id is not None else None,
            "rental_agreement_id": (
                str(self.rental_agreement_id)
                if self.rental_agreement_id is not None
                else None
            ),
            "contract_number": self.contract_number,
            "due_date": self.due_date.isoformat(),
            "billing_period_start": self.billing_period_start.isoformat(),
            "billing_period_end": self.billing_period_end.isoformat(),
            "amount_due": format_money(self.amount_due),
            "amount_paid": format_money(self.amount_paid),
            "balance": format_money(self.balance),
            "status": self.status.value,
            "is_overdue": self.is_overdue,
            "days_overdue": self.days_overdue,
            "late_fee": format_money(self.late_fee),
            "payment_id": str(self.payment_id) if self.payment_id is not None else None,
        }


@dataclass(frozen=True)
class ScheduleAllocation:
    """
    The part of one payment applied to one schedule row.

    Guarantees:
        - ``new_amount_paid == previous_amount_paid + amount_applied``.
        - ``new_balance == previous_balance - amount_applied``.
    """

    schedule_id: str | UUID | None
    amount_applied: Decimal
    previous_amount_paid: Decimal
    new_amount_paid: Decimal
    previous_balance: Decimal
    new_balance: Decimal
    billing_period_start: date
    billing_period_end: date

    def to_dict(self) -> dict[str, Any]:
        return {
            "schedule_id": str(self.schedule_id) if self.schedule_id is not None else None,
            "amount_applied": format_money(self.amount_applied),
            "previous_amount_paid": format_money(self.previous_amount_paid),
            "new_amount_paid": format_money(self.new_amount_paid),
            "previous_balance": format_money(self.previous_balance),
            "new_balance": format_money(self.new_balance),
            "billing_period_start": self.billing_period_start.isoformat(),
            "billing_period_end": self.billing_period_end.isoformat(),
        }


@dataclass(frozen=True)
class AllocationResult:
    """
    Outcome of allocating one payment across schedule rows.

    Contract:
        Ephemeral; the caller persists the per-row deltas.
    Guarantees:
        - ``allocated_amount + remaining_amount == total_payment`` exactly.
        - ``sum(a.amount_applied for a in allocations) == allocated_amount``.
        - ``allocations`` are in application order (oldest due first).
    """

    total_payment: Decimal
    allocated_amount: Decimal
    remaining_amount: Decimal
    payment_date: date
    allocations: tuple[ScheduleAllocation, ...] = ()

    @property
    def has_overpayment(self) -> bool:
        return self.remaining_amount > ZERO

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_payment": format_money(self.total_payment),
            "allocated_amount": format_money(self.allocated_amount),
            "remaining_amount": format_money(self.remaining_amount),
            "payment_date": self.payment_date.isoformat(),
            "allocations": [a.to_dict() for a in self.allocations],
        }


@dataclass(frozen=True)
class ScheduleSummary:
    """Counts per status and money totals over a set of projected rows."""

    total_periods: int
    pending_count: int
    partial_count: int
    overdue_count: int
    paid_count: int
    total_due: Decimal
    total_paid: Decimal
    total_outstanding: Decimal
    total_late_fees: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_periods": self.total_periods,
            "pending_count": self.pending_count,
            "partial_count": self.partial_count,
            "overdue_count": self.overdue_count,
            "paid_count": self.paid_count,
            "total_due": format_money(self.total_due),
            "total_paid": format_money(self.total_paid),
            "total_outstanding": format_money(self.total_outstanding),
            "total_late_fees": format_money(self.total_late_fees),
        }
