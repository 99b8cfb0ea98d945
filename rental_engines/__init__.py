"""
Module: rental_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    schedule engines.  This is the import surface for rental_modules and
    scripts.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import rental_kernel.domain, rental_kernel.exceptions and
    rental_kernel.logging_config.  MUST NOT import rental_modules.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      As-of and payment dates are explicit parameters; services supply
      them from an injected Clock.
    - Decimal-only arithmetic for money.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from rental_engines import (
        RentalAgreement, generate_schedule, project_status,
        apply_payment, calculate_late_fee,
    )
"""

from rental_engines.allocation import apply_payment, settle_schedules
from rental_engines.late_fee import LateFeePolicy, LateFeeType, calculate_late_fee
from rental_engines.schedule import (
    GENERATION_LIMIT,
    generate_schedule,
    resolve_end_date,
    with_resolved_end_date,
)
from rental_engines.status import (
    next_due_payment,
    overdue_payments,
    pending_payments,
    project_row,
    project_status,
    summarize,
    total_outstanding,
)
from rental_engines.types import (
    AllocationResult,
    DurationUnit,
    PaymentSchedule,
    RentalAgreement,
    RentalPeriod,
    ScheduleAllocation,
    ScheduleStatus,
    ScheduleSummary,
)

__all__ = [
    # Types
    "AllocationResult",
    "DurationUnit",
    "PaymentSchedule",
    "RentalAgreement",
    "RentalPeriod",
    "ScheduleAllocation",
    "ScheduleStatus",
    "ScheduleSummary",
    # Generator
    "GENERATION_LIMIT",
    "generate_schedule",
    "resolve_end_date",
    "with_resolved_end_date",
    # Status projector and queries
    "project_row",
    "project_status",
    "next_due_payment",
    "overdue_payments",
    "pending_payments",
    "total_outstanding",
    "summarize",
    # Allocator
    "apply_payment",
    "settle_schedules",
    # Late fees
    "LateFeePolicy",
    "LateFeeType",
    "calculate_late_fee",
]
