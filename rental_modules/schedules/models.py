"""
Payment Schedule Module Domain Models (``rental_modules.schedules.models``).

Responsibility
--------------
Frozen dataclass value objects for the records the persistence boundary
adds on top of the engine types: the payment ledger entry, its per-row
allocation links, and the result of recording a payment.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Schedules and
agreements themselves are the engine types (``rental_engines.types``).

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* A payment is a ledger entry: never updated after it is recorded.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from rental_engines.types import AllocationResult
from rental_kernel.domain.values import format_money


@dataclass(frozen=True)
class PaymentRecord:
    """A payment received against a rental agreement."""
    id: UUID
    rental_agreement_id: UUID
    amount: Decimal
    payment_date: date
    allocated_amount: Decimal
    unallocated_amount: Decimal
    payment_method: str | None = None
    remarks: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "rental_agreement_id": str(self.rental_agreement_id),
            "amount": format_money(self.amount),
            "payment_date": self.payment_date.isoformat(),
            "allocated_amount": format_money(self.allocated_amount),
            "unallocated_amount": format_money(self.unallocated_amount),
            "payment_method": self.payment_method,
            "remarks": self.remarks,
        }


@dataclass(frozen=True)
class PaymentAllocationLink:
    """The amount of one payment applied to one schedule row."""
    id: UUID
    payment_id: UUID
    schedule_id: UUID
    amount_applied: Decimal
    previous_amount_paid: Decimal
    new_amount_paid: Decimal


@dataclass(frozen=True)
class RecordedPayment:
    """Result of ``PaymentScheduleService.record_payment``."""
    payment: PaymentRecord
    allocation: AllocationResult

    @property
    def payment_id(self) -> UUID:
        return self.payment.id

    def to_dict(self) -> dict[str, Any]:
        return {
            "payment": self.payment.to_dict(),
            "allocation": self.allocation.to_dict(),
        }
