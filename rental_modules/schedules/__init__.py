"""
Payment Schedule Module (``rental_modules.schedules``).

Responsibility
--------------
Persistence boundary for recurring rent: agreement creation with schedule
generation, projected schedule reads, atomic payment recording and late
fee assessment.

Architecture position
---------------------
**Modules layer** -- ORM models plus a service facade that composes the
pure ``rental_engines`` functions.

Invariants enforced
-------------------
* Transaction boundary owned by ``PaymentScheduleService``.
* One schedule per agreement, enforced by a unique constraint.
* Optimistic version counter on schedule rows; stale writes surface as
  ``ConcurrentModificationError``.
"""

from rental_modules.schedules.models import (
    PaymentAllocationLink,
    PaymentRecord,
    RecordedPayment,
)
from rental_modules.schedules.orm import (
    PaymentAllocationModel,
    PaymentModel,
    PaymentScheduleModel,
    RentalAgreementModel,
)
from rental_modules.schedules.service import PaymentScheduleService

__all__ = [
    "PaymentAllocationLink",
    "PaymentRecord",
    "RecordedPayment",
    "PaymentAllocationModel",
    "PaymentModel",
    "PaymentScheduleModel",
    "RentalAgreementModel",
    "PaymentScheduleService",
]
