"""
Payment Schedule Module Service (``rental_modules.schedules.service``).

Responsibility
--------------
Persistence boundary of the schedule engines: creates agreements together
with their generated schedule, serves projected schedule reads, records
payments (allocation, row updates, ledger entry and links in one
transaction) and writes late fees.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``PaymentScheduleService`` is the sole
public entry point for schedule operations.  It composes the pure engines
(``generate_schedule``, ``project_status``, ``apply_payment``,
``calculate_late_fee``) and the ORM models in ``orm.py``.

Invariants enforced
-------------------
* Each write method owns the transaction boundary (``commit`` on success,
  ``rollback`` on failure or exception).
* Every schedule that leaves this service has been projected as of the
  injected clock's date (or an explicit ``as_of``).
* Duplicate generation is rejected by the unique constraint on
  (rental_agreement_id, billing_period_start), never by a count query.
* Payment recording is all-or-nothing: the ledger entry, the allocation
  links and the schedule deltas commit together or not at all.

Failure modes
-------------
* ``InvalidAgreementError`` -- agreement data cannot produce a schedule;
  nothing is written.
* ``AgreementNotFoundError`` -- unknown agreement id.
* ``ScheduleAlreadyExistsError`` -- second generation for an agreement.
* ``InvalidAmountError`` -- payment amount rejected by the allocator.
* ``ConcurrentModificationError`` -- schedule rows changed under a payment
  after the configured number of retries.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from rental_config.schema import RentalConfig
from rental_engines import (
    AllocationResult,
    LateFeePolicy,
    PaymentSchedule,
    RentalAgreement,
    apply_payment,
    calculate_late_fee,
    generate_schedule,
    next_due_payment,
    pending_payments,
    project_row,
    project_status,
    summarize,
    with_resolved_end_date,
)
from rental_engines.types import ScheduleSummary
from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.values import to_date
from rental_kernel.exceptions import (
    AgreementNotFoundError,
    ConcurrentModificationError,
    InvalidAgreementError,
    ScheduleAlreadyExistsError,
)
from rental_kernel.logging_config import LogContext, get_logger
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

logger = get_logger("modules.schedules.service")


class PaymentScheduleService:
    """
    Orchestrates schedule generation, reads and payment recording.

    Contract
    --------
    * Write methods commit on success and roll back on any exception,
      re-raising it (translated to a kernel error where one applies).
    * Read methods never write.

    Guarantees
    ----------
    * Clock is injectable for deterministic testing.
    * ``record_payment`` retries the whole allocate-and-persist step
      ``config.payment_retry_attempts`` times on a concurrent modification.

    Non-goals
    ---------
    * Does NOT decide what happens to an over-payment; the remainder is
      recorded on the payment as ``unallocated_amount``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: RentalConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or RentalConfig()

    # =========================================================================
    # Agreements and generation
    # =========================================================================

    def create_agreement(
        self,
        contract_number: str,
        start_date: date | str,
        rental_amount: Decimal | int | str,
        rental_period: str,
        actor_id: UUID,
        end_date: date | str | None = None,
        duration_value: int | None = None,
        duration_unit: str | None = None,
        with_schedule: bool = True,
    ) -> tuple[RentalAgreement, list[PaymentSchedule]]:
        """
        Persist an agreement and its generated schedule in one transaction.

        ``end_date`` is resolved from the duration when not given.  The
        schedule is generated before anything is written, so an invalid
        agreement leaves no row behind.  With ``with_schedule=False`` only
        the agreement is stored; ``generate_schedules`` can follow later.
        """
        agreement = with_resolved_end_date(
            RentalAgreement(
                id=uuid4(),
                contract_number=contract_number,
                start_date=start_date,
                end_date=end_date,
                duration_value=duration_value,
                duration_unit=duration_unit,
                rental_amount=rental_amount,
                rental_period=rental_period,
            )
        )
        rows = generate_schedule(agreement, max_periods=self._config.generation_limit)

        with LogContext.bind(agreement_id=agreement.id, actor_id=actor_id):
            try:
                self._session.add(
                    RentalAgreementModel.from_dto(agreement, created_by_id=actor_id)
                )
                self._session.flush()
                models = self._insert_schedules(rows, actor_id) if with_schedule else []
                self._session.commit()
            except IntegrityError as e:
                self._session.rollback()
                logger.warning("agreement_creation_rolled_back", exc_info=True)
                raise InvalidAgreementError(
                    f"contract_number {contract_number!r} already exists",
                    str(agreement.id),
                ) from e
            except Exception:
                self._session.rollback()
                logger.warning("agreement_creation_rolled_back", exc_info=True)
                raise

            logger.info("agreement_created", extra={
                "contract_number": contract_number,
                "end_date": agreement.end_date.isoformat(),
                "period_count": len(models),
            })
        return agreement, project_status(
            [m.to_dto() for m in models], self._clock.today()
        )

    def get_agreement(self, agreement_id: UUID) -> RentalAgreement:
        return self._get_agreement_model(agreement_id).to_dto()

    def generate_schedules(
        self,
        agreement_id: UUID,
        actor_id: UUID,
    ) -> list[PaymentSchedule]:
        """
        Explicit "generate schedules" action for an existing agreement.

        Raises:
            AgreementNotFoundError: unknown agreement.
            ScheduleAlreadyExistsError: the agreement already has rows.
        """
        agreement = self._get_agreement_model(agreement_id).to_dto()
        rows = generate_schedule(agreement, max_periods=self._config.generation_limit)

        with LogContext.bind(agreement_id=agreement_id, actor_id=actor_id):
            try:
                models = self._insert_schedules(rows, actor_id)
                self._session.commit()
            except IntegrityError as e:
                self._session.rollback()
                logger.warning("schedule_generation_rolled_back", exc_info=True)
                raise ScheduleAlreadyExistsError(str(agreement_id)) from e
            except Exception:
                self._session.rollback()
                logger.warning("schedule_generation_rolled_back", exc_info=True)
                raise

            logger.info("schedules_persisted", extra={"period_count": len(rows)})
        return project_status([m.to_dto() for m in models], self._clock.today())

    def delete_agreement(self, agreement_id: UUID) -> None:
        """Delete an agreement; its schedules, payments and links go with it."""
        model = self._get_agreement_model(agreement_id)
        try:
            self._session.delete(model)
            self._session.commit()
        except Exception:
            self._session.rollback()
            logger.warning("agreement_deletion_rolled_back", exc_info=True)
            raise
        logger.info("agreement_deleted", extra={"agreement_id": str(agreement_id)})

    # =========================================================================
    # Reads
    # =========================================================================

    def list_schedules(
        self,
        agreement_id: UUID,
        as_of: date | datetime | None = None,
    ) -> list[PaymentSchedule]:
        """All rows of an agreement, projected, ordered by due date."""
        self._get_agreement_model(agreement_id)
        models = self._session.scalars(
            select(PaymentScheduleModel)
            .where(PaymentScheduleModel.rental_agreement_id == agreement_id)
            .order_by(PaymentScheduleModel.due_date)
            .execution_options(populate_existing=True)
        ).all()
        return project_status([m.to_dto() for m in models], self._as_of(as_of))

    def next_due(
        self,
        agreement_id: UUID,
        as_of: date | datetime | None = None,
    ) -> PaymentSchedule | None:
        return next_due_payment(self.list_schedules(agreement_id, as_of))

    def schedule_summary(
        self,
        agreement_id: UUID,
        as_of: date | datetime | None = None,
    ) -> ScheduleSummary:
        return summarize(self.list_schedules(agreement_id, as_of))

    def overdue_schedules(
        self,
        as_of: date | datetime | None = None,
        active_only: bool = True,
    ) -> list[PaymentSchedule]:
        """Overdue rows across agreements, most days overdue first."""
        projected = project_status(self._open_schedules(active_only), self._as_of(as_of))
        overdue = [s for s in projected if s.is_overdue]
        overdue.sort(key=lambda s: (-s.days_overdue, s.due_date))
        return overdue

    def pending_schedules(
        self,
        as_of: date | datetime | None = None,
        active_only: bool = True,
    ) -> list[PaymentSchedule]:
        """Pending and partially paid rows across agreements, by due date."""
        projected = project_status(self._open_schedules(active_only), self._as_of(as_of))
        pending = pending_payments(projected)
        pending.sort(key=lambda s: s.due_date)
        return pending

    def list_payments(self, agreement_id: UUID) -> list[PaymentRecord]:
        self._get_agreement_model(agreement_id)
        models = self._session.scalars(
            select(PaymentModel)
            .where(PaymentModel.rental_agreement_id == agreement_id)
            .order_by(PaymentModel.payment_date, PaymentModel.created_at)
        ).all()
        return [m.to_dto() for m in models]

    def payment_allocations(self, payment_id: UUID) -> list[PaymentAllocationLink]:
        models = self._session.scalars(
            select(PaymentAllocationModel)
            .join(PaymentScheduleModel, PaymentAllocationModel.schedule_id == PaymentScheduleModel.id)
            .where(PaymentAllocationModel.payment_id == payment_id)
            .order_by(PaymentScheduleModel.due_date)
        ).all()
        return [m.to_dto() for m in models]

    # =========================================================================
    # Payments
    # =========================================================================

    def record_payment(
        self,
        agreement_id: UUID,
        amount: Decimal | int | str,
        payment_date: date | str,
        actor_id: UUID,
        payment_method: str | None = None,
        remarks: str | None = None,
    ) -> RecordedPayment:
        """
        Allocate a payment oldest-due first and persist it atomically.

        Retries once (by default) when the schedule rows were modified by
        another transaction between read and write.
        """
        retries = self._config.payment_retry_attempts
        attempt = 0
        while True:
            attempt += 1
            try:
                return self._record_payment_once(
                    agreement_id, amount, payment_date, actor_id, payment_method, remarks,
                )
            except ConcurrentModificationError:
                if attempt > retries:
                    logger.error("payment_retries_exhausted", extra={
                        "agreement_id": str(agreement_id),
                        "attempts": attempt,
                    })
                    raise
                logger.warning("payment_retry", extra={
                    "agreement_id": str(agreement_id),
                    "attempt": attempt,
                })

    def _record_payment_once(
        self,
        agreement_id: UUID,
        amount: Decimal | int | str,
        payment_date: date | str,
        actor_id: UUID,
        payment_method: str | None,
        remarks: str | None,
    ) -> RecordedPayment:
        with LogContext.bind(agreement_id=agreement_id, actor_id=actor_id):
            try:
                self._get_agreement_model(agreement_id)
                rows = self._locked_schedules(agreement_id)
                result = apply_payment([r.to_dto() for r in rows], amount, payment_date)

                payment = PaymentModel(
                    id=uuid4(),
                    rental_agreement_id=agreement_id,
                    amount=result.total_payment,
                    payment_date=result.payment_date,
                    allocated_amount=result.allocated_amount,
                    unallocated_amount=result.remaining_amount,
                    payment_method=payment_method,
                    remarks=remarks,
                    created_by_id=actor_id,
                )
                self._session.add(payment)
                self._session.flush()

                self._apply_allocation(rows, payment, result, actor_id)
                self._session.flush()
                self._session.commit()
            except StaleDataError as e:
                self._session.rollback()
                logger.warning("payment_rolled_back", exc_info=True)
                raise ConcurrentModificationError(
                    "payment_schedule", str(agreement_id)
                ) from e
            except Exception:
                self._session.rollback()
                logger.warning("payment_rolled_back", exc_info=True)
                raise

            logger.info("payment_recorded", extra={
                "payment_id": str(payment.id),
                "amount": str(result.total_payment),
                "allocated_amount": str(result.allocated_amount),
                "unallocated_amount": str(result.remaining_amount),
                "rows_touched": len(result.allocations),
            })
            return RecordedPayment(payment=payment.to_dto(), allocation=result)

    def _apply_allocation(
        self,
        rows: Sequence[PaymentScheduleModel],
        payment: PaymentModel,
        result: AllocationResult,
        actor_id: UUID,
    ) -> None:
        by_id = {row.id: row for row in rows}
        today = self._clock.today()
        for allocation in result.allocations:
            row = by_id[allocation.schedule_id]
            row.amount_paid = allocation.new_amount_paid
            row.payment = payment
            row.updated_by_id = actor_id
            row.apply_projection(project_row(row.to_dto(), today))
            self._session.add(
                PaymentAllocationModel(
                    payment=payment,
                    schedule=row,
                    amount_applied=allocation.amount_applied,
                    previous_amount_paid=allocation.previous_amount_paid,
                    new_amount_paid=allocation.new_amount_paid,
                    created_by_id=actor_id,
                )
            )

    # =========================================================================
    # Late fees
    # =========================================================================

    def assess_late_fees(
        self,
        agreement_id: UUID,
        actor_id: UUID,
        as_of: date | datetime | None = None,
        policy: LateFeePolicy | Mapping[str, Any] | None = None,
    ) -> list[PaymentSchedule]:
        """
        Write ``late_fee`` on every overdue row of an agreement.

        The fee is computed on ``amount_due`` with ``policy`` (default: the
        configured policy).  Rows that are not overdue keep their fee.
        """
        fee_policy = (
            LateFeePolicy.from_options(policy) if policy is not None else self._config.late_fee
        )
        today = self._as_of(as_of)
        assessed = 0

        with LogContext.bind(agreement_id=agreement_id, actor_id=actor_id):
            try:
                self._get_agreement_model(agreement_id)
                rows = self._locked_schedules(agreement_id)
                for row in rows:
                    projected = project_row(row.to_dto(), today)
                    row.apply_projection(projected)
                    if not projected.is_overdue:
                        continue
                    fee = calculate_late_fee(
                        projected.days_overdue, projected.amount_due, fee_policy
                    )
                    if fee != row.late_fee:
                        row.late_fee = fee
                        row.updated_by_id = actor_id
                    assessed += 1
                self._session.commit()
            except StaleDataError as e:
                self._session.rollback()
                logger.warning("late_fee_assessment_rolled_back", exc_info=True)
                raise ConcurrentModificationError(
                    "payment_schedule", str(agreement_id)
                ) from e
            except Exception:
                self._session.rollback()
                logger.warning("late_fee_assessment_rolled_back", exc_info=True)
                raise

            logger.info("late_fees_assessed", extra={
                "as_of_date": today.isoformat(),
                "overdue_rows": assessed,
                "late_fee_type": fee_policy.late_fee_type.value,
            })
        return project_status([r.to_dto() for r in rows], today)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _as_of(self, as_of: date | datetime | None) -> date:
        return to_date(as_of) if as_of is not None else self._clock.today()

    def _get_agreement_model(self, agreement_id: UUID) -> RentalAgreementModel:
        model = self._session.get(RentalAgreementModel, agreement_id)
        if model is None:
            raise AgreementNotFoundError(str(agreement_id))
        return model

    def _insert_schedules(
        self,
        rows: Sequence[PaymentSchedule],
        actor_id: UUID,
    ) -> list[PaymentScheduleModel]:
        models = [PaymentScheduleModel.from_dto(row, created_by_id=actor_id) for row in rows]
        self._session.add_all(models)
        self._session.flush()
        return models

    def _locked_schedules(self, agreement_id: UUID) -> list[PaymentScheduleModel]:
        """Rows of an agreement, re-read and locked for the current transaction."""
        return list(
            self._session.scalars(
                select(PaymentScheduleModel)
                .where(PaymentScheduleModel.rental_agreement_id == agreement_id)
                .order_by(PaymentScheduleModel.due_date)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).all()
        )

    def _open_schedules(self, active_only: bool) -> list[PaymentSchedule]:
        stmt = (
            select(PaymentScheduleModel)
            .join(RentalAgreementModel)
            .where(PaymentScheduleModel.amount_paid < PaymentScheduleModel.amount_due)
            .order_by(PaymentScheduleModel.due_date)
            .execution_options(populate_existing=True)
        )
        if active_only:
            stmt = stmt.where(RentalAgreementModel.is_active.is_(True))
        return [m.to_dto() for m in self._session.scalars(stmt).all()]
